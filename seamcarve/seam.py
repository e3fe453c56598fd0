"""
Seam tracing, removal and insertion.

A vertical seam holds one column index per row; a horizontal seam holds
one row index per column. Horizontal operations are implemented as the
vertical ones applied to the transposed buffer.
"""

from typing import Optional

import torch

from .exceptions import OutOfRangeError


def trace_seam(cost: torch.Tensor, direction: str = 'vertical',
               out: Optional[torch.Tensor] = None) -> torch.Tensor:
    """
    Backtrack the minimum-cost seam through a forward-energy cost field.

    The terminal cell is the first minimum of the last row (vertical) or
    last column (horizontal). From there each step picks, among the
    predecessor offsets {0, -1, +1} in that order, the first one holding
    the smallest cost.

    Args:
        cost: Cost field (H, W) from forward_energy
        direction: 'vertical' or 'horizontal'
        out: Optional int64 tensor of the seam's length to write into

    Returns:
        Seam indices - for vertical: (H,) with column index per row
                      for horizontal: (W,) with row index per column
    """
    if direction == 'vertical':
        field = cost
    elif direction == 'horizontal':
        field = cost.t()
    else:
        raise ValueError(f"Invalid direction: {direction}")

    H, W = field.shape
    seam = out if out is not None else torch.empty(H, dtype=torch.long)

    col = int(torch.argmin(field[H - 1]))
    seam[H - 1] = col

    for i in range(H - 2, -1, -1):
        row = field[i]
        best_col = col
        best = row[col].item()
        if col > 0 and row[col - 1].item() < best:
            best = row[col - 1].item()
            best_col = col - 1
        if col < W - 1 and row[col + 1].item() < best:
            best_col = col + 1
        seam[i] = best_col
        col = best_col

    return seam


def seam_cost(cost: torch.Tensor, seam: torch.Tensor,
              direction: str = 'vertical') -> int:
    """Accumulated cost at a seam's terminal cell."""
    if direction == 'vertical':
        return int(cost[-1, seam[-1]])
    elif direction == 'horizontal':
        return int(cost[seam[-1], -1])
    raise ValueError(f"Invalid direction: {direction}")


def _as_channels(image: torch.Tensor):
    if image.dim() == 2:
        return image.unsqueeze(0), True
    return image, False


def remove_seam(image: torch.Tensor, seam: torch.Tensor,
                direction: str = 'vertical') -> torch.Tensor:
    """
    Remove a seam from an image.

    Values are copied verbatim; nothing is blended.

    Args:
        image: Image tensor (C, H, W) or (H, W)
        seam: Seam indices
        direction: 'vertical' or 'horizontal'

    Returns:
        New tensor with one column (vertical) or row (horizontal) removed
    """
    image, squeeze_output = _as_channels(image)

    if direction == 'vertical':
        carved = _remove_vertical(image, seam)
    elif direction == 'horizontal':
        carved = _remove_vertical(image.transpose(1, 2), seam).transpose(1, 2).contiguous()
    else:
        raise ValueError(f"Invalid direction: {direction}")

    if squeeze_output:
        carved = carved.squeeze(0)

    return carved


def _remove_vertical(image: torch.Tensor, seam: torch.Tensor) -> torch.Tensor:
    C, H, W = image.shape
    if W <= 1:
        raise OutOfRangeError("cannot remove a seam from a buffer of extent 1")
    if seam.shape != (H,):
        raise ValueError(f"Seam of length {seam.numel()} does not match extent {H}")
    seam = seam.to(image.device)
    if seam.min() < 0 or seam.max() >= W:
        raise ValueError(f"Seam indices out of range [0, {W - 1}]")

    keep = torch.ones(H, W, dtype=torch.bool, device=image.device)
    keep[torch.arange(H, device=image.device), seam] = False
    return image[:, keep].view(C, H, W - 1)


def insert_seams(image: torch.Tensor, seams: torch.Tensor,
                 direction: str = 'vertical') -> torch.Tensor:
    """
    Insert k seams into an image in one pass.

    For every row (vertical) or column (horizontal) the k coordinates
    belonging to it are sorted ascending. Original pixels are copied in
    order and, at each coordinate c, one new pixel is emitted just before
    original pixel c: the per-channel average of original pixels
    max(0, c-1) and min(extent-1, c). Integer images use the floor of the
    average. Repeated coordinates insert repeated pixels.

    Args:
        image: Image tensor (C, H, W) or (H, W)
        seams: Seam-index table (k, L), one seam per row
        direction: 'vertical' or 'horizontal'

    Returns:
        New tensor k columns wider (vertical) or k rows taller (horizontal)
    """
    image, squeeze_output = _as_channels(image)

    if direction == 'vertical':
        expanded = _insert_vertical(image, seams)
    elif direction == 'horizontal':
        expanded = _insert_vertical(image.transpose(1, 2), seams).transpose(1, 2).contiguous()
    else:
        raise ValueError(f"Invalid direction: {direction}")

    if squeeze_output:
        expanded = expanded.squeeze(0)

    return expanded


def _insert_vertical(image: torch.Tensor, seams: torch.Tensor) -> torch.Tensor:
    C, H, W = image.shape
    k = seams.shape[0]
    if k == 0:
        return image.clone()
    if seams.shape[1] != H:
        raise ValueError(f"Seams of length {seams.shape[1]} do not match extent {H}")

    device = image.device
    coords, _ = torch.sort(seams.to(device=device, dtype=torch.long).t(), dim=1)
    coords = coords.contiguous()  # (H, k)

    expanded = torch.empty(C, H, W + k, dtype=image.dtype, device=device)

    # Original pixel x moves right by the number of insertions at or before it
    x = torch.arange(W, device=device).expand(H, W).contiguous()
    dest = x + torch.searchsorted(coords, x, right=True)
    expanded.scatter_(2, dest.unsqueeze(0).expand(C, H, W), image)

    # The j-th sorted insertion lands after c originals and j earlier insertions
    inserted_dest = coords + torch.arange(k, device=device)
    left = (coords - 1).clamp(min=0).unsqueeze(0).expand(C, H, k)
    right = coords.clamp(max=W - 1).unsqueeze(0).expand(C, H, k)
    if image.is_floating_point():
        blended = (image.gather(2, left) + image.gather(2, right)) / 2
    else:
        total = image.gather(2, left).to(torch.int32) + image.gather(2, right).to(torch.int32)
        blended = (total // 2).to(image.dtype)
    expanded.scatter_(2, inserted_dest.unsqueeze(0).expand(C, H, k), blended)

    return expanded
