"""
Energy functions for seam carving.

The energy map is per-pixel luminance. Seams are scored with forward
energy (Rubinstein et al. 2008): the cost of a seam is the intensity
difference of the edges its removal would newly expose, not the
luminance of the pixels it removes.

Two interchangeable luminance providers are offered: DirectLuminance
computes on the CPU, AcceleratedLuminance on a torch accelerator device
with a blocking read-back. Both use the same integer formula, so they
produce identical maps.
"""

import logging
from typing import Optional

import torch

from .config import Config, accelerator_device
from .exceptions import EnergyProviderUnavailableError

logger = logging.getLogger("seamcarve.energy")


def _weighted_luma(pixels: torch.Tensor) -> torch.Tensor:
    """(299 R + 587 G + 114 B) // 1000 over a (C, H, W) tensor, as uint8."""
    wr, wg, wb = Config.LUMA_WEIGHTS
    rgb = pixels[:3].to(torch.int32)
    luma = (wr * rgb[0] + wg * rgb[1] + wb * rgb[2]) // 1000
    return luma.to(torch.uint8)


def _write(result: torch.Tensor, out: Optional[torch.Tensor]) -> torch.Tensor:
    if out is None:
        return result
    out.copy_(result)
    return out


class DirectLuminance:
    """Per-pixel luminance computed on the CPU."""

    name = 'direct'

    def __call__(self, pixels: torch.Tensor,
                 out: Optional[torch.Tensor] = None) -> torch.Tensor:
        """
        Args:
            pixels: RGBA pixel buffer (4, H, W), uint8
            out: Optional (H, W) uint8 tensor to write into

        Returns:
            Luminance map (H, W), uint8
        """
        return _write(_weighted_luma(pixels.cpu()), out)


class AcceleratedLuminance:
    """Luminance computed on a torch accelerator device.

    Each call uploads the frame, computes on the device and copies the
    result back to the host before returning.
    """

    name = 'accelerated'

    def __init__(self, device=None):
        if device is None:
            device = accelerator_device()
        if device is None:
            raise EnergyProviderUnavailableError("no accelerator device available")
        try:
            self.device = torch.device(device)
            # Touch the device so initialisation failures surface here
            torch.zeros(1, device=self.device)
        except (RuntimeError, AssertionError) as exc:
            raise EnergyProviderUnavailableError(
                f"cannot initialise device {device!r}: {exc}") from exc

    def __call__(self, pixels: torch.Tensor,
                 out: Optional[torch.Tensor] = None) -> torch.Tensor:
        try:
            luma = _weighted_luma(pixels.to(self.device)).cpu()
        except RuntimeError as exc:
            raise EnergyProviderUnavailableError(
                f"luminance pass failed on {self.device}: {exc}") from exc
        return _write(luma, out)


def select_energy_provider(device=None):
    """
    Pick a luminance provider by availability.

    Args:
        device: None to auto-detect, 'cpu' for the direct provider, or an
            accelerator device string ('cuda', 'cuda:1', 'mps')

    Returns:
        AcceleratedLuminance when an accelerator is requested or detected,
        DirectLuminance otherwise

    Raises:
        EnergyProviderUnavailableError: the device string is not a torch
            device, or the accelerator failed to initialise
    """
    if device is None:
        device = accelerator_device()
    if device is None:
        return DirectLuminance()
    try:
        device = torch.device(device)
    except (RuntimeError, TypeError) as exc:
        raise EnergyProviderUnavailableError(
            f"unrecognised device {device!r}: {exc}") from exc
    if device.type == 'cpu':
        return DirectLuminance()
    provider = AcceleratedLuminance(device)
    logger.debug("Using accelerated luminance on %s", provider.device)
    return provider


def luminance(pixels: torch.Tensor) -> torch.Tensor:
    """Luminance map (H, W) of an RGBA buffer (4, H, W), via the direct formula."""
    return DirectLuminance()(pixels)


def forward_energy(energy: torch.Tensor, direction: str = 'vertical',
                   out: Optional[torch.Tensor] = None) -> torch.Tensor:
    """Forward-energy cost field (Rubinstein et al. 2008).

    For vertical seams, the three transition costs at pixel (i, j) are:
      C_U = |I(i, j+1) - I(i, j-1)|
      C_L = C_U + |I(i-1, j) - I(i, j-1)|
      C_R = C_U + |I(i-1, j) - I(i, j+1)|
    with neighbours clamped to the pixel itself at the image border.

    Row 0 holds C_U alone. Every later row holds
      M(i, j) = min(M(i-1, j) + C_U, M(i-1, j-1) + C_L, M(i-1, j+1) + C_R)
    with out-of-range predecessors left out. Horizontal seams use the
    transpose: column 0 is the boundary and predecessors lie in the
    previous column.

    Args:
        energy: Luminance map (H, W)
        direction: 'vertical' or 'horizontal'
        out: Optional (H, W) int32 tensor to write the cost field into

    Returns:
        Cost field (H, W), int32
    """
    if out is None:
        out = torch.empty(energy.shape, dtype=torch.int32)

    if direction == 'vertical':
        _accumulate(energy, out)
    elif direction == 'horizontal':
        _accumulate(energy.t(), out.t())
    else:
        raise ValueError(f"Invalid direction: {direction}")

    return out


def _accumulate(energy: torch.Tensor, M: torch.Tensor):
    """Top-to-bottom forward-energy DP of `energy` into `M` (both (H, W))."""
    gray = energy.to(device='cpu', dtype=torch.int32)
    H, W = gray.shape

    # I(i, j-1), clamped at the left edge
    left = torch.empty_like(gray)
    left[:, 1:] = gray[:, :-1]
    left[:, 0] = gray[:, 0]

    # I(i, j+1), clamped at the right edge
    right = torch.empty_like(gray)
    right[:, :-1] = gray[:, 1:]
    right[:, -1] = gray[:, -1]

    C_U = torch.abs(right - left)
    # Diagonal costs only exist below the boundary row
    C_L = C_U[1:] + torch.abs(gray[:-1] - left[1:])
    C_R = C_U[1:] + torch.abs(gray[:-1] - right[1:])

    M[0] = C_U[0]

    for i in range(1, H):
        M_prev = M[i - 1]
        best = M_prev + C_U[i]
        if W > 1:
            # Come from above-left, then above-right
            best[1:] = torch.minimum(best[1:], M_prev[:-1] + C_L[i - 1, 1:])
            best[:-1] = torch.minimum(best[:-1], M_prev[1:] + C_R[i - 1, :-1])
        M[i] = best
