"""
High-level carving functions that orchestrate the seam carving workflow.

Width is always resolved before height: shrinking uses repeated
luminance -> cost field -> seam -> removal steps, growing uses one k-seam
expansion per axis.
"""

import logging
import numbers
import time
from typing import Iterator, Optional, Tuple

import torch

from .config import Config
from .energy import DirectLuminance, forward_energy, select_energy_provider
from .exceptions import (EnergyProviderUnavailableError, MalformedRequestError,
                         OutOfRangeError)
from .pool import BufferPool
from .seam import insert_seams, remove_seam, trace_seam

logger = logging.getLogger("seamcarve.carving")

DIRECTIONS = ('vertical', 'horizontal')


def _check_direction(direction: str):
    if direction not in DIRECTIONS:
        raise ValueError(f"Invalid direction: {direction}")


def _extent(pixels: torch.Tensor, direction: str) -> int:
    """Size of the axis a seam in `direction` removes from."""
    return pixels.shape[-1] if direction == 'vertical' else pixels.shape[-2]


def _seam_length(pixels: torch.Tensor, direction: str) -> int:
    return pixels.shape[-2] if direction == 'vertical' else pixels.shape[-1]


def validate_pixels(pixels: torch.Tensor):
    """Raise MalformedRequestError unless `pixels` is a non-empty (4, H, W) uint8 tensor."""
    if not isinstance(pixels, torch.Tensor):
        raise MalformedRequestError(f"expected a tensor, got {type(pixels).__name__}")
    if pixels.dim() != 3 or pixels.shape[0] != 4:
        raise MalformedRequestError(f"expected an RGBA buffer (4, H, W), got {tuple(pixels.shape)}")
    if pixels.dtype != torch.uint8:
        raise MalformedRequestError(f"expected uint8 pixels, got {pixels.dtype}")
    if pixels.shape[1] <= 0 or pixels.shape[2] <= 0:
        raise MalformedRequestError(f"empty buffer {tuple(pixels.shape)}")


def validate_dimensions(**dims) -> Tuple[int, ...]:
    """
    Check that every named dimension is a positive integer.

    Any integral type is accepted (numpy scalars included); bools are not.

    Returns:
        The dimensions as plain ints, in argument order

    Raises:
        MalformedRequestError: a dimension is missing, non-integral or not positive
    """
    checked = []
    for name, value in dims.items():
        if value is None:
            raise MalformedRequestError(f"missing {name}")
        if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value <= 0:
            raise MalformedRequestError(f"{name} must be a positive integer, got {value!r}")
        checked.append(int(value))
    return tuple(checked)


class SeamCarver:
    """
    Content-aware resizing engine.

    One instance owns one BufferPool and one luminance provider. Instances
    share no mutable state, so independent frames can be carved by separate
    instances in parallel; a single instance must not be used concurrently.

    Args:
        energy_provider: Callable (pixels, out=None) -> (H, W) uint8 luminance.
            Defaults to an accelerated provider when one is available.
        energy_reuse: Consecutive removals sharing one luminance map
            (1 = recompute after every removal)
        track_original_coordinates: Express expansion seams in the original
            buffer's frame instead of the shrinking working copy's frame
        device: Device for provider selection (None = auto-detect)
        pool: Scratch pool to use (a fresh one by default)
    """

    def __init__(self, energy_provider=None, energy_reuse: Optional[int] = None,
                 track_original_coordinates: Optional[bool] = None,
                 device=None, pool: Optional[BufferPool] = None):
        if energy_reuse is None:
            energy_reuse = Config.ENERGY_REUSE
        if energy_reuse < 1:
            raise ValueError(f"energy_reuse must be at least 1, got {energy_reuse}")
        if track_original_coordinates is None:
            track_original_coordinates = Config.TRACK_ORIGINAL_COORDINATES

        self.energy_reuse = int(energy_reuse)
        self.track_original_coordinates = bool(track_original_coordinates)
        self.pool = pool if pool is not None else BufferPool()

        if energy_provider is None:
            try:
                energy_provider = select_energy_provider(device)
            except EnergyProviderUnavailableError as exc:
                logger.warning("Accelerated luminance unavailable (%s); "
                               "falling back to direct formula", exc)
                energy_provider = DirectLuminance()
        self.energy_provider = energy_provider

    # ------------------------------------------------------------------
    # Single steps
    # ------------------------------------------------------------------

    def _energy(self, pixels: torch.Tensor) -> torch.Tensor:
        out = self.pool.get('energy', tuple(pixels.shape[-2:]), torch.uint8)
        try:
            return self.energy_provider(pixels, out=out)
        except EnergyProviderUnavailableError as exc:
            logger.warning("Luminance provider failed (%s); "
                           "falling back to direct formula", exc)
            self.energy_provider = DirectLuminance()
            return self.energy_provider(pixels, out=out)

    def _seam(self, energy: torch.Tensor, direction: str) -> torch.Tensor:
        cost = forward_energy(energy, direction,
                              out=self.pool.get('cost', tuple(energy.shape), torch.int32))
        length = energy.shape[0] if direction == 'vertical' else energy.shape[1]
        return trace_seam(cost, direction,
                          out=self.pool.get('seam', (length,), torch.long))

    def _carve(self, pixels: torch.Tensor, n_seams: int,
               direction: str) -> Iterator[Tuple[torch.Tensor, torch.Tensor]]:
        """
        Yield (seam, carved) for `n_seams` successive removals.

        The yielded seam is scratch memory, valid until the next step.
        Once the buffer is down to extent 1 it is no longer shrunk: the
        all-zero seam (the only one a one-wide buffer admits) is yielded
        with the buffer unchanged.
        """
        carved = pixels
        energy = None
        uses = 0

        for _ in range(n_seams):
            if _extent(carved, direction) == 1:
                seam = self.pool.get('seam', (_seam_length(carved, direction),), torch.long)
                seam.zero_()
                yield seam, carved
                continue

            if energy is None or uses >= self.energy_reuse:
                energy = self._energy(carved)
                uses = 0

            seam = self._seam(energy, direction)
            carved = remove_seam(carved, seam, direction)
            uses += 1

            # Keep a stale map in step with the buffer until it must be recomputed
            if uses < self.energy_reuse:
                energy = remove_seam(energy, seam, direction)
            else:
                energy = None

            yield seam, carved

    # ------------------------------------------------------------------
    # Axis operations
    # ------------------------------------------------------------------

    def reduce(self, pixels: torch.Tensor, n_seams: int,
               direction: str = 'vertical') -> torch.Tensor:
        """
        Remove `n_seams` seams.

        Args:
            pixels: Pixel buffer (C, H, W)
            n_seams: Number of seams to remove
            direction: 'vertical' (narrower) or 'horizontal' (shorter)

        Returns:
            New buffer with the axis reduced by exactly n_seams
        """
        _check_direction(direction)
        extent = _extent(pixels, direction)
        if n_seams < 0 or n_seams >= extent:
            raise OutOfRangeError(
                f"cannot remove {n_seams} seams from an axis of extent {extent}")

        carved = pixels.clone()
        for _, carved in self._carve(pixels, n_seams, direction):
            pass
        return carved

    def find_seams(self, pixels: torch.Tensor, n_seams: int,
                   direction: str = 'vertical') -> torch.Tensor:
        """
        Discover the `n_seams` seams an expansion would duplicate.

        Seams are found by simulated removal on a working copy. Each row
        of the result is one seam, in the working copy's frame at the time
        it was found, or in the original frame when coordinate tracking is
        enabled.

        Returns:
            Seam-index table (n_seams, L)
        """
        return self._record_seams(pixels, n_seams, direction).clone()

    def _record_seams(self, pixels: torch.Tensor, n_seams: int,
                      direction: str) -> torch.Tensor:
        _check_direction(direction)
        if n_seams < 0:
            raise OutOfRangeError(f"cannot record {n_seams} seams")

        H, W = pixels.shape[-2:]
        length = _seam_length(pixels, direction)
        table = self.pool.get('seam_table', (n_seams, length), torch.long)
        along = torch.arange(length)

        index_map = None
        if self.track_original_coordinates:
            if direction == 'vertical':
                index_map = torch.arange(W).expand(H, W).contiguous()
            else:
                index_map = torch.arange(H).unsqueeze(1).expand(H, W).contiguous()

        for i, (seam, _) in enumerate(self._carve(pixels.clone(), n_seams, direction)):
            if index_map is None:
                table[i] = seam
                continue
            if direction == 'vertical':
                table[i] = index_map[along, seam]
            else:
                table[i] = index_map[seam, along]
            if _extent(index_map, direction) > 1:
                index_map = remove_seam(index_map, seam, direction)

        return table

    def expand(self, pixels: torch.Tensor, n_seams: int,
               direction: str = 'vertical') -> torch.Tensor:
        """
        Insert `n_seams` seams, each a blend of its original neighbours.

        Args:
            pixels: Pixel buffer (C, H, W)
            n_seams: Number of seams to insert
            direction: 'vertical' (wider) or 'horizontal' (taller)

        Returns:
            New buffer with the axis grown by exactly n_seams
        """
        if n_seams == 0:
            _check_direction(direction)
            return pixels.clone()
        seams = self._record_seams(pixels, n_seams, direction)
        logger.debug("Inserting %d %s seams into %s buffer",
                     n_seams, direction, tuple(pixels.shape))
        return insert_seams(pixels, seams, direction)

    def resize(self, pixels: torch.Tensor, target_width: int,
               target_height: int) -> torch.Tensor:
        """
        Resize an RGBA buffer to exactly (target_height, target_width).

        Args:
            pixels: RGBA pixel buffer (4, H, W), uint8
            target_width: Requested width
            target_height: Requested height

        Returns:
            New buffer of shape (4, target_height, target_width)

        Raises:
            MalformedRequestError: bad buffer or non-positive targets
        """
        validate_pixels(pixels)
        target_width, target_height = validate_dimensions(target_width=target_width,
                                                          target_height=target_height)

        start = time.perf_counter()
        source_shape = tuple(pixels.shape[1:])
        current = pixels

        for direction, target in (('vertical', target_width),
                                  ('horizontal', target_height)):
            extent = _extent(current, direction)
            if extent > target:
                logger.debug("Removing %d %s seams", extent - target, direction)
                current = self.reduce(current, extent - target, direction)
            elif extent < target:
                current = self.expand(current, target - extent, direction)

        logger.info("Resized %dx%d -> %dx%d in %.3fs",
                    source_shape[1], source_shape[0], target_width, target_height,
                    time.perf_counter() - start)
        return current


def carve_image(pixels: torch.Tensor, target_width: int, target_height: int,
                **kwargs) -> torch.Tensor:
    """One-shot resize with a throwaway SeamCarver (kwargs go to its constructor)."""
    return SeamCarver(**kwargs).resize(pixels, target_width, target_height)


def overlay_seams(pixels: torch.Tensor, seams: torch.Tensor,
                  direction: str = 'vertical',
                  color=(255, 0, 0, 255)) -> torch.Tensor:
    """Paint each seam of a seam-index table onto a copy of the buffer."""
    _check_direction(direction)
    C, H, W = pixels.shape
    painted = pixels.clone()
    paint = torch.tensor(color[:C], dtype=pixels.dtype, device=pixels.device).unsqueeze(1)

    for seam in seams:
        seam = seam.to(pixels.device)
        if direction == 'vertical':
            painted[:, torch.arange(H, device=pixels.device), seam] = paint
        else:
            painted[:, seam, torch.arange(W, device=pixels.device)] = paint

    return painted
