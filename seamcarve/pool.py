"""
Reusable scratch memory for the seam carving engine.

Carving a frame allocates the same handful of arrays over and over
(luminance map, cost field, seam path, seam-index table), each a little
smaller or larger than the last. A BufferPool keeps one flat tensor per
name and hands out views of it, reallocating only when a request exceeds
the current capacity. Buffers are never shrunk.

A pool belongs to exactly one engine instance and must not be shared
between concurrent invocations: every view it returns aliases the same
storage as the previous view of that name.
"""

import math
from typing import Dict, Tuple

import torch


class BufferPool:
    """Named scratch tensors, grown monotonically."""

    def __init__(self, device='cpu'):
        self.device = torch.device(device)
        self._buffers: Dict[str, torch.Tensor] = {}
        self.allocations = 0

    def get(self, name: str, shape: Tuple[int, ...],
            dtype: torch.dtype) -> torch.Tensor:
        """
        Return a tensor view of the requested shape backed by scratch `name`.

        The contents are undefined; callers must overwrite what they read.

        Args:
            name: Scratch slot ('energy', 'cost', 'seam', 'seam_table', ...)
            shape: Shape of the view
            dtype: Element type; a slot whose dtype changes is reallocated

        Returns:
            View of shape `shape` into the slot's storage
        """
        size = math.prod(shape)
        buf = self._buffers.get(name)
        if buf is None or buf.dtype != dtype or buf.numel() < size:
            buf = torch.empty(size, dtype=dtype, device=self.device)
            self._buffers[name] = buf
            self.allocations += 1
        return buf[:size].view(shape)

    def capacity(self, name: str) -> int:
        """Number of elements currently reserved for `name` (0 if unused)."""
        buf = self._buffers.get(name)
        return 0 if buf is None else buf.numel()

    def clear(self):
        """Release every scratch buffer."""
        self._buffers.clear()

    def __contains__(self, name: str) -> bool:
        return name in self._buffers

    def __len__(self) -> int:
        return len(self._buffers)
