"""Global configuration for seamcarve."""

import os
import platform

import torch


class Config:
    """Global configuration."""

    # Energy reuse: number of consecutive seam removals sharing one
    # luminance map (1 = recompute after every removal)
    ENERGY_REUSE = 1
    CONSTRAINED_ENERGY_REUSE = 2

    # ITU-R BT.601 luma weights, in thousandths
    LUMA_WEIGHTS = (299, 587, 114)

    # Expansion: express recorded seams in the original buffer's frame
    TRACK_ORIGINAL_COORDINATES = False

    # Batch processing
    MAX_WORKERS = 4

    LOG_LEVEL = "INFO"


_ARM_MACHINES = ('arm64', 'aarch64', 'armv7l', 'armv8l')


def accelerator_device():
    """Name of the available torch accelerator ('cuda' or 'mps'), or None."""
    if torch.cuda.is_available():
        return 'cuda'
    mps = getattr(torch.backends, 'mps', None)
    if mps is not None and mps.is_available():
        return 'mps'
    return None


def detect_constrained_environment() -> bool:
    """Guess whether we run on a compute-constrained target.

    An ARM machine without an accelerator, or a host with at most two
    CPUs, counts as constrained.
    """
    machine = platform.machine().lower()
    if machine in _ARM_MACHINES and accelerator_device() is None:
        return True
    cpus = os.cpu_count() or 1
    return cpus <= 2


def default_energy_reuse() -> int:
    """Energy reuse knob for the current environment."""
    if detect_constrained_environment():
        return Config.CONSTRAINED_ENERGY_REUSE
    return Config.ENERGY_REUSE
