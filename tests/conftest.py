"""Shared test fixtures for the seamcarve test suite."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import torch
import pytest
from seamcarve.carving import SeamCarver
from seamcarve.energy import DirectLuminance


@pytest.fixture
def carver():
    """Engine with the CPU luminance provider and no energy reuse."""
    return SeamCarver(energy_provider=DirectLuminance(), energy_reuse=1)


def make_solid_image(H, W, color=(128, 128, 128, 255)):
    """RGBA buffer (4, H, W) filled with one color."""
    return torch.tensor(color, dtype=torch.uint8).view(4, 1, 1).expand(4, H, W).clone()


def make_gradient_image(H, W):
    """Horizontal gray gradient: dark left, bright right, opaque."""
    ramp = torch.linspace(0, 255, W).round().to(torch.uint8)
    image = torch.empty(4, H, W, dtype=torch.uint8)
    image[:3] = ramp.view(1, 1, W)
    image[3] = 255
    return image


def make_random_image(H, W, seed=42):
    """Random opaque RGBA buffer."""
    gen = torch.Generator().manual_seed(seed)
    image = torch.randint(0, 256, (4, H, W), dtype=torch.uint8, generator=gen)
    image[3] = 255
    return image
