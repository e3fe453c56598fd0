"""
Command line interface: content-aware resize of an image file.

    python -m seamcarve input.png output.png --width 320 --height 240
"""

import argparse
import logging
from typing import Optional, Sequence

import numpy as np
import torch
from PIL import Image

from .carving import SeamCarver, overlay_seams
from .config import Config, default_energy_reuse
from .exceptions import SeamCarvingError
from .logging_config import setup_logging

logger = logging.getLogger("seamcarve.cli")


def load_image(path: str) -> torch.Tensor:
    """Load an image file as an RGBA (4, H, W) uint8 tensor."""
    img = Image.open(path).convert('RGBA')
    img_array = np.array(img, dtype=np.uint8)
    return torch.from_numpy(img_array).permute(2, 0, 1).contiguous()


def save_image(tensor: torch.Tensor, path: str):
    """Save an RGBA (4, H, W) uint8 tensor as an image file."""
    img_array = tensor.permute(1, 2, 0).cpu().numpy()
    img = Image.fromarray(img_array)
    if path.lower().endswith(('.jpg', '.jpeg')):
        img = img.convert('RGB')
    img.save(path)
    logger.info("Saved: %s", path)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='seamcarve',
        description='Content-aware image resizing by seam carving.')
    parser.add_argument('input', help='Source image')
    parser.add_argument('output', help='Destination image')
    parser.add_argument('--width', type=int, default=None,
                        help='Target width (default: source width, or scaled)')
    parser.add_argument('--height', type=int, default=None,
                        help='Target height (default: source height, or scaled)')
    parser.add_argument('--scale', type=float, default=None,
                        help='Scale factor for dimensions not given explicitly')
    parser.add_argument('--energy-reuse', type=int, default=None,
                        help='Seam removals per luminance map (default: by environment)')
    parser.add_argument('--track-coordinates', action='store_true',
                        help='Map expansion seams back to source coordinates')
    parser.add_argument('--device', default=None,
                        help="Luminance device, e.g. 'cpu' or 'cuda' (default: auto)")
    parser.add_argument('--show-seams', action='store_true',
                        help='Write the width seams over the source instead of resizing')
    parser.add_argument('--log-level', default=Config.LOG_LEVEL,
                        help='DEBUG, INFO, WARNING or ERROR')
    return parser


def _target(explicit: Optional[int], source: int, scale: Optional[float]) -> int:
    if explicit is not None:
        return explicit
    if scale is not None:
        return max(1, round(source * scale))
    return source


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    if args.scale is not None and args.scale <= 0:
        parser.error('--scale must be positive')
    if args.energy_reuse is not None and args.energy_reuse < 1:
        parser.error('--energy-reuse must be at least 1')
    for name in ('width', 'height'):
        value = getattr(args, name)
        if value is not None and value <= 0:
            parser.error(f'--{name} must be positive')
    if args.device is not None:
        try:
            torch.device(args.device)
        except RuntimeError:
            parser.error(f'--device: unrecognised device {args.device!r}')

    try:
        image = load_image(args.input)
    except (OSError, ValueError) as exc:
        logger.error("Cannot read %s: %s", args.input, exc)
        return 1
    _, H, W = image.shape
    target_width = _target(args.width, W, args.scale)
    target_height = _target(args.height, H, args.scale)

    energy_reuse = args.energy_reuse if args.energy_reuse is not None else default_energy_reuse()
    carver = SeamCarver(energy_reuse=energy_reuse,
                        track_original_coordinates=args.track_coordinates,
                        device=args.device)

    try:
        if args.show_seams:
            n_seams = min(abs(target_width - W), W)
            seams = carver.find_seams(image, n_seams, 'vertical')
            result = overlay_seams(image, seams, 'vertical')
        else:
            logger.info("Resizing %s from %dx%d to %dx%d",
                        args.input, W, H, target_width, target_height)
            result = carver.resize(image, target_width, target_height)
    except SeamCarvingError as exc:
        logger.error("Resize failed: %s", exc)
        return 1

    try:
        save_image(result, args.output)
    except (OSError, ValueError) as exc:
        logger.error("Cannot write %s: %s", args.output, exc)
        return 1
    return 0
