"""
Basic seam carving example.

Shows the seams chosen for a width change, then the image narrowed and
widened by the same number of seams, side by side.

    python basic_seam_carving.py photo.jpg --seams 80
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import argparse

import matplotlib.pyplot as plt

from seamcarve.carving import SeamCarver, overlay_seams
from seamcarve.cli import load_image
from seamcarve.config import default_energy_reuse
from seamcarve.logging_config import setup_logging


def to_display(tensor):
    return tensor.permute(1, 2, 0).cpu().numpy()


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('image', help='Image to carve')
    parser.add_argument('--seams', type=int, default=50, help='Seams to remove and insert')
    parser.add_argument('--output', default=None, help='Save the figure instead of showing it')
    args = parser.parse_args()

    setup_logging("DEBUG")
    image = load_image(args.image)
    _, H, W = image.shape
    n_seams = min(args.seams, W - 1)
    print(f"Image size: {W} x {H}, {n_seams} seams")

    carver = SeamCarver(energy_reuse=default_energy_reuse())
    seams = carver.find_seams(image, n_seams, 'vertical')
    with_seams = overlay_seams(image, seams, 'vertical')
    narrowed = carver.resize(image, W - n_seams, H)
    widened = carver.resize(image, W + n_seams, H)

    fig, axes = plt.subplots(1, 4, figsize=(16, 4))
    panels = [(image, 'Original'), (with_seams, f'{n_seams} lowest-cost seams'),
              (narrowed, f'Narrowed to {W - n_seams}'), (widened, f'Widened to {W + n_seams}')]
    for ax, (tensor, title) in zip(axes, panels):
        ax.imshow(to_display(tensor))
        ax.set_title(title)
        ax.axis('off')
    plt.tight_layout()

    if args.output:
        plt.savefig(args.output, dpi=150)
        print(f"Saved: {args.output}")
    else:
        plt.show()


if __name__ == '__main__':
    main()
