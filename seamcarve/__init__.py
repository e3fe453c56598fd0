"""
Content-aware image resizing by seam carving.

Forward-energy seam removal (Rubinstein et al. 2008) and k-seam
expansion with neighbour averaging (Avidan & Shamir 2007).
"""

__version__ = "0.1.0"

from .energy import (luminance, forward_energy, DirectLuminance,
                     AcceleratedLuminance, select_energy_provider)
from .seam import trace_seam, seam_cost, remove_seam, insert_seams
from .pool import BufferPool
from .carving import SeamCarver, carve_image, overlay_seams
from .worker import (ResizeRequest, ResizeResponse, ResizeWorker, resize_batch,
                     pixels_from_bytes, pixels_to_bytes)
from .exceptions import (SeamCarvingError, MalformedRequestError, OutOfRangeError,
                         EnergyProviderUnavailableError)

__all__ = [
    'luminance',
    'forward_energy',
    'DirectLuminance',
    'AcceleratedLuminance',
    'select_energy_provider',
    'trace_seam',
    'seam_cost',
    'remove_seam',
    'insert_seams',
    'BufferPool',
    'SeamCarver',
    'carve_image',
    'overlay_seams',
    'ResizeRequest',
    'ResizeResponse',
    'ResizeWorker',
    'resize_batch',
    'pixels_from_bytes',
    'pixels_to_bytes',
    'SeamCarvingError',
    'MalformedRequestError',
    'OutOfRangeError',
    'EnergyProviderUnavailableError',
]
