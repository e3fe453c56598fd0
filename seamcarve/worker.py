"""
Request/response boundary for frame resizing.

Frames arrive as interleaved row-major RGBA bytes together with their
source and target dimensions, and leave as bytes of exactly the target
dimensions. Pixel buffers are handed over, not shared: a worker takes
ownership of a request's buffer and the request no longer refers to it.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import List, Optional, Sequence

import torch

from .carving import SeamCarver, validate_dimensions
from .config import Config
from .exceptions import MalformedRequestError, OutOfRangeError

logger = logging.getLogger("seamcarve.worker")


@dataclass
class ResizeRequest:
    """A frame to resize."""
    pixels: Optional[bytes]
    source_width: int
    source_height: int
    target_width: int
    target_height: int
    request_index: int = 0

    def take_pixels(self):
        """Hand over the pixel buffer; the request keeps no reference to it."""
        pixels, self.pixels = self.pixels, None
        return pixels


@dataclass
class ResizeResponse:
    """A resized frame, or the reason it could not be produced."""
    pixels: Optional[bytearray]
    final_width: int
    final_height: int
    request_index: int
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def pixels_from_bytes(data, width: int, height: int) -> torch.Tensor:
    """
    Wrap interleaved RGBA bytes as a (4, H, W) uint8 tensor.

    Writable buffers are wrapped without copying; read-only ones are copied.

    Raises:
        MalformedRequestError: missing buffer, bad dimensions or size mismatch
    """
    width, height = validate_dimensions(width=width, height=height)
    if data is None:
        raise MalformedRequestError("missing pixel buffer")

    view = memoryview(data).cast('B')
    expected = width * height * 4
    if view.nbytes != expected:
        raise MalformedRequestError(
            f"buffer holds {view.nbytes} bytes, expected {expected} for {width}x{height} RGBA")
    if view.readonly:
        view = memoryview(bytearray(view))

    flat = torch.frombuffer(view, dtype=torch.uint8)
    return flat.view(height, width, 4).permute(2, 0, 1)


def pixels_to_bytes(pixels: torch.Tensor) -> bytearray:
    """Interleaved row-major RGBA bytes of a (4, H, W) tensor."""
    return bytearray(pixels.permute(1, 2, 0).contiguous().cpu().numpy().tobytes())


class ResizeWorker:
    """Serves resize requests with one SeamCarver (and so one scratch pool).

    Args:
        carver: Engine to use; built from carver_kwargs when omitted
        **carver_kwargs: Passed to SeamCarver
    """

    def __init__(self, carver: Optional[SeamCarver] = None, **carver_kwargs):
        self.carver = carver if carver is not None else SeamCarver(**carver_kwargs)

    def handle(self, request: ResizeRequest) -> ResizeResponse:
        """Resize one frame.

        Malformed and out-of-range requests produce a failure response;
        anything else propagates.
        """
        try:
            source_width, source_height, target_width, target_height = validate_dimensions(
                source_width=request.source_width,
                source_height=request.source_height,
                target_width=request.target_width,
                target_height=request.target_height)
            pixels = pixels_from_bytes(request.take_pixels(), source_width, source_height)
            result = self.carver.resize(pixels, target_width, target_height)
        except (MalformedRequestError, OutOfRangeError) as exc:
            logger.warning("Request %s rejected: %s", request.request_index, exc)
            return ResizeResponse(pixels=None, final_width=0, final_height=0,
                                  request_index=request.request_index,
                                  error=f"{type(exc).__name__}: {exc}")

        _, final_height, final_width = result.shape
        return ResizeResponse(pixels=pixels_to_bytes(result),
                              final_width=final_width,
                              final_height=final_height,
                              request_index=request.request_index)

    async def serve(self, inbox: asyncio.Queue, outbox: asyncio.Queue):
        """Answer requests from `inbox` on `outbox` until a None arrives.

        Requests are processed one at a time; the computation runs in a
        thread so the event loop stays responsive.
        """
        while True:
            request = await inbox.get()
            if request is None:
                break
            response = await asyncio.to_thread(self.handle, request)
            await outbox.put(response)


def _handle_isolated(request: ResizeRequest, carver_kwargs: dict) -> ResizeResponse:
    return ResizeWorker(**carver_kwargs).handle(request)


def resize_batch(requests: Sequence[ResizeRequest], max_workers: Optional[int] = None,
                 **carver_kwargs) -> List[ResizeResponse]:
    """
    Resize independent frames in parallel.

    Every request gets its own worker, so no scratch memory is shared
    between concurrent computations.

    Returns:
        Responses in request order
    """
    responses: List[Optional[ResizeResponse]] = [None] * len(requests)
    with ThreadPoolExecutor(max_workers=max_workers or Config.MAX_WORKERS) as ex:
        futs = {ex.submit(_handle_isolated, request, carver_kwargs): i
                for i, request in enumerate(requests)}
        for fut in as_completed(futs):
            responses[futs[fut]] = fut.result()
    return responses
