"""Tests for the request/response boundary."""

import asyncio
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import torch
import pytest
from seamcarve.energy import DirectLuminance
from seamcarve.exceptions import MalformedRequestError
from seamcarve.worker import (ResizeRequest, ResizeWorker, resize_batch,
                              pixels_from_bytes, pixels_to_bytes)

from conftest import make_random_image


def _request(W, H, target_w, target_h, index=0, seed=0):
    image = make_random_image(H, W, seed=seed)
    return ResizeRequest(pixels=pixels_to_bytes(image), source_width=W, source_height=H,
                         target_width=target_w, target_height=target_h,
                         request_index=index)


@pytest.fixture
def worker():
    return ResizeWorker(energy_provider=DirectLuminance())


class TestPixelConversion:
    def test_interleaved_layout(self):
        data = bytearray([1, 2, 3, 4, 5, 6, 7, 8])
        pixels = pixels_from_bytes(data, 2, 1)
        assert pixels.shape == (4, 1, 2)
        assert pixels[:, 0, 0].tolist() == [1, 2, 3, 4]
        assert pixels[:, 0, 1].tolist() == [5, 6, 7, 8]
        assert pixels_to_bytes(pixels) == data

    def test_writable_buffer_is_not_copied(self):
        data = bytearray(2 * 2 * 4)
        pixels = pixels_from_bytes(data, 2, 2)
        data[0] = 99
        assert pixels[0, 0, 0].item() == 99

    def test_read_only_buffer_is_accepted(self):
        pixels = pixels_from_bytes(bytes(range(16)), 2, 2)
        assert pixels[:, 1, 1].tolist() == [12, 13, 14, 15]

    def test_size_mismatch(self):
        with pytest.raises(MalformedRequestError):
            pixels_from_bytes(bytearray(15), 2, 2)

    def test_missing_buffer(self):
        with pytest.raises(MalformedRequestError):
            pixels_from_bytes(None, 2, 2)


class TestResizeWorker:
    def test_response_matches_target(self, worker):
        response = worker.handle(_request(10, 8, 7, 11, index=3))
        assert response.ok
        assert (response.final_width, response.final_height) == (7, 11)
        assert response.request_index == 3
        assert len(response.pixels) == 7 * 11 * 4

    def test_matches_engine_output(self, worker):
        image = make_random_image(6, 9)
        request = ResizeRequest(pixels_to_bytes(image), 9, 6, 5, 8)
        response = worker.handle(request)
        expected = worker.carver.resize(image, 5, 8)
        assert response.pixels == pixels_to_bytes(expected)

    def test_takes_ownership_of_pixels(self, worker):
        request = _request(4, 4, 3, 3)
        worker.handle(request)
        assert request.pixels is None

    def test_take_pixels_moves_buffer(self):
        request = _request(2, 2, 1, 1)
        data = request.pixels
        assert request.take_pixels() is data
        assert request.pixels is None

    @pytest.mark.parametrize("dims", [(0, 4, 2, 2), (4, 4, 0, 2), (4, 4, 2, -1), (4, None, 2, 2)])
    def test_bad_dimensions_give_failure_response(self, worker, dims):
        W, H, target_w, target_h = dims
        request = ResizeRequest(bytearray(64), W, H, target_w, target_h, request_index=5)
        response = worker.handle(request)
        assert not response.ok
        assert response.pixels is None
        assert response.request_index == 5
        assert response.error.startswith('MalformedRequestError')

    def test_size_mismatch_gives_failure_response(self, worker):
        request = ResizeRequest(bytearray(10), 2, 2, 1, 1)
        response = worker.handle(request)
        assert not response.ok
        assert (response.final_width, response.final_height) == (0, 0)

    def test_numpy_integer_dimensions_are_accepted(self, worker):
        image = make_random_image(4, 5)
        request = ResizeRequest(pixels_to_bytes(image), np.int64(5), np.int64(4),
                                np.int32(3), np.int64(4), request_index=2)
        response = worker.handle(request)
        assert response.ok, response.error
        assert (response.final_width, response.final_height) == (3, 4)
        assert len(response.pixels) == 3 * 4 * 4

    def test_missing_pixels_gives_failure_response(self, worker):
        assert not worker.handle(ResizeRequest(None, 2, 2, 1, 1)).ok

    def test_unexpected_errors_propagate(self):
        class Exploding:
            def __call__(self, pixels, out=None):
                raise RuntimeError("boom")

        worker = ResizeWorker(energy_provider=Exploding())
        with pytest.raises(RuntimeError, match="boom"):
            worker.handle(_request(4, 4, 3, 4))

    def test_serve_answers_in_order(self, worker):
        async def run():
            inbox, outbox = asyncio.Queue(), asyncio.Queue()
            await inbox.put(_request(6, 6, 4, 6, index=0))
            await inbox.put(_request(6, 6, 8, 3, index=1))
            await inbox.put(None)
            await worker.serve(inbox, outbox)
            return [outbox.get_nowait() for _ in range(outbox.qsize())]

        responses = asyncio.run(run())
        assert [r.request_index for r in responses] == [0, 1]
        assert [(r.final_width, r.final_height) for r in responses] == [(4, 6), (8, 3)]


class TestResizeBatch:
    def test_responses_in_request_order(self):
        requests = [_request(8, 8, 5 + i, 9 - i, index=i, seed=i) for i in range(4)]
        responses = resize_batch(requests, max_workers=2, energy_provider=DirectLuminance())
        assert [r.request_index for r in responses] == [0, 1, 2, 3]
        for i, response in enumerate(responses):
            assert response.ok
            assert (response.final_width, response.final_height) == (5 + i, 9 - i)

    def test_matches_sequential_results(self):
        requests = [_request(7, 5, 4, 6, index=i, seed=i) for i in range(3)]
        expected = [ResizeWorker(energy_provider=DirectLuminance()).handle(
                        _request(7, 5, 4, 6, index=i, seed=i)) for i in range(3)]
        responses = resize_batch(requests, max_workers=3, energy_provider=DirectLuminance())
        assert [r.pixels for r in responses] == [e.pixels for e in expected]

    def test_bad_request_does_not_fail_batch(self):
        requests = [_request(5, 5, 3, 3, index=0),
                    ResizeRequest(bytearray(3), 5, 5, 3, 3, request_index=1)]
        responses = resize_batch(requests, energy_provider=DirectLuminance())
        assert responses[0].ok
        assert not responses[1].ok
