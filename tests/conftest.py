from __future__ import annotations

import io

import pytest

from bcimgview.config import DecoderLimits
from bcimgview.services.image_service import ImageService


@pytest.fixture
def limits():
    """Default limits, independent of the test process's stack rlimit."""
    return DecoderLimits()


@pytest.fixture
def service(limits):
    return ImageService(limits=limits)


@pytest.fixture
def decode(service):
    """Decode bytes through the dispatcher."""
    def _decode(data: bytes):
        return service.decode_stream(io.BytesIO(data))
    return _decode
