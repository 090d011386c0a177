"""Декодер BCRAW: пиксели хранятся как есть, по 3 байта, без палитры и перестановок."""
from __future__ import annotations

import logging

from bcimgview.config import DecoderLimits
from bcimgview.models.errors import SizeTooLarge, SizeTooSmall, UnsupportedDepth
from bcimgview.models.image_model import (
    BYTES_PER_PIXEL,
    DecodedImage,
    ImageMetadata,
    allocate_raster,
)
from bcimgview.services.byte_reader import BigEndianReader
from bcimgview.services.tag_parser import parse_tags

log = logging.getLogger(__name__)

KIND = "BCRAW"
DEPTH = 8


def parse_bcraw(reader: BigEndianReader, limits: DecoderLimits) -> DecodedImage:
    """Читает BCRAW после магического числа.

    Заголовок: 8 байт флагов (первые 7 нулевые, последний - глубина 8),
    ширина и высота. Затем теги и ровно `3 * width * height` байт пикселей.
    """
    flags = reader.read_exact(8, "flags")
    if any(flags[:7]):
        raise UnsupportedDepth("reserved flags should be 0")
    if flags[7] != DEPTH:
        raise UnsupportedDepth()

    width = reader.read_u64("width")
    height = reader.read_u64("height")
    if width < 1 or height < 1:
        raise SizeTooSmall("size must be positive")
    if BYTES_PER_PIXEL * width * height > limits.max_raster_bytes:
        raise SizeTooLarge()
    log.debug("BCRAW %dx%d", width, height)

    tags = parse_tags(reader, limits.tag_size_limit)

    raster = allocate_raster(width, height)
    reader.read_into(raster, "raw data")

    metadata = ImageMetadata(
        kind=KIND,
        width=width,
        height=height,
        create_time=tags.create_time,
        format_template=tags.format_template,
    )
    return DecodedImage(metadata, raster)
