"""Декодер BCPROG: прогрессивный порядок строк и палитра 6x6x6.

Разбор идёт в два шага:
1) строки читаются в порядке файла (кратные 4, затем 2 mod 4, затем нечётные)
   и сразу кладутся на свои места;
2) каждый байт-индекс раскладывается по основанию 6 (синий - младшая цифра,
   красный - старшая), цифры масштабируются множителем 51.

Раскрытие палитры выполняется не на месте, а в отдельный массив, поэтому
порядок обхода пикселей не важен.
"""
from __future__ import annotations

import logging
from typing import Iterator

import numpy as np

from bcimgview.config import PROG_MIN_HEIGHT, DecoderLimits
from bcimgview.models.errors import (
    InvalidPaletteIndex,
    SizeTooLarge,
    SizeTooSmall,
    UnsupportedDepth,
    UnsupportedPasses,
)
from bcimgview.models.image_model import DecodedImage, ImageMetadata, allocate_raster
from bcimgview.services.byte_reader import BigEndianReader
from bcimgview.services.tag_parser import parse_tags

log = logging.getLogger(__name__)

KIND = "BCPROG"
PASSES_SCHEME = 0x01   # 3-pass row progressive
PALETTE_MARKER = 0xD8  # 216-color "web safe" cube
PALETTE_SIZE = 216
DIGIT_SCALE = 51


def progressive_row_order(height: int) -> Iterator[int]:
    """Порядок, в котором строки хранятся в файле."""
    yield from range(0, height, 4)
    yield from range(2, height, 4)
    yield from range(1, height, 2)


def expand_palette(indices: np.ndarray) -> np.ndarray:
    """Раскрывает массив индексов палитры `(h, w)` в RGB-массив `(h, w, 3)`.

    Raises:
        InvalidPaletteIndex: если встречается индекс >= 216.
    """
    if indices.size and int(indices.max()) >= PALETTE_SIZE:
        raise InvalidPaletteIndex()
    digits = indices.astype(np.uint16)
    red = digits // 36
    green = (digits // 6) % 6
    blue = digits % 6
    rgb = np.stack((red, green, blue), axis=-1) * DIGIT_SCALE
    return rgb.astype(np.uint8)


def parse_bcprog(reader: BigEndianReader, limits: DecoderLimits) -> DecodedImage:
    """Читает BCPROG после магического числа."""
    flags = reader.read_exact(8, "flags")
    if any(flags[:6]):
        raise UnsupportedPasses("reserved flags should be 0")
    if flags[6] != PASSES_SCHEME:
        raise UnsupportedPasses()
    if flags[7] != PALETTE_MARKER:
        raise UnsupportedDepth("unsupported color depth")

    width = reader.read_u64("width")
    height = reader.read_u64("height")
    # tall enough for the progressive algorithm
    if height < PROG_MIN_HEIGHT or width < 1:
        raise SizeTooSmall()
    if height > limits.prog_max_height or width > limits.prog_max_width:
        raise SizeTooLarge()
    log.debug("BCPROG %dx%d", width, height)

    tags = parse_tags(reader, limits.tag_size_limit)

    indices = np.empty((height, width), dtype=np.uint8)
    for row in progressive_row_order(height):
        indices[row] = np.frombuffer(reader.read_exact(width, "row"), dtype=np.uint8)

    raster = allocate_raster(width, height)
    raster[:] = expand_palette(indices).tobytes()

    metadata = ImageMetadata(
        kind=KIND,
        width=width,
        height=height,
        create_time=tags.create_time,
        format_template=tags.format_template,
    )
    return DecodedImage(metadata, raster)
