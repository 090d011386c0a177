"""Разбор секции тегов, общей для всех трёх форматов.

Каждый тег - 4-байтный идентификатор, 8-байтный размер (big-endian) и полезная
нагрузка этого размера. Идентификатор `DATA` завершает секцию без размера:
сразу за ним идут пиксели.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from bcimgview.config import TAG_SIZE_LIMIT
from bcimgview.models.errors import BadTagSize, TagTooLarge, UnrecognizedTag
from bcimgview.services.byte_reader import BigEndianReader

log = logging.getLogger(__name__)

TAG_DATA = b"DATA"
TAG_TIME = b"TIME"
TAG_FRMT = b"FRMT"


@dataclass(frozen=True)
class TagSection:
    create_time: Optional[int] = None
    format_template: Optional[bytes] = None


def parse_tags(reader: BigEndianReader, size_limit: int = TAG_SIZE_LIMIT) -> TagSection:
    """Читает теги до `DATA` включительно.

    Повторяющиеся TIME и FRMT перезаписывают предыдущие значения.

    Raises:
        ShortRead: поток закончился внутри секции.
        TagTooLarge: объявленный размер больше `size_limit`.
        BadTagSize: TIME размером не 8 байт.
        UnrecognizedTag: неизвестный идентификатор.
    """
    create_time: Optional[int] = None
    format_template: Optional[bytes] = None

    while True:
        ident = reader.read_exact(4, "tag")
        if ident == TAG_DATA:
            log.debug("End of tagged data at offset %d", reader.offset)
            return TagSection(create_time=create_time, format_template=format_template)

        size = reader.read_u64("tag size")
        if size > size_limit:
            raise TagTooLarge()
        log.debug("Tag %r, %d bytes", ident, size)

        if ident == TAG_TIME:
            if size != 8:
                raise BadTagSize("wrong size for TIME")
            create_time = reader.read_u64("TIME")
        elif ident == TAG_FRMT:
            format_template = reader.read_exact(size, "format")
        else:
            raise UnrecognizedTag()
