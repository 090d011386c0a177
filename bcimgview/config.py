"""Лимиты декодера и размеры буферов.

Принципы:
- Все ограничения собраны в одном месте и передаются в декодеры явно.
- `DecoderLimits` неизменяем: конфигурация не меняется во время декодирования.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

try:
    import resource
except ImportError:  # Windows
    resource = None

log = logging.getLogger(__name__)

# Tagged-data section
TAG_SIZE_LIMIT = 1 << 40

# BCPROG: SVGA-era 800x600
PROG_MAX_WIDTH = 800
PROG_MAX_HEIGHT = 600
PROG_MIN_HEIGHT = 2

# BCFLAT: floor(sqrt(2**31 / 3)), so 3*w*h fits in a signed 32-bit int
FLAT_SIZE_LIMIT = 26754
FLAT_BUFFER_SIZE = 100
FLAT_EXPANSION = 8

MAX_RASTER_BYTES = 2**31 - 1


@dataclass(frozen=True)
class DecoderLimits:
    """Ограничения, которые декодеры применяют к входным данным.

    Fields:
        tag_size_limit: Максимальный объявленный размер тега, байт.
        prog_max_width: Максимальная ширина BCPROG, px.
        prog_max_height: Максимальная высота BCPROG, px.
        flat_size_limit: Максимальная ширина и высота BCFLAT, px.
        flat_buffer_size: Размер буфера упреждающего чтения BCFLAT, байт.
        max_raster_bytes: Максимальный размер растра BCRAW, байт.
    """
    tag_size_limit: int = TAG_SIZE_LIMIT
    prog_max_width: int = PROG_MAX_WIDTH
    prog_max_height: int = PROG_MAX_HEIGHT
    flat_size_limit: int = FLAT_SIZE_LIMIT
    flat_buffer_size: int = FLAT_BUFFER_SIZE
    max_raster_bytes: int = MAX_RASTER_BYTES

    def __post_init__(self) -> None:
        # the chunk decoder needs two genuine bytes to cover the longest codeword
        if self.flat_buffer_size < 2:
            raise ValueError(f"flat_buffer_size должен быть >= 2, получено {self.flat_buffer_size}")

    @classmethod
    def from_environment(cls) -> "DecoderLimits":
        """Возвращает лимиты с учётом ограничения стека процесса.

        Если у процесса задан конечный `RLIMIT_STACK`, предел размера BCFLAT
        понижается до `isqrt(stack * 1024 // 3)`, но никогда не повышается.
        """
        stack_limit = _stack_limit()
        if stack_limit is None:
            return cls()
        flat_limit = min(FLAT_SIZE_LIMIT, math.isqrt(stack_limit * 1024 // 3))
        if flat_limit != FLAT_SIZE_LIMIT:
            log.debug("BCFLAT size limit lowered to %d (stack limit %d)", flat_limit, stack_limit)
        return cls(flat_size_limit=flat_limit)


def _stack_limit() -> Optional[int]:
    if resource is None:
        return None
    try:
        soft, _hard = resource.getrlimit(resource.RLIMIT_STACK)
    except (ValueError, OSError):
        return None
    if soft == resource.RLIM_INFINITY or soft < 0:
        return None
    return soft
