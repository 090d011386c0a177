"""Модели данных для декодированных изображений.

Принципы:
- SRP: только структура данных и правила жизненного цикла, без логики разбора.
- Растр и метаданные хранятся раздельно: `ImageMetadata` неизменяем (`frozen=True`),
  растр принадлежит `DecodedImage` и освобождается ровно один раз.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from bcimgview.models.errors import AllocationFailure, ImageReleasedError

log = logging.getLogger(__name__)

BYTES_PER_PIXEL = 3


@dataclass(frozen=True)
class ImageMetadata:
    """Неизменяемые метаданные изображения.

    Fields:
        kind: Имя формата источника: "BCRAW", "BCPROG" или "BCFLAT".
        width: Ширина, px.
        height: Высота, px.
        create_time: Время создания (Unix), если в файле был тег TIME.
        format_template: Сырые байты тега FRMT. Только данные, никогда не исполняются.
    """
    kind: str
    width: int
    height: int
    create_time: Optional[int] = None
    format_template: Optional[bytes] = None


def allocate_raster(width: int, height: int) -> bytearray:
    """Выделяет растр ровно на `3 * width * height` байт.

    Raises:
        AllocationFailure: если память выделить не удалось.
    """
    num_bytes = BYTES_PER_PIXEL * width * height
    try:
        return bytearray(num_bytes)
    except MemoryError as exc:
        log.critical("Out of memory in allocation of %d bytes", num_bytes)
        raise AllocationFailure(num_bytes) from exc


@dataclass(eq=False)
class DecodedImage:
    """RGB-растр и его метаданные.

    Растр построчный, сверху вниз, слева направо, 3 байта на пиксель (R, G, B),
    без выравнивания строк. Жизненный цикл: создаётся успешным декодированием,
    потребляется вызывающим кодом, освобождается ровно один раз через `release()`.
    """
    metadata: ImageMetadata
    _raster: Optional[bytearray] = field(repr=False)
    cleanup: Optional[Callable[[], None]] = None

    def __post_init__(self) -> None:
        if self._raster is None:
            raise ValueError("Растр не задан")
        expected = BYTES_PER_PIXEL * self.metadata.width * self.metadata.height
        if len(self._raster) != expected:
            raise ValueError(f"Размер растра {len(self._raster)} не равен {expected}")

    @property
    def width(self) -> int:
        return self.metadata.width

    @property
    def height(self) -> int:
        return self.metadata.height

    @property
    def create_time(self) -> Optional[int]:
        return self.metadata.create_time

    @property
    def format_template(self) -> Optional[bytes]:
        return self.metadata.format_template

    @property
    def released(self) -> bool:
        return self._raster is None

    @property
    def raster(self) -> bytearray:
        """Пиксели изображения. После `release()` недоступны."""
        if self._raster is None:
            raise ImageReleasedError("Изображение уже освобождено")
        return self._raster

    def row(self, y: int) -> memoryview:
        """Возвращает представление строки `y` (3 * width байт) без копирования."""
        if not 0 <= y < self.height:
            raise IndexError(f"Строка {y} вне диапазона 0..{self.height - 1}")
        stride = BYTES_PER_PIXEL * self.width
        return memoryview(self.raster)[y * stride:(y + 1) * stride]

    def pixel(self, x: int, y: int) -> tuple[int, int, int]:
        if not 0 <= x < self.width:
            raise IndexError(f"Столбец {x} вне диапазона 0..{self.width - 1}")
        r, g, b = self.row(y)[BYTES_PER_PIXEL * x:BYTES_PER_PIXEL * (x + 1)]
        return r, g, b

    def release(self) -> None:
        """Вызывает деструктор (если задан) и освобождает растр.

        Raises:
            ImageReleasedError: при повторном освобождении.
        """
        if self._raster is None:
            raise ImageReleasedError("Изображение уже освобождено")
        cleanup, self.cleanup = self.cleanup, None
        self._raster = None
        if cleanup is not None:
            cleanup()

    def __enter__(self) -> "DecodedImage":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self.released:
            self.release()
