"""Загрузка изображений Badly Coded Image и выбор декодера по магическому числу.

Принципы:
- SRP: сервис только определяет формат и делегирует разбор декодеру.
- OCP: новый формат - это ещё одна запись в `DECODERS`.
- Ошибки формата не хранятся в глобальном состоянии: они либо выбрасываются
  (`load_image`, `decode_stream`), либо возвращаются в `DecodeResult`
  (`try_load_image`, `try_decode_stream`).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable, Optional

from bcimgview.config import DecoderLimits
from bcimgview.models.errors import FormatError, UnrecognizedFormat
from bcimgview.models.image_model import DecodedImage
from bcimgview.services.byte_reader import BigEndianReader
from bcimgview.services.flat_decoder import parse_bcflat
from bcimgview.services.progressive_decoder import parse_bcprog
from bcimgview.services.raw_decoder import parse_bcraw

log = logging.getLogger(__name__)

BCRAW_MAGIC = bytes((0x00, 0x42, 0x43, 0x52, 0xC3, 0x84, 0x57, 0x0A))
BCPROG_MAGIC = bytes((0x42, 0x43, 0x50, 0x52, 0xC3, 0x96, 0x47, 0x0A))
BCFLAT_MAGIC = bytes((0x42, 0x43, 0x46, 0x4C, 0xC3, 0x84, 0x54, 0x0A))

Decoder = Callable[[BigEndianReader, DecoderLimits], DecodedImage]

DECODERS: dict[bytes, Decoder] = {
    BCRAW_MAGIC: parse_bcraw,
    BCPROG_MAGIC: parse_bcprog,
    BCFLAT_MAGIC: parse_bcflat,
}

EXTENSIONS = (".bcraw", ".bcprog", ".bcflat")


@dataclass(frozen=True)
class DecodeResult:
    """Итог декодирования: изображение либо ошибка, но не оба сразу."""
    image: Optional[DecodedImage] = None
    error: Optional[FormatError] = None

    @property
    def ok(self) -> bool:
        return self.image is not None

    @property
    def reason(self) -> Optional[str]:
        return self.error.reason if self.error is not None else None


class ImageService:
    def __init__(self, limits: Optional[DecoderLimits] = None) -> None:
        self.limits = limits if limits is not None else DecoderLimits.from_environment()

    def decode_stream(self, stream: BinaryIO) -> DecodedImage:
        """Декодирует одно изображение из двоичного потока.

        Args:
            stream: Поток, установленный на начало файла.

        Returns:
            `DecodedImage`; владение переходит к вызывающему коду.

        Raises:
            UnrecognizedFormat: магическое число не совпало ни с одним форматом.
            FormatError: любая другая ошибка разбора (см. `bcimgview.models.errors`).
            AllocationFailure: растр не удалось выделить.
        """
        reader = BigEndianReader(stream)
        magic = reader.read_exact(8, "magic number")
        decoder = DECODERS.get(magic)
        if decoder is None:
            raise UnrecognizedFormat()
        image = decoder(reader, self.limits)
        log.info(
            "Decoded %s image %dx%d (%d bytes read)",
            image.metadata.kind, image.width, image.height, reader.offset,
        )
        return image

    def load_image(self, file_path: str | Path) -> DecodedImage:
        """Загружает изображение с диска.

        Raises:
            FileNotFoundError: если путь не существует или не указывает на файл.
            FormatError: если файл не является корректным изображением.
        """
        path = Path(file_path)
        if not path.exists() or not path.is_file():
            raise FileNotFoundError(f"Файл не найден: {path}")
        with open(path, "rb") as fh:
            return self.decode_stream(fh)

    def try_decode_stream(self, stream: BinaryIO) -> DecodeResult:
        try:
            return DecodeResult(image=self.decode_stream(stream))
        except FormatError as exc:
            log.warning("Invalid format: %s", exc.reason)
            return DecodeResult(error=exc)

    def try_load_image(self, file_path: str | Path) -> DecodeResult:
        """Как `load_image`, но ошибка формата возвращается в `DecodeResult`."""
        try:
            return DecodeResult(image=self.load_image(file_path))
        except FormatError as exc:
            log.warning("%s: invalid format, %s", file_path, exc.reason)
            return DecodeResult(error=exc)
