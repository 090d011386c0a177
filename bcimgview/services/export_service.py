"""Вывод декодированных изображений для внешних потребителей.

Принципы:
- SRP: сервис ничего не декодирует, только переупаковывает готовый растр.
- Внутренний формат совпадает с телом PPM (P6), поэтому запись - это заголовок
  плюс растр без изменений.
"""
from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
from PIL import Image

from bcimgview.models.image_model import BYTES_PER_PIXEL, DecodedImage

log = logging.getLogger(__name__)


class ExportService:
    def to_array(self, image: DecodedImage) -> np.ndarray:
        """
        Возвращает представление растра numpy `(height, width, 3)`, uint8, без копирования.
        """
        arr = np.frombuffer(image.raster, dtype=np.uint8)
        return arr.reshape(image.height, image.width, BYTES_PER_PIXEL)

    def to_pil(self, image: DecodedImage) -> Image.Image:
        """
        Преобразует изображение в `PIL.Image.Image` в режиме "RGB".
        """
        return Image.frombytes("RGB", (image.width, image.height), bytes(image.raster))

    def ppm_header(self, image: DecodedImage) -> bytes:
        # 255 is the PPM "maxval" for 8 bits per sample
        return f"P6\n{image.width} {image.height}\n255\n".encode("ascii")

    def write_ppm(self, image: DecodedImage, out_path: str | Path) -> Path:
        """Записывает изображение в файл PPM (P6).

        Returns:
            Путь к записанному файлу.

        Raises:
            OSError: если файл не удалось открыть или записать.
        """
        path = Path(out_path)
        self.to_pil(image).save(path, format="PPM")
        log.info("Wrote %dx%d PPM to %s", image.width, image.height, path)
        return path
