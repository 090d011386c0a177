"""Контроллер приложения: пакетная конвертация изображений в PPM.

SOLID:
- SRP: класс связывает сервисы (загрузка, экспорт, журнал), сам ничего не разбирает.
- DIP: сервисы передаются как поля и подменяются в тестах.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from bcimgview.services.export_service import ExportService
from bcimgview.services.image_service import ImageService
from bcimgview.services.report_service import ReportService

log = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    source: Path
    output: Optional[Path] = None
    message: Optional[str] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.output is not None


@dataclass
class AppController:
    """Связывает загрузку, экспорт и журнал для одного или нескольких файлов.

    Ответственности:
    - Загрузка изображения через `ImageService`.
    - Запись PPM через `ExportService`.
    - Строка журнала через `ReportService`.
    - Освобождение изображения ровно один раз, с вызовом `on_image_done`.
    """
    image_service: ImageService = field(default_factory=ImageService)
    export_service: ExportService = field(default_factory=ExportService)
    report_service: ReportService = field(default_factory=ReportService)
    on_image_done: Optional[Callable[[], None]] = None
    images_done: int = 0

    def output_path_for(self, source: str | Path) -> Path:
        source = Path(source)
        return source.with_name(source.name + ".ppm")

    def convert(self, source: str | Path, output: str | Path | None = None) -> ConversionResult:
        """Декодирует `source` и пишет PPM.

        Ошибки формата возвращаются в `ConversionResult.reason`.
        `FileNotFoundError`, `OSError` и `AllocationFailure` пробрасываются.
        """
        source = Path(source)
        result = self.image_service.try_load_image(source)
        if not result.ok:
            return ConversionResult(source=source, reason=result.reason)

        image = result.image
        image.cleanup = self._handle_image_done
        out_path = Path(output) if output is not None else self.output_path_for(source)
        with image:
            self.export_service.write_ppm(image, out_path)
            message = self.report_service.describe(image)
            log.info("%s", message)
        return ConversionResult(source=source, output=out_path, message=message)

    # ---- Handlers ----
    def _handle_image_done(self) -> None:
        self.images_done += 1
        if self.on_image_done is not None:
            self.on_image_done()
