"""Строка журнала о каждом показанном или сконвертированном изображении.

Шаблон строки может прийти из тега FRMT, то есть из файла. Он используется только
как данные: подставляются лишь `%d`, `%i`, `%u`, `%s` (с модификаторами `l`, `ll`, `z`)
и `%%`, по порядку, из фиксированного списка аргументов. Всё остальное, включая
неизвестные и лишние `%`-последовательности, копируется как есть.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Optional, Sequence

from bcimgview.models.image_model import DecodedImage

log = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "Displaying image of width %ld and height %ld from %s"
TIME_FORMAT = "%a, %d %b %Y %H:%M:%S %z"

_PLACEHOLDER = re.compile(r"%(?:%|(?:ll|l|z)?[dius])")


def render_template(template: str, args: Sequence[object]) -> str:
    """Подставляет `args` в `template`, не интерпретируя ничего сверх плейсхолдеров."""
    remaining = iter(args)

    def substitute(match: re.Match) -> str:
        token = match.group(0)
        if token == "%%":
            return "%"
        value = next(remaining, None)
        if value is None:
            return token
        return str(value)

    return _PLACEHOLDER.sub(substitute, template)


class ReportService:
    def format_time(self, create_time: Optional[int]) -> str:
        if create_time is None:
            return "recently"
        try:
            return datetime.fromtimestamp(create_time).astimezone().strftime(TIME_FORMAT)
        except (OverflowError, OSError, ValueError):
            return str(create_time)

    def describe(self, image: DecodedImage) -> str:
        """Возвращает строку журнала для изображения."""
        if image.format_template is not None:
            # the template ends at the first NUL, as a C string would
            raw = image.format_template.split(b"\x00", 1)[0]
            template = raw.decode("utf-8", errors="replace")
        else:
            template = DEFAULT_TEMPLATE
        time_str = self.format_time(image.create_time)
        raw_time = image.create_time if image.create_time is not None else -1
        return render_template(template, (image.width, image.height, time_str, raw_time))
