"""Ошибки разбора файлов Badly Coded Image.

Каждая ошибка формата несёт стабильную строку `reason`, пригодную для журнала.
Иерархия позволяет ловить как конкретный случай, так и всю группу.
"""
from __future__ import annotations


class FormatError(ValueError):
    """Базовая ошибка: файл не соответствует формату, декодирование прервано."""

    default_reason = "invalid format"

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason or self.default_reason
        super().__init__(self.reason)


class ShortRead(FormatError):
    default_reason = "short read"


class UnsupportedHeader(FormatError):
    """Поле заголовка не совпадает с единственной поддерживаемой конфигурацией."""
    default_reason = "unsupported header"


class UnsupportedDepth(UnsupportedHeader):
    default_reason = "unsupported depth"


class UnsupportedPasses(UnsupportedHeader):
    default_reason = "unsupported passes number"


class UnsupportedChannels(UnsupportedHeader):
    default_reason = "unsupported number of channels"


class UnsupportedCodeTable(UnsupportedHeader):
    default_reason = "unsupported dictionary size"


class SizeTooSmall(FormatError):
    default_reason = "size too small"


class SizeTooLarge(FormatError):
    default_reason = "size too large"


class TagError(FormatError):
    """Повреждённая секция метаданных."""
    default_reason = "malformed tag"


class TagTooLarge(TagError):
    default_reason = "tag too large"


class BadTagSize(TagError):
    default_reason = "wrong tag size"


class UnrecognizedTag(TagError):
    default_reason = "unrecognized tag"


class InvalidPaletteIndex(FormatError):
    default_reason = "invalid packed byte"


class RowOverflow(FormatError):
    default_reason = "excess pixels at end of row"


class UnrecognizedFormat(FormatError):
    default_reason = "unrecognized format"


class AllocationFailure(MemoryError):
    """Растр не удалось выделить. Не является ошибкой формата: процесс завершается."""

    def __init__(self, num_bytes: int) -> None:
        self.num_bytes = num_bytes
        super().__init__(f"Out of memory in allocation of {num_bytes} bytes")


class ImageReleasedError(RuntimeError):
    """Изображение уже освобождено."""
