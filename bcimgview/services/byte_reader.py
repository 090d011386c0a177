"""Чтение полей фиксированной ширины из двоичного потока.

Все числа в Badly Coded Image хранятся как беззнаковые 64-битные big-endian.
Неудачное чтение всегда выражается исключением `ShortRead`, а не значением-сигналом:
0xFFFFFFFFFFFFFFFF - обычное допустимое значение.
"""
from __future__ import annotations

import struct
from typing import BinaryIO

from bcimgview.models.errors import ShortRead

U64 = struct.Struct(">Q")

# exact reads of attacker-declared lengths grow in steps of this size
READ_CHUNK = 64 * 1024


class BigEndianReader:
    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self.offset = 0

    def read_up_to(self, size: int) -> bytes:
        """Читает до `size` байт; меньше возвращается только в конце потока."""
        parts = []
        remaining = size
        while remaining > 0:
            chunk = self._stream.read(min(remaining, READ_CHUNK))
            if not chunk:
                break
            parts.append(chunk)
            remaining -= len(chunk)
        data = b"".join(parts)
        self.offset += len(data)
        return data

    def read_exact(self, size: int, what: str = "data") -> bytes:
        data = self.read_up_to(size)
        if len(data) != size:
            raise ShortRead(f"short read of {what}")
        return data

    def read_into(self, buffer: bytearray | memoryview, what: str = "data") -> None:
        """Заполняет `buffer` целиком, не выделяя промежуточных копий."""
        view = memoryview(buffer)
        filled = 0
        while filled < len(view):
            count = self._stream.readinto(view[filled:])
            if not count:
                raise ShortRead(f"short read of {what}")
            filled += count
            self.offset += count

    def read_u64(self, what: str = "u64") -> int:
        (value,) = U64.unpack(self.read_exact(U64.size, what))
        return value

    def read_byte(self, what: str = "byte") -> int:
        return self.read_exact(1, what)[0]
