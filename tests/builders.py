"""Builders for BCRAW/BCPROG/BCFLAT test fixtures.

These are the inverse of the decoders and exist only for tests.
"""

from __future__ import annotations

import struct

from bcimgview.services.image_service import BCFLAT_MAGIC, BCPROG_MAGIC, BCRAW_MAGIC
from bcimgview.services.progressive_decoder import progressive_row_order

RAW_FLAGS = bytes(7) + b"\x08"
PROG_FLAGS = bytes(6) + b"\x01\xd8"
FLAT_FLAGS = bytes(6) + b"\x0d\x03"


def u64(value: int) -> bytes:
    return struct.pack(">Q", value)


def tag(ident: bytes, payload: bytes, size: int | None = None) -> bytes:
    return ident + u64(len(payload) if size is None else size) + payload


def time_tag(ts: int) -> bytes:
    return tag(b"TIME", u64(ts))


def frmt_tag(template: bytes) -> bytes:
    return tag(b"FRMT", template)


def header(magic: bytes, flags: bytes, width: int, height: int, tags: bytes = b"") -> bytes:
    return magic + flags + u64(width) + u64(height) + tags + b"DATA"


# ---------------------------------------------------------------------------
# BCRAW
# ---------------------------------------------------------------------------

def build_bcraw(width: int, height: int, payload: bytes, tags: bytes = b"", flags: bytes = RAW_FLAGS) -> bytes:
    return header(BCRAW_MAGIC, flags, width, height, tags) + payload


# ---------------------------------------------------------------------------
# BCPROG
# ---------------------------------------------------------------------------

def palette_index(r: int, g: int, b: int) -> int:
    """Palette index for base-6 digits (each 0..5)."""
    return 36 * r + 6 * g + b


def build_bcprog(rows: list[list[int]], tags: bytes = b"", flags: bytes = PROG_FLAGS) -> bytes:
    """Interlace rows of palette indices into file order."""
    height = len(rows)
    width = len(rows[0])
    body = b"".join(bytes(rows[y]) for y in progressive_row_order(height))
    return header(BCPROG_MAGIC, flags, width, height, tags) + body


def expected_prog_raster(rows: list[list[int]]) -> bytes:
    out = bytearray()
    for row in rows:
        for idx in row:
            out += bytes((51 * (idx // 36), 51 * ((idx // 6) % 6), 51 * (idx % 6)))
    return bytes(out)


# ---------------------------------------------------------------------------
# BCFLAT
# ---------------------------------------------------------------------------

def bits_to_bytes(bits: str) -> bytes:
    """'0101 1...' -> bytes, zero-padded on the right to a byte boundary."""
    bits = bits.replace(" ", "")
    bits += "0" * (-len(bits) % 8)
    return bytes(int(bits[i:i + 8], 2) for i in range(0, len(bits), 8))


def _signed(diff: int) -> int:
    diff &= 0xFF
    return diff - 256 if diff >= 128 else diff


def _single_code(diff: int) -> str:
    d = _signed(diff)
    if d == 0:
        return "100"
    if d == 1:
        return "1010"
    if d == -1:
        return "1011"
    if d in (2, 3):
        return "11000" + str(d - 2)
    if d in (-3, -2):
        return "11001" + str(d + 3)
    if 4 <= d <= 7:
        return "11010" + format(d - 4, "02b")
    if -7 <= d <= -4:
        return "11011" + format(d + 7, "02b")
    if d == -128:
        return "1111000"
    magnitude = abs(d)
    band = magnitude.bit_length() - 4  # 8..15 -> 0, 16..31 -> 1, ...
    width = 3 + band
    if d > 0:
        subtype, amount = 2 * band, d - (8 << band)
    else:
        subtype, amount = 2 * band + 1, d + (16 << band) - 1
    return "1110" + format(subtype, "03b") + format(amount, f"0{width}b")


_ZERO_RUNS = {2: "000", 3: "0010", 4: "00110"}


def encode_flat_row(samples: list[int]) -> bytes:
    """First sample literal, then greedy run/difference codes, byte aligned."""
    out = [format(samples[0], "08b")]
    diffs = [_signed(b - a) for a, b in zip(samples, samples[1:])]
    i = 0
    while i < len(diffs):
        d = diffs[i]
        run = 1
        while i + run < len(diffs) and diffs[i + run] == d and run < 8:
            run += 1
        if d == 0 and run >= 2:
            if run >= 5:
                out.append("00111" + format(run - 5, "02b"))
            else:
                out.append(_ZERO_RUNS[run])
            i += run
        elif 1 <= abs(d) <= 4 and run >= 2:
            n = min(run, 3)
            sign = "0" if d > 0 else "1"
            amount = d - 1 if d > 0 else d + 4
            out.append("01" + ("1" if n == 3 else "0") + sign + format(amount, "02b"))
            i += n
        else:
            out.append(_single_code(d))
            i += 1
    return bits_to_bytes("".join(out))


def encode_flat_payload(raster: bytes, width: int, height: int) -> bytes:
    """Compress an interleaved RGB raster plane by plane, row by row."""
    body = bytearray()
    for channel in range(3):
        for y in range(height):
            start = 3 * width * y + channel
            samples = list(raster[start:start + 3 * width:3])
            body += encode_flat_row(samples)
    return bytes(body)


def build_bcflat(raster: bytes, width: int, height: int, tags: bytes = b"", flags: bytes = FLAT_FLAGS) -> bytes:
    return header(BCFLAT_MAGIC, flags, width, height, tags) + encode_flat_payload(raster, width, height)
