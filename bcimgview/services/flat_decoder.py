"""Декодер BCFLAT: разностное кодирование кодами переменной длины.

Цветное изображение хранится как три полутоновых плоскости (R, G, B) подряд.
Каждая строка плоскости кодируется отдельно: первый отсчёт записан байтом,
каждый следующий - разностью (по модулю 256) с предыдущим. Разности записаны
префиксными кодами длиной от 3 до 13 бит, один код даёт от 1 до 8 отсчётов:

    000            2 отсчёта, разность 0
    0010           3 отсчёта, разность 0
    00110          4 отсчёта, разность 0
    00111xx        5..8 отсчётов, разность 0
    0100xx         2 отсчёта, +1..+4 каждый
    0101xx         2 отсчёта, -4..-1 каждый
    0110xx         3 отсчёта, +1..+4 каждый
    0111xx         3 отсчёта, -4..-1 каждый
    100            1 отсчёт, 0
    1010 / 1011    1 отсчёт, +1 / -1
    11000x         +2, +3
    11001x         -3, -2
    11010xx        +4..+7
    11011xx        -7..-4
    1110sss + ext  +-8..+-127, ширина расширения 3,3,4,4,5,5,6,6
    1111xxx        +-128 (назначен только 1111000, остальные читаются так же)

Ни один код не является префиксом другого, поэтому разделители не нужны.

Биты разбираются через 32-битный сдвиговый регистр: следующие биты находятся в
старших разрядах. Сжатые строки имеют непредсказуемую длину, поэтому байты идут
через буфер упреждающего чтения ограниченного размера, а состояние регистра
переносится между вызовами внутри строки.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from bcimgview.config import FLAT_EXPANSION, DecoderLimits
from bcimgview.models.errors import (
    RowOverflow,
    ShortRead,
    SizeTooLarge,
    SizeTooSmall,
    UnsupportedChannels,
    UnsupportedCodeTable,
)
from bcimgview.models.image_model import (
    BYTES_PER_PIXEL,
    DecodedImage,
    ImageMetadata,
    allocate_raster,
)
from bcimgview.services.byte_reader import BigEndianReader
from bcimgview.services.tag_parser import parse_tags

log = logging.getLogger(__name__)

KIND = "BCFLAT"
CODE_TABLE = 0x0D  # 13-bit dictionary
CHANNELS = 3

REG_BITS = 32
REG_MASK = 0xFFFFFFFF
MAX_CODELEN = 13
PAD_BYTES = 2

_SMALL_DIFFS = (2, 3, -3, -2)
_MEDIUM_DIFFS = (4, 5, 6, 7, -7, -6, -5, -4)
_BAND_BASES = (8, -15, 16, -31, 32, -63, 64, -127)


@dataclass
class FlatDecodeState:
    """Состояние разбора одной строки одной плоскости.

    Fields:
        last: Предыдущий отсчёт.
        reg: Сдвиговый регистр; следующие биты в старших разрядах.
        reg_size: Число занятых разрядов регистра.
    """
    last: int
    reg: int = 0
    reg_size: int = 0


def match_codeword(reg: int) -> tuple[int, int, int]:
    """Распознаёт код в старших битах регистра.

    Returns:
        `(codelen, count, diff)`: длина кода в битах, число отсчётов и разность,
        прибавляемая к каждому из них.
    """
    top = reg >> 28
    if top < 0b0100:
        # 00... repeated pixel
        if reg >> 29 == 0b000:
            return 3, 2, 0
        if top == 0b0010:
            return 4, 3, 0
        if reg >> 27 == 0b00110:
            return 5, 4, 0
        return 7, 5 + ((reg >> 25) & 3), 0
    if top < 0b1000:
        # 01... repeated small differences
        count = 3 if reg & 0x20000000 else 2
        amount = (reg >> 26) & 3
        diff = amount - 4 if reg & 0x10000000 else amount + 1
        return 6, count, diff
    if top < 0b1010:
        return 3, 1, 0
    if top == 0b1010:
        return 4, 1, 1
    if top == 0b1011:
        return 4, 1, -1
    if top == 0b1100:
        return 6, 1, _SMALL_DIFFS[(reg >> 26) & 3]
    if top == 0b1101:
        return 7, 1, _MEDIUM_DIFFS[(reg >> 25) & 7]
    if top == 0b1110:
        subtype = (reg >> 25) & 7
        width = 3 + (subtype >> 1)
        amount = (reg >> (25 - width)) & ((1 << width) - 1)
        return 7 + width, 1, _BAND_BASES[subtype] + amount
    return 7, 1, -128


def decode_chunk(comp: bytes, max_pixels: int, state: FlatDecodeState) -> tuple[int, bytearray]:
    """Декодирует отсчёты из порции сжатых байт.

    Останавливается, когда получено не меньше `max_pixels` отсчётов или когда
    следующий код не помещается в настоящие (не дополняющие) биты. Целые байты,
    оставшиеся в регистре, возвращаются обратно, так что после вызова в регистре
    меньше 8 бит.

    Returns:
        `(consumed, samples)`: число использованных байт `comp` и отсчёты.
        Отсчётов может быть больше `max_pixels`, но не больше чем на `FLAT_EXPANSION`.
    """
    size = len(comp)
    buf = bytes(comp) + bytes(PAD_BYTES)
    last, reg, reg_size = state.last, state.reg, state.reg_size
    padding_bits = 0
    samples = bytearray()
    p = 0

    while len(samples) < max_pixels and p < size + PAD_BYTES:
        while reg_size < MAX_CODELEN:
            if p >= size:
                padding_bits += 8
            reg |= buf[p] << (REG_BITS - 8 - reg_size)
            reg_size += 8
            p += 1

        codelen, count, diff = match_codeword(reg)
        if codelen > reg_size - padding_bits:
            # don't match using padding bits
            break
        for _ in range(count):
            last = (last + diff) & 0xFF
            samples.append(last)

        reg = (reg << codelen) & REG_MASK
        reg_size -= codelen

    # put back whole bytes so the next call starts on a byte boundary
    while reg_size >= 8:
        reg &= ~(0xFF << (REG_BITS - reg_size)) & REG_MASK
        reg_size -= 8
        p -= 1

    assert len(samples) <= max_pixels + FLAT_EXPANSION
    state.last, state.reg, state.reg_size = last, reg, reg_size
    return min(size, p), samples


def read_flat_data(
    reader: BigEndianReader,
    raster: bytearray,
    width: int,
    height: int,
    buffer_size: int,
) -> None:
    """Читает и распаковывает все три плоскости в чередующийся RGB-растр.

    Байты из потока идут через буфер размером до `buffer_size`; первый байт
    строки берётся из буфера, если он там уже есть.

    Raises:
        ShortRead: поток закончился раньше, чем строка была заполнена.
        RowOverflow: последний код строки дал больше отсчётов, чем осталось места.
    """
    stride = BYTES_PER_PIXEL * width
    buf = bytearray()
    for channel in range(CHANNELS):
        for y in range(height):
            row_start = y * stride
            if buf:
                first = buf[0]
                del buf[0]
            else:
                first = reader.read_byte("first byte")
            raster[row_start + channel] = first
            state = FlatDecodeState(last=first)
            x = 1
            while x < width:
                max_pixels = width - x
                if len(buf) < buffer_size:
                    buf += reader.read_up_to(buffer_size - len(buf))
                if not buf:
                    raise ShortRead("too little data")
                consumed, samples = decode_chunk(buf, max_pixels, state)
                if not samples:
                    raise ShortRead("truncated compressed row")
                if len(samples) > max_pixels:
                    raise RowOverflow()
                start = row_start + BYTES_PER_PIXEL * x + channel
                raster[start:start + BYTES_PER_PIXEL * len(samples):BYTES_PER_PIXEL] = samples
                x += len(samples)
                del buf[:consumed]
        log.debug("BCFLAT channel %d decoded", channel)


def parse_bcflat(reader: BigEndianReader, limits: DecoderLimits) -> DecodedImage:
    """Читает BCFLAT после магического числа."""
    flags = reader.read_exact(8, "flags")
    if any(flags[:6]):
        raise UnsupportedCodeTable("reserved flags should be 0")
    if flags[6] != CODE_TABLE:
        raise UnsupportedCodeTable()
    if flags[7] != CHANNELS:
        raise UnsupportedChannels()

    width = reader.read_u64("width")
    height = reader.read_u64("height")
    if width < 1 or height < 1:
        raise SizeTooSmall("size must be positive")
    if width > limits.flat_size_limit or height > limits.flat_size_limit:
        raise SizeTooLarge("size too large compared to stack")
    log.debug("BCFLAT %dx%d", width, height)

    tags = parse_tags(reader, limits.tag_size_limit)

    raster = allocate_raster(width, height)
    read_flat_data(reader, raster, width, height, limits.flat_buffer_size)

    metadata = ImageMetadata(
        kind=KIND,
        width=width,
        height=height,
        create_time=tags.create_time,
        format_template=tags.format_template,
    )
    return DecodedImage(metadata, raster)
