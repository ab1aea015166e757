"""
CHIP-8 VM — ROM Disassembler

Linear sweep over a raw ROM image. CHIP-8 mixes sprite data in with code,
so anything that doesn't decode is shown as a data word rather than
stopping the listing.

Listing format:
    200  6005  LD V0, #05
    202  8014  ADD V0, V1
    204  FFFF  DW #FFFF
"""

from typing import Iterator, Tuple

from .config import PROGRAM_START
from .cpu.decoder import decode
from .errors import InvalidOpcode


def disassemble(data: bytes, origin: int = PROGRAM_START) -> Iterator[Tuple[int, int, str]]:
    """Yield (address, word, text) for each 2-byte slot in data.

    A trailing odd byte is yielded with text 'DB #XX'.
    """
    for offset in range(0, len(data) - 1, 2):
        word = (data[offset] << 8) | data[offset + 1]
        try:
            text = decode(word).text()
        except InvalidOpcode:
            text = f'DW #{word:04X}'
        yield origin + offset, word, text

    if len(data) % 2:
        last = data[-1]
        yield origin + len(data) - 1, last, f'DB #{last:02X}'


def format_listing(data: bytes, origin: int = PROGRAM_START) -> str:
    lines = []
    for addr, word, text in disassemble(data, origin):
        raw = f'{word:02X}' if text.startswith('DB') else f'{word:04X}'
        lines.append(f'{addr:03X}  {raw:<4s}  {text}')
    return '\n'.join(lines)
