"""
CHIP-8 VM — 4K Memory

Memory map:
  $000–$1FF  Interpreter area. Hex-digit font lives at FONT_BASE ($050).
  $200–$FFF  Program area (3584 bytes). ROMs are copied here.

There is no write protection: a program may overwrite the font, same as
on the real interpreters. Anything outside $000–$FFF is a fault, there is
no address wraparound.
"""

from typing import Callable, Dict, List, Optional

from ..config import (
    MEMORY_SIZE, PROGRAM_START, PROGRAM_MAX, FONT_BASE, FONT_GLYPH_SIZE,
)
from ..errors import AddressOutOfBounds, ProgramTooLarge


# Hex digit sprites 0-F, 5 bytes each (4 px wide, left-aligned)
FONTSET = bytes([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
])

assert len(FONTSET) == 16 * FONT_GLYPH_SIZE


def check_range(addr: int, length: int = 1):
    """Raise AddressOutOfBounds unless [addr, addr+length) fits in 4K."""
    if addr < 0 or addr >= MEMORY_SIZE:
        raise AddressOutOfBounds(addr)
    end = addr + length - 1
    if end >= MEMORY_SIZE:
        raise AddressOutOfBounds(end)


class Memory:
    """4096 byte-addressable memory.

    The backing store is allocated once; resets and program loads
    overwrite it in place.
    """

    def __init__(self):
        self._mem = bytearray(MEMORY_SIZE)

        # Watchpoints: addr → [callback(addr, old_val, new_val)]
        self._watchpoints: Dict[int, List[Callable]] = {}

        self.load_font()

    # --- Core read/write ---

    def read_byte(self, addr: int) -> int:
        check_range(addr)
        return self._mem[addr]

    def read_word(self, addr: int) -> int:
        """Read 16-bit value (big-endian, CHIP-8 opcode byte order)."""
        check_range(addr, 2)
        return (self._mem[addr] << 8) | self._mem[addr + 1]

    def read_block(self, addr: int, length: int) -> bytes:
        if length <= 0:
            return b''
        check_range(addr, length)
        return bytes(self._mem[addr:addr + length])

    def write_byte(self, addr: int, value: int):
        """Write 8-bit value. Watchpoint callbacks fire on every write."""
        check_range(addr)
        value &= 0xFF
        old = self._mem[addr]

        if addr in self._watchpoints:
            for cb in self._watchpoints[addr]:
                cb(addr, old, value)

        self._mem[addr] = value

    # --- Bulk load ---

    def load_font(self):
        self._mem[FONT_BASE:FONT_BASE + len(FONTSET)] = FONTSET

    def load_program(self, data: bytes):
        """Copy a ROM image to $200, zeroing the rest of the program area.

        Size is checked before anything is touched, so an oversized ROM
        leaves memory exactly as it was.
        """
        if len(data) > PROGRAM_MAX:
            raise ProgramTooLarge(len(data), PROGRAM_MAX)
        self._mem[PROGRAM_START:] = bytes(PROGRAM_MAX)
        self._mem[PROGRAM_START:PROGRAM_START + len(data)] = data

    def load_binary(self, data: bytes, base_addr: int):
        """Raw copy at base_addr (host DMA). Bypasses watchpoints."""
        if not data:
            return
        check_range(base_addr, len(data))
        self._mem[base_addr:base_addr + len(data)] = data

    # --- Watchpoints ---

    def add_watchpoint(self, addr: int, callback: Callable):
        """Call callback(addr, old_val, new_val) on every write to addr."""
        check_range(addr)
        self._watchpoints.setdefault(addr, []).append(callback)

    def remove_watchpoint(self, addr: int, callback: Optional[Callable] = None):
        """Remove a watchpoint. If callback is None, removes all on that addr."""
        if addr in self._watchpoints:
            if callback is None:
                del self._watchpoints[addr]
            else:
                self._watchpoints[addr] = [
                    cb for cb in self._watchpoints[addr] if cb != callback
                ]

    # --- Snapshots ---

    def snapshot(self, start: int = PROGRAM_START, end: int = MEMORY_SIZE - 1) -> bytes:
        """Copy of [start, end] for later diffing."""
        check_range(start, end - start + 1)
        return bytes(self._mem[start:end + 1])

    @staticmethod
    def diff_snapshots(snap_a: bytes, snap_b: bytes,
                       base_addr: int = PROGRAM_START) -> Dict[int, tuple]:
        """Compare two snapshots, return {addr: (old, new)} for changes."""
        changes = {}
        for i in range(min(len(snap_a), len(snap_b))):
            if snap_a[i] != snap_b[i]:
                changes[base_addr + i] = (snap_a[i], snap_b[i])
        return changes

    def hexdump(self, start: int, length: int = 256) -> str:
        """Hex dump of memory for debugging. Stops at the end of memory."""
        lines = []
        for offset in range(0, length, 16):
            addr = start + offset
            if addr >= MEMORY_SIZE:
                break
            row = self._mem[addr:min(addr + 16, MEMORY_SIZE)]
            hex_bytes = ' '.join(f'{b:02X}' for b in row)
            ascii_bytes = ''.join(chr(b) if 0x20 <= b < 0x7F else '.' for b in row)
            lines.append(f'{addr:03X}  {hex_bytes:<47s}  {ascii_bytes}')
        return '\n'.join(lines)
