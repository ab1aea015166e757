"""
CHIP-8 VM — 64x32 Monochrome Display

Each row is held as a 64-bit integer, column 0 in bit 63. Sprites are
XORed in; a pixel going from lit to dark is a collision. Sprites wrap
horizontally within their row and vertically to the top of the screen.
"""

from typing import Tuple

from ..config import DISPLAY_WIDTH, DISPLAY_HEIGHT

ROW_MASK = (1 << DISPLAY_WIDTH) - 1


class Display:
    """Framebuffer + sprite blitter.

    `dirty` goes high on every CLS/DRW; the host clears it after it has
    pushed a frame out.
    """

    def __init__(self):
        self._rows = [0] * DISPLAY_HEIGHT
        self.dirty = False

    def clear(self):
        for y in range(DISPLAY_HEIGHT):
            self._rows[y] = 0
        self.dirty = True

    def draw_sprite(self, x: int, y: int, sprite: bytes) -> bool:
        """XOR sprite rows in at (x, y). Returns True on collision."""
        x %= DISPLAY_WIDTH
        y %= DISPLAY_HEIGHT
        collision = False
        for r, bits in enumerate(sprite):
            mask = self._row_mask(x, bits)
            row = (y + r) % DISPLAY_HEIGHT
            if self._rows[row] & mask:
                collision = True
            self._rows[row] ^= mask
        self.dirty = True
        return collision

    @staticmethod
    def _row_mask(x: int, bits: int) -> int:
        """Place the 8 sprite bits at column x, wrapping past column 63."""
        mask = 0
        for bit in range(8):
            if bits & (0x80 >> bit):
                col = (x + bit) % DISPLAY_WIDTH
                mask |= 1 << (DISPLAY_WIDTH - 1 - col)
        return mask & ROW_MASK

    # --- Read-only views ---

    def pixel(self, x: int, y: int) -> bool:
        if not (0 <= x < DISPLAY_WIDTH and 0 <= y < DISPLAY_HEIGHT):
            raise ValueError(f"Pixel ({x}, {y}) off screen")
        return bool(self._rows[y] >> (DISPLAY_WIDTH - 1 - x) & 1)

    def rows(self) -> Tuple[int, ...]:
        return tuple(self._rows)

    def lit_count(self) -> int:
        return sum(bin(row).count('1') for row in self._rows)

    def to_bytes(self) -> bytes:
        """Row-major packed frame, MSB = leftmost pixel (256 bytes)."""
        return b''.join(row.to_bytes(DISPLAY_WIDTH // 8, 'big') for row in self._rows)

    def render_text(self, on: str = '█', off: str = ' ') -> str:
        lines = []
        for row in self._rows:
            lines.append(''.join(
                on if row >> (DISPLAY_WIDTH - 1 - x) & 1 else off
                for x in range(DISPLAY_WIDTH)
            ))
        return '\n'.join(lines)
