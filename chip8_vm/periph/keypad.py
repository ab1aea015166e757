"""
CHIP-8 VM — 16-key Hex Keypad

Layout (COSMAC VIP):
    1 2 3 C
    4 5 6 D
    7 8 9 E
    A 0 B F

The host owns the key state and pushes a full 16-bit snapshot once per
cycle via set_keys(); bit N set = key N held. Any key that goes from
released to pressed between snapshots is latched as a press event, which
is what FX0A (LD VX, K) waits on.
"""

from typing import Optional

from ..config import NUM_KEYS

KEY_MASK = (1 << NUM_KEYS) - 1


def _check_key(key: int):
    if not 0 <= key < NUM_KEYS:
        raise ValueError(f"Key {key} outside 0-F")


class Keypad:

    def __init__(self):
        self._state = 0
        self._events = 0    # Latched released→pressed transitions

    @property
    def mask(self) -> int:
        return self._state

    def set_keys(self, mask: int):
        """Replace the key snapshot, latching new presses."""
        mask &= KEY_MASK
        self._events |= mask & ~self._state
        self._state = mask

    def press(self, key: int):
        _check_key(key)
        self.set_keys(self._state | (1 << key))

    def release(self, key: int):
        _check_key(key)
        self.set_keys(self._state & ~(1 << key))

    def is_pressed(self, key: int) -> bool:
        _check_key(key)
        return bool(self._state >> key & 1)

    def wait_for_key(self) -> Optional[int]:
        """Consume the lowest pending press event, or None if there is none."""
        if not self._events:
            return None
        key = (self._events & -self._events).bit_length() - 1
        self._events &= ~(1 << key)
        return key

    def flush_events(self):
        """Drop stale presses so FX0A only sees keys pressed after it starts."""
        self._events = 0

    def reset(self):
        self._state = 0
        self._events = 0
