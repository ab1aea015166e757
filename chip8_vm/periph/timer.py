"""
CHIP-8 VM — Delay / Sound Timers

Both are 8-bit down-counters ticked by the host at 60 Hz, independent of
how many instructions run in between. They stop at zero, never wrap.
Only the sound timer value is modelled; a nonzero value means "buzzer on"
for whoever renders audio.
"""


class Timers:

    def __init__(self):
        self.delay = 0
        self.sound = 0

    def set_delay(self, value: int):
        self.delay = value & 0xFF

    def set_sound(self, value: int):
        self.sound = value & 0xFF

    @property
    def sound_active(self) -> bool:
        return self.sound > 0

    def tick(self):
        """One 60 Hz tick."""
        if self.delay:
            self.delay -= 1
        if self.sound:
            self.sound -= 1

    def reset(self):
        self.delay = 0
        self.sound = 0
