"""
CHIP-8 VM — CPU Register Set + Call Stack

Register model:
  V0–VF  — 16 x 8-bit general registers. VF doubles as the flag register
           (carry, NOT-borrow, shifted-out bit, sprite collision) and is
           clobbered by the instructions that produce those.
  I      — 16-bit address register
  PC     — 16-bit program counter (starts at $200)
  SP     — index of the next free stack slot, 0..16
  stack  — 16 return addresses, fixed depth
"""

from ..config import NUM_REGISTERS, STACK_DEPTH, PROGRAM_START
from ..errors import StackOverflow, StackUnderflow

VF = 0xF


class Registers:
    """CHIP-8 CPU register set."""

    __slots__ = ('V', 'I', 'PC', 'SP', 'stack')

    def __init__(self):
        self.V = bytearray(NUM_REGISTERS)
        self.I: int = 0
        self.PC: int = PROGRAM_START
        self.SP: int = 0
        self.stack = [0] * STACK_DEPTH

    @property
    def flag(self) -> int:
        return self.V[VF]

    @flag.setter
    def flag(self, value: int):
        self.V[VF] = 1 if value else 0

    # --- Stack operations ---

    def push(self, addr: int):
        """Push a return address. SP post-increments."""
        if self.SP >= STACK_DEPTH:
            raise StackOverflow(f"Stack full ({STACK_DEPTH} levels) at PC=${self.PC:03X}")
        self.stack[self.SP] = addr & 0xFFFF
        self.SP += 1

    def pop(self) -> int:
        """Pop a return address. SP pre-decrements."""
        if self.SP == 0:
            raise StackUnderflow(f"RET with empty stack at PC=${self.PC:03X}")
        self.SP -= 1
        return self.stack[self.SP]

    # --- Display ---

    def display(self) -> str:
        """Single-line register dump for trace output."""
        v = ' '.join(f'{b:02X}' for b in self.V)
        return f"PC={self.PC:03X} I={self.I:03X} SP={self.SP:X} V=[{v}]"

    def reset(self):
        """Reset CPU to power-on state."""
        for i in range(NUM_REGISTERS):
            self.V[i] = 0
        self.I = 0
        self.PC = PROGRAM_START
        self.SP = 0
        for i in range(STACK_DEPTH):
            self.stack[i] = 0
