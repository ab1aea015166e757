"""
CHIP-8 Virtual Machine
======================
A CHIP-8 interpreter meant to run headless as a test workload, with a
serial link for pushing ROMs/keys in and pulling frames out.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌───────────────────────┐
    │ ROM      │───>│  Memory  │───>│   CPU    │───>│ Display/Keypad/Timers │
    │ (.ch8)   │    │  (4K)    │    │ (35 ops) │    │ (periph/)             │
    └──────────┘    └──────────┘    └──────────┘    └───────────────────────┘
                          ▲               ▲
                          └── Machine ────┘  step() / tick_timers() / run()

    - mem/memory.py:    4K address space, font, ROM loading
    - cpu/decoder.py:   word → Instruction (pure)
    - cpu/core.py:      instruction handlers
    - machine.py:       cycle loop, 60 Hz timers, fault policy
    - host/:            serial packet framing + pyserial host
"""

__version__ = "0.1.0"

from .config import MachineConfig, FaultPolicy, Quirks, quirks_for
from .errors import (
    Fault, Chip8Fault, AddressOutOfBounds, StackOverflow, StackUnderflow,
    ProgramTooLarge, InvalidOpcode, UnmappedFont,
)
from .cpu.decoder import Op, Instruction, decode
from .machine import Machine, StopReason
from .disasm import disassemble, format_listing
