"""
CHIP-8 VM — Fault Taxonomy

Components raise these internally (the decoder raises InvalidOpcode, the
stack raises StackOverflow/StackUnderflow, memory raises AddressOutOfBounds).
Machine.step() and Machine.load_program() catch Chip8Fault at the host
boundary and hand back the matching Fault status instead.

Host-side mistakes (bad key index, malformed serial packet) are NOT faults
and use ordinary exceptions.
"""

from enum import Enum


class Fault(Enum):
    OK = 'OK'
    ADDRESS_OUT_OF_BOUNDS = 'ADDRESS_OUT_OF_BOUNDS'
    STACK_OVERFLOW = 'STACK_OVERFLOW'
    STACK_UNDERFLOW = 'STACK_UNDERFLOW'
    PROGRAM_TOO_LARGE = 'PROGRAM_TOO_LARGE'
    INVALID_OPCODE = 'INVALID_OPCODE'
    UNMAPPED_FONT = 'UNMAPPED_FONT'


class Chip8Fault(Exception):
    """Base class for every fault the VM can report."""
    fault = Fault.OK


class AddressOutOfBounds(Chip8Fault):
    fault = Fault.ADDRESS_OUT_OF_BOUNDS

    def __init__(self, addr: int):
        super().__init__(f"Address ${addr:X} outside 4K address space")
        self.addr = addr


class StackOverflow(Chip8Fault):
    fault = Fault.STACK_OVERFLOW


class StackUnderflow(Chip8Fault):
    fault = Fault.STACK_UNDERFLOW


class ProgramTooLarge(Chip8Fault):
    fault = Fault.PROGRAM_TOO_LARGE

    def __init__(self, size: int, limit: int):
        super().__init__(f"Program is {size} bytes, limit is {limit}")
        self.size = size
        self.limit = limit


class InvalidOpcode(Chip8Fault):
    fault = Fault.INVALID_OPCODE

    def __init__(self, word: int):
        super().__init__(f"Unknown opcode #{word:04X}")
        self.word = word


class UnmappedFont(Chip8Fault):
    fault = Fault.UNMAPPED_FONT
