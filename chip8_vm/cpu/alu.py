"""
CHIP-8 VM — 8-bit ALU Helpers

Pure functions. Each returns (result_byte, vf_flag) and the caller writes
VF after the result, so `8FF4` and friends end with the flag in VF.

Flag conventions:
  add8  VF = 1 on carry out of bit 7 (sum > 255)
  sub8  VF = 1 when NO borrow (a >= b), i.e. inverted borrow
  shr8  VF = bit 0 before the shift
  shl8  VF = bit 7 before the shift
"""


def add8(a: int, b: int) -> tuple:
    result = a + b
    return (result & 0xFF, 1 if result > 0xFF else 0)


def sub8(a: int, b: int) -> tuple:
    return ((a - b) & 0xFF, 1 if a >= b else 0)


def shr8(a: int) -> tuple:
    return (a >> 1, a & 0x01)


def shl8(a: int) -> tuple:
    return ((a << 1) & 0xFF, (a >> 7) & 0x01)


def bcd(value: int) -> tuple:
    """Hundreds, tens, ones of an 8-bit value."""
    value &= 0xFF
    return (value // 100, (value // 10) % 10, value % 10)
