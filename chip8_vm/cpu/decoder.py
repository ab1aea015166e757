"""
CHIP-8 VM — Opcode Decoder

Maps a 16-bit big-endian instruction word to one of the 35 CHIP-8
instruction forms. Decoding is a pure function of the word: no memory or
register state is consulted.

Opcode fields:
  nnn  — low 12 bits (address)
  kk   — low byte (immediate)
  x    — bits 8-11 (register)
  y    — bits 4-7 (register)
  n    — low nibble

Group masks — which bits identify the instruction within its high nibble:
  0x0        exact word (00E0, 00EE), anything else is SYS nnn
  0x5/8/9    high nibble + low nibble   (F00F)
  0xE/F      high nibble + low byte     (F0FF)
  others     high nibble only           (F000)
"""

from dataclasses import dataclass
from enum import Enum

from ..errors import InvalidOpcode


class Op(Enum):
    SYS = 'SYS'
    CLS = 'CLS'
    RET = 'RET'
    JP = 'JP'
    CALL = 'CALL'
    SE_BYTE = 'SE_BYTE'
    SNE_BYTE = 'SNE_BYTE'
    SE_REG = 'SE_REG'
    LD_BYTE = 'LD_BYTE'
    ADD_BYTE = 'ADD_BYTE'
    LD_REG = 'LD_REG'
    OR = 'OR'
    AND = 'AND'
    XOR = 'XOR'
    ADD_REG = 'ADD_REG'
    SUB = 'SUB'
    SHR = 'SHR'
    SUBN = 'SUBN'
    SHL = 'SHL'
    SNE_REG = 'SNE_REG'
    LD_I = 'LD_I'
    JP_V0 = 'JP_V0'
    RND = 'RND'
    DRW = 'DRW'
    SKP = 'SKP'
    SKNP = 'SKNP'
    LD_VX_DT = 'LD_VX_DT'
    LD_VX_K = 'LD_VX_K'
    LD_DT_VX = 'LD_DT_VX'
    LD_ST_VX = 'LD_ST_VX'
    ADD_I = 'ADD_I'
    LD_F = 'LD_F'
    LD_B = 'LD_B'
    STORE = 'STORE'
    LOAD = 'LOAD'


GROUP_MASKS = {
    0x0: 0xFFFF,
    0x5: 0xF00F,
    0x8: 0xF00F,
    0x9: 0xF00F,
    0xE: 0xF0FF,
    0xF: 0xF0FF,
}
DEFAULT_MASK = 0xF000


# ──────────────────────────────────────────────
# Opcode table
# ──────────────────────────────────────────────
# Format: masked pattern -> (op, assembly template)
# Templates use Cowgod's mnemonics; fields {x} {y} {n} {kk} {nnn}.

OPCODES = {
    # ── Flow control ──
    0x00E0: (Op.CLS,      'CLS'),
    0x00EE: (Op.RET,      'RET'),
    0x1000: (Op.JP,       'JP #{nnn:03X}'),
    0x2000: (Op.CALL,     'CALL #{nnn:03X}'),
    0xB000: (Op.JP_V0,    'JP V0, #{nnn:03X}'),

    # ── Conditional skips ──
    0x3000: (Op.SE_BYTE,  'SE V{x:X}, #{kk:02X}'),
    0x4000: (Op.SNE_BYTE, 'SNE V{x:X}, #{kk:02X}'),
    0x5000: (Op.SE_REG,   'SE V{x:X}, V{y:X}'),
    0x9000: (Op.SNE_REG,  'SNE V{x:X}, V{y:X}'),
    0xE09E: (Op.SKP,      'SKP V{x:X}'),
    0xE0A1: (Op.SKNP,     'SKNP V{x:X}'),

    # ── Immediate loads / arithmetic ──
    0x6000: (Op.LD_BYTE,  'LD V{x:X}, #{kk:02X}'),
    0x7000: (Op.ADD_BYTE, 'ADD V{x:X}, #{kk:02X}'),
    0xA000: (Op.LD_I,     'LD I, #{nnn:03X}'),
    0xC000: (Op.RND,      'RND V{x:X}, #{kk:02X}'),

    # ── Register ALU (8xyN) ──
    0x8000: (Op.LD_REG,   'LD V{x:X}, V{y:X}'),
    0x8001: (Op.OR,       'OR V{x:X}, V{y:X}'),
    0x8002: (Op.AND,      'AND V{x:X}, V{y:X}'),
    0x8003: (Op.XOR,      'XOR V{x:X}, V{y:X}'),
    0x8004: (Op.ADD_REG,  'ADD V{x:X}, V{y:X}'),
    0x8005: (Op.SUB,      'SUB V{x:X}, V{y:X}'),
    0x8006: (Op.SHR,      'SHR V{x:X}, V{y:X}'),
    0x8007: (Op.SUBN,     'SUBN V{x:X}, V{y:X}'),
    0x800E: (Op.SHL,      'SHL V{x:X}, V{y:X}'),

    # ── Display ──
    0xD000: (Op.DRW,      'DRW V{x:X}, V{y:X}, {n}'),

    # ── Timers / keys / memory (FxKK) ──
    0xF007: (Op.LD_VX_DT, 'LD V{x:X}, DT'),
    0xF00A: (Op.LD_VX_K,  'LD V{x:X}, K'),
    0xF015: (Op.LD_DT_VX, 'LD DT, V{x:X}'),
    0xF018: (Op.LD_ST_VX, 'LD ST, V{x:X}'),
    0xF01E: (Op.ADD_I,    'ADD I, V{x:X}'),
    0xF029: (Op.LD_F,     'LD F, V{x:X}'),
    0xF033: (Op.LD_B,     'LD B, V{x:X}'),
    0xF055: (Op.STORE,    'LD [I], V{x:X}'),
    0xF065: (Op.LOAD,     'LD V{x:X}, [I]'),
}

SYS_TEMPLATE = 'SYS #{nnn:03X}'


@dataclass(frozen=True)
class Instruction:
    """One decoded instruction word with its operand fields split out."""
    op: Op
    word: int
    template: str

    @property
    def x(self) -> int:
        return (self.word >> 8) & 0xF

    @property
    def y(self) -> int:
        return (self.word >> 4) & 0xF

    @property
    def n(self) -> int:
        return self.word & 0xF

    @property
    def kk(self) -> int:
        return self.word & 0xFF

    @property
    def nnn(self) -> int:
        return self.word & 0xFFF

    def text(self) -> str:
        """Assembly rendering, e.g. 'ADD V0, V1'."""
        return self.template.format(x=self.x, y=self.y, n=self.n,
                                    kk=self.kk, nnn=self.nnn)

    def __str__(self):
        return self.text()


def decode(word: int) -> Instruction:
    """Decode a 16-bit instruction word.

    Raises InvalidOpcode for bit patterns that are not CHIP-8
    instructions (e.g. 5xy1, 8xy8, E000, F0FF).
    """
    word &= 0xFFFF
    group = word >> 12
    pattern = word & GROUP_MASKS.get(group, DEFAULT_MASK)

    entry = OPCODES.get(pattern)
    if entry is not None:
        op, template = entry
        return Instruction(op, word, template)

    if group == 0x0:
        # 0nnn: machine-code call on the COSMAC VIP
        return Instruction(Op.SYS, word, SYS_TEMPLATE)

    raise InvalidOpcode(word)


assert len({op for op, _ in OPCODES.values()} | {Op.SYS}) == len(Op) == 35
