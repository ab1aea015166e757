"""
Opcode decoder tests — every instruction form, invalid patterns, purity.
"""

import pytest

from chip8_vm.cpu.decoder import Op, decode, OPCODES
from chip8_vm.errors import InvalidOpcode


class TestDecodeForms:

    def test_all_forms(self):
        cases = [
            (0x0123, Op.SYS,      'SYS #123'),
            (0x00E0, Op.CLS,      'CLS'),
            (0x00EE, Op.RET,      'RET'),
            (0x1ABC, Op.JP,       'JP #ABC'),
            (0x2ABC, Op.CALL,     'CALL #ABC'),
            (0x3A12, Op.SE_BYTE,  'SE VA, #12'),
            (0x4A12, Op.SNE_BYTE, 'SNE VA, #12'),
            (0x5AB0, Op.SE_REG,   'SE VA, VB'),
            (0x6A12, Op.LD_BYTE,  'LD VA, #12'),
            (0x7A12, Op.ADD_BYTE, 'ADD VA, #12'),
            (0x8AB0, Op.LD_REG,   'LD VA, VB'),
            (0x8AB1, Op.OR,       'OR VA, VB'),
            (0x8AB2, Op.AND,      'AND VA, VB'),
            (0x8AB3, Op.XOR,      'XOR VA, VB'),
            (0x8AB4, Op.ADD_REG,  'ADD VA, VB'),
            (0x8AB5, Op.SUB,      'SUB VA, VB'),
            (0x8AB6, Op.SHR,      'SHR VA, VB'),
            (0x8AB7, Op.SUBN,     'SUBN VA, VB'),
            (0x8ABE, Op.SHL,      'SHL VA, VB'),
            (0x9AB0, Op.SNE_REG,  'SNE VA, VB'),
            (0xA123, Op.LD_I,     'LD I, #123'),
            (0xB123, Op.JP_V0,    'JP V0, #123'),
            (0xCA0F, Op.RND,      'RND VA, #0F'),
            (0xDAB5, Op.DRW,      'DRW VA, VB, 5'),
            (0xEA9E, Op.SKP,      'SKP VA'),
            (0xEAA1, Op.SKNP,     'SKNP VA'),
            (0xFA07, Op.LD_VX_DT, 'LD VA, DT'),
            (0xFA0A, Op.LD_VX_K,  'LD VA, K'),
            (0xFA15, Op.LD_DT_VX, 'LD DT, VA'),
            (0xFA18, Op.LD_ST_VX, 'LD ST, VA'),
            (0xFA1E, Op.ADD_I,    'ADD I, VA'),
            (0xFA29, Op.LD_F,     'LD F, VA'),
            (0xFA33, Op.LD_B,     'LD B, VA'),
            (0xFA55, Op.STORE,    'LD [I], VA'),
            (0xFA65, Op.LOAD,     'LD VA, [I]'),
        ]
        assert len(cases) == 35
        for word, op, text in cases:
            ins = decode(word)
            assert ins.op is op, f"{word:04X}: expected {op}, got {ins.op}"
            assert ins.text() == text

    def test_fields(self):
        ins = decode(0xD12F)
        assert (ins.x, ins.y, ins.n) == (0x1, 0x2, 0xF)
        assert ins.kk == 0x2F
        assert ins.nnn == 0x12F

    def test_table_covers_every_op_but_sys(self):
        ops = {op for op, _ in OPCODES.values()}
        assert ops | {Op.SYS} == set(Op)


class TestInvalidOpcodes:

    @pytest.mark.parametrize("word", [
        0x5121,   # 5xy1
        0x8128,   # 8xy8
        0x812F,   # 8xyF
        0x9121,   # 9xy1
        0xE100,   # Ex00
        0xE19F,   # near SKP
        0xF1FF,
        0xF100,
    ])
    def test_rejected(self, word):
        with pytest.raises(InvalidOpcode) as info:
            decode(word)
        assert info.value.word == word


class TestPurity:

    def test_same_word_same_instruction(self):
        assert decode(0x8014) == decode(0x8014)

    def test_independent_of_memory(self, machine):
        """Decoding does not look at memory or registers."""
        before = decode(0xD015)
        machine.mem.write_byte(0x300, 0xFF)
        machine.regs.V[0] = 0x40
        assert decode(0xD015) == before
