"""
CHIP-8 VM — CPU: fetch / decode / execute

Execution model for one instruction:
  1. Fetch the big-endian word at PC
  2. Decode to an Instruction (pure, see decoder.py)
  3. Run its handler; the handler returns the new PC, or None for PC+2

Every check that can fault (stack depth, memory range for DRW / BCD /
register dump) runs before the handler changes any state, and PC is only
written once the handler has returned. A faulting instruction therefore
leaves the machine exactly as it found it.

FX0A (LD VX, K) is the only instruction that can suspend: with no key
press pending it returns the current PC, so the next step() re-executes
it.
"""

import random
from typing import Callable, Dict, Optional

from ..config import FONT_BASE, FONT_GLYPH_SIZE, FONT_REGION_END, Quirks
from ..errors import UnmappedFont
from ..mem.memory import check_range
from . import alu
from .decoder import Instruction, Op, decode
from .regs import Registers


class CPU:
    """Register file + instruction handlers.

    Memory, display, keypad and timers are owned by the Machine and
    handed in; the CPU only keeps references.
    """

    def __init__(self, memory, display, keypad, timers,
                 quirks: Optional[Quirks] = None,
                 rng: Optional[random.Random] = None):
        self.regs = Registers()
        self.mem = memory
        self.display = display
        self.keypad = keypad
        self.timers = timers
        self.quirks = quirks or Quirks()
        self.rng = rng or random.Random()

        self.waiting_for_key = False

        self._dispatch = self._build_dispatch()

    # ══════════════════════════════════════════════
    # Fetch / decode / execute
    # ══════════════════════════════════════════════

    def fetch(self) -> int:
        return self.mem.read_word(self.regs.PC)

    @staticmethod
    def decode(word: int) -> Instruction:
        return decode(word)

    def execute(self, ins: Instruction):
        pc = self.regs.PC
        new_pc = self._dispatch[ins.op](ins)
        self.regs.PC = ((pc + 2) if new_pc is None else new_pc) & 0xFFFF

    def reset(self):
        self.regs.reset()
        self.waiting_for_key = False

    def _build_dispatch(self) -> Dict[Op, Callable]:
        table = {
            # ── Flow control ──
            Op.SYS:      self._op_sys,
            Op.CLS:      self._op_cls,
            Op.RET:      self._op_ret,
            Op.JP:       self._op_jp,
            Op.CALL:     self._op_call,
            Op.JP_V0:    self._op_jp_v0,

            # ── Skips ──
            Op.SE_BYTE:  self._op_se_byte,
            Op.SNE_BYTE: self._op_sne_byte,
            Op.SE_REG:   self._op_se_reg,
            Op.SNE_REG:  self._op_sne_reg,
            Op.SKP:      self._op_skp,
            Op.SKNP:     self._op_sknp,

            # ── Loads / ALU ──
            Op.LD_BYTE:  self._op_ld_byte,
            Op.ADD_BYTE: self._op_add_byte,
            Op.LD_REG:   self._op_ld_reg,
            Op.OR:       self._op_or,
            Op.AND:      self._op_and,
            Op.XOR:      self._op_xor,
            Op.ADD_REG:  self._op_add_reg,
            Op.SUB:      self._op_sub,
            Op.SHR:      self._op_shr,
            Op.SUBN:     self._op_subn,
            Op.SHL:      self._op_shl,
            Op.LD_I:     self._op_ld_i,
            Op.RND:      self._op_rnd,

            # ── Display ──
            Op.DRW:      self._op_drw,

            # ── Timers / keys ──
            Op.LD_VX_DT: self._op_ld_vx_dt,
            Op.LD_VX_K:  self._op_ld_vx_k,
            Op.LD_DT_VX: self._op_ld_dt_vx,
            Op.LD_ST_VX: self._op_ld_st_vx,

            # ── Index register / memory ──
            Op.ADD_I:    self._op_add_i,
            Op.LD_F:     self._op_ld_f,
            Op.LD_B:     self._op_ld_b,
            Op.STORE:    self._op_store,
            Op.LOAD:     self._op_load,
        }
        missing = set(Op) - set(table)
        if missing:
            raise RuntimeError(f"No handler for: {sorted(op.name for op in missing)}")
        return table

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════
    # Handler signature: handler(ins) -> Optional[int] new PC

    def _skip_if(self, cond: bool) -> int:
        return self.regs.PC + (4 if cond else 2)

    # ── Flow control ──

    def _op_sys(self, ins):
        # Native machine-code routines don't exist here
        return None

    def _op_cls(self, ins):
        self.display.clear()

    def _op_ret(self, ins):
        return self.regs.pop()

    def _op_jp(self, ins):
        return ins.nnn

    def _op_call(self, ins):
        self.regs.push(self.regs.PC + 2)
        return ins.nnn

    def _op_jp_v0(self, ins):
        reg = ins.x if self.quirks.jump_uses_vx else 0
        return ins.nnn + self.regs.V[reg]

    # ── Skips ──

    def _op_se_byte(self, ins):
        return self._skip_if(self.regs.V[ins.x] == ins.kk)

    def _op_sne_byte(self, ins):
        return self._skip_if(self.regs.V[ins.x] != ins.kk)

    def _op_se_reg(self, ins):
        return self._skip_if(self.regs.V[ins.x] == self.regs.V[ins.y])

    def _op_sne_reg(self, ins):
        return self._skip_if(self.regs.V[ins.x] != self.regs.V[ins.y])

    def _op_skp(self, ins):
        return self._skip_if(self.keypad.is_pressed(self.regs.V[ins.x] & 0xF))

    def _op_sknp(self, ins):
        return self._skip_if(not self.keypad.is_pressed(self.regs.V[ins.x] & 0xF))

    # ── Loads / ALU ──

    def _op_ld_byte(self, ins):
        self.regs.V[ins.x] = ins.kk

    def _op_add_byte(self, ins):
        self.regs.V[ins.x] = (self.regs.V[ins.x] + ins.kk) & 0xFF

    def _op_ld_reg(self, ins):
        self.regs.V[ins.x] = self.regs.V[ins.y]

    def _logic(self, ins, value: int):
        self.regs.V[ins.x] = value
        if self.quirks.logic_resets_vf:
            self.regs.flag = 0

    def _op_or(self, ins):
        self._logic(ins, self.regs.V[ins.x] | self.regs.V[ins.y])

    def _op_and(self, ins):
        self._logic(ins, self.regs.V[ins.x] & self.regs.V[ins.y])

    def _op_xor(self, ins):
        self._logic(ins, self.regs.V[ins.x] ^ self.regs.V[ins.y])

    def _op_add_reg(self, ins):
        result, carry = alu.add8(self.regs.V[ins.x], self.regs.V[ins.y])
        self.regs.V[ins.x] = result
        self.regs.flag = carry

    def _op_sub(self, ins):
        result, no_borrow = alu.sub8(self.regs.V[ins.x], self.regs.V[ins.y])
        self.regs.V[ins.x] = result
        self.regs.flag = no_borrow

    def _op_subn(self, ins):
        result, no_borrow = alu.sub8(self.regs.V[ins.y], self.regs.V[ins.x])
        self.regs.V[ins.x] = result
        self.regs.flag = no_borrow

    def _shift_source(self, ins) -> int:
        return self.regs.V[ins.y if self.quirks.shift_uses_vy else ins.x]

    def _op_shr(self, ins):
        result, out = alu.shr8(self._shift_source(ins))
        self.regs.V[ins.x] = result
        self.regs.flag = out

    def _op_shl(self, ins):
        result, out = alu.shl8(self._shift_source(ins))
        self.regs.V[ins.x] = result
        self.regs.flag = out

    def _op_ld_i(self, ins):
        self.regs.I = ins.nnn

    def _op_rnd(self, ins):
        self.regs.V[ins.x] = self.rng.randrange(256) & ins.kk

    # ── Display ──

    def _op_drw(self, ins):
        sprite = self.mem.read_block(self.regs.I, ins.n)
        collision = self.display.draw_sprite(self.regs.V[ins.x], self.regs.V[ins.y], sprite)
        self.regs.flag = collision

    # ── Timers / keys ──

    def _op_ld_vx_dt(self, ins):
        self.regs.V[ins.x] = self.timers.delay

    def _op_ld_vx_k(self, ins):
        if not self.waiting_for_key:
            # Only presses that happen after the wait starts count
            self.keypad.flush_events()
            self.waiting_for_key = True
        key = self.keypad.wait_for_key()
        if key is None:
            return self.regs.PC
        self.regs.V[ins.x] = key
        self.waiting_for_key = False

    def _op_ld_dt_vx(self, ins):
        self.timers.set_delay(self.regs.V[ins.x])

    def _op_ld_st_vx(self, ins):
        self.timers.set_sound(self.regs.V[ins.x])

    # ── Index register / memory ──

    def _op_add_i(self, ins):
        self.regs.I = (self.regs.I + self.regs.V[ins.x]) & 0xFFFF

    def _op_ld_f(self, ins):
        digit = self.regs.V[ins.x] & 0xF
        addr = FONT_BASE + FONT_GLYPH_SIZE * digit
        if addr + FONT_GLYPH_SIZE - 1 > FONT_REGION_END:
            raise UnmappedFont(f"Glyph {digit:X} at ${addr:03X} outside font region")
        self.regs.I = addr

    def _op_ld_b(self, ins):
        check_range(self.regs.I, 3)
        for offset, digit in enumerate(alu.bcd(self.regs.V[ins.x])):
            self.mem.write_byte(self.regs.I + offset, digit)

    def _op_store(self, ins):
        base = self.regs.I
        check_range(base, ins.x + 1)
        for reg in range(ins.x + 1):
            self.mem.write_byte(base + reg, self.regs.V[reg])
        self._post_store_load(ins)

    def _op_load(self, ins):
        block = self.mem.read_block(self.regs.I, ins.x + 1)
        self.regs.V[:ins.x + 1] = block
        self._post_store_load(ins)

    def _post_store_load(self, ins):
        if self.quirks.load_store_increments_i:
            self.regs.I = (self.regs.I + ins.x + 1) & 0xFFFF
