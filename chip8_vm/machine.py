"""
CHIP-8 VM — Machine

Top-level unit that owns and wires together:
  - Memory (mem/memory.py)
  - Display, Keypad, Timers (periph/)
  - CPU registers + instruction handlers (cpu/)

Execution model:
  1. step() runs one fetch-decode-execute cycle and returns a Fault
     status; VM faults never escape as exceptions
  2. tick_timers() is the 60 Hz event, driven by the host and independent
     of instruction count
  3. run() interleaves the two: N steps, one tick, then hands control to
     the host callback for rendering / input

Termination reasons for run():
  - HALT_REQUESTED: host called request_halt()
  - FAULT:          fault under the HALT policy
  - BREAK:          breakpoint address reached
  - TIMEOUT:        max_ticks used up

Usage:
    vm = Machine()
    vm.load_program(Path('pong.ch8').read_bytes())
    vm.run(instructions_per_tick=10, on_tick=render, max_ticks=600)
"""

import logging
import random
import time
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Set

from .config import MachineConfig, FaultPolicy, TIMER_HZ
from .cpu.core import CPU
from .errors import Chip8Fault, Fault
from .mem.memory import Memory
from .periph.display import Display
from .periph.keypad import Keypad
from .periph.timer import Timers

log = logging.getLogger(__name__)


class StopReason(Enum):
    HALT_REQUESTED = 'HALT_REQUESTED'
    FAULT = 'FAULT'
    BREAK = 'BREAK'
    TIMEOUT = 'TIMEOUT'


class Machine:
    """CHIP-8 virtual machine."""

    def __init__(self, config: Optional[MachineConfig] = None):
        self.config = config or MachineConfig()

        # Core components
        self.mem = Memory()
        self.display = Display()
        self.keypad = Keypad()
        self.timers = Timers()
        self.cpu = CPU(self.mem, self.display, self.keypad, self.timers,
                       quirks=self.config.quirks,
                       rng=random.Random(self.config.seed))

        # Fault state
        self.halted = False
        self.last_fault = Fault.OK
        self._halt_requested = False

        # Counters
        self.instructions = 0
        self.ticks = 0

        # Breakpoints: set of PC addresses that stop run()
        self._breakpoints: Set[int] = set()
        self._break_skip: Optional[int] = None

        # Trace output
        self._trace = False
        self._trace_output: List[str] = []

    @property
    def regs(self):
        return self.cpu.regs

    @property
    def waiting_for_key(self) -> bool:
        return self.cpu.waiting_for_key

    # ══════════════════════════════════════════════
    # Loading / reset
    # ══════════════════════════════════════════════

    def reset(self):
        """Restart the loaded program: registers, stack, timers, screen.

        Program bytes stay in memory; the font is rewritten in case the
        program scribbled over it.
        """
        self.cpu.reset()
        self.timers.reset()
        self.display.clear()
        self.mem.load_font()
        self.halted = False
        self.last_fault = Fault.OK
        self._halt_requested = False
        self._break_skip = None
        self.instructions = 0
        self.ticks = 0

    def load_program(self, data: bytes) -> Fault:
        """Load a ROM at $200 and reset. Oversized ROMs change nothing."""
        data = bytes(data)
        try:
            self.mem.load_program(data)
        except Chip8Fault as e:
            log.error("Program rejected: %s", e)
            return e.fault
        self.reset()
        log.info("Loaded program: %d bytes", len(data))
        return Fault.OK

    def load_rom(self, path) -> Fault:
        return self.load_program(Path(path).read_bytes())

    # ══════════════════════════════════════════════
    # Host interface
    # ══════════════════════════════════════════════

    def set_keys(self, mask: int):
        self.keypad.set_keys(mask)

    def framebuffer(self) -> tuple:
        """Read-only 64x32 view: 32 row ints, bit 63 = column 0."""
        return self.display.rows()

    def tick_timers(self):
        """60 Hz timer event."""
        self.timers.tick()
        self.ticks += 1

    def request_halt(self):
        """Stop run() at the next instruction boundary.

        A request made while run() is not active stops the next run()
        before it executes anything.
        """
        self._halt_requested = True

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> Fault:
        """Execute one instruction. Returns Fault.OK or the fault kind."""
        if self.halted:
            return self.last_fault

        pc = self.regs.PC
        try:
            ins = self.cpu.decode(self.cpu.fetch())
            if self._trace:
                self._trace_output.append(
                    f"${pc:03X}: {ins.text():16s} {self.regs.display()}")
            log.debug("$%03X: %04X %s", pc, ins.word, ins.text())
            self.cpu.execute(ins)
        except Chip8Fault as e:
            return self._handle_fault(e, pc)

        self.instructions += 1
        return Fault.OK

    def _handle_fault(self, exc: Chip8Fault, pc: int) -> Fault:
        fault = exc.fault
        self.last_fault = fault
        if self._trace:
            self._trace_output.append(f"  FAULT {fault.value}: {exc}")

        if self.config.policy_for(fault) is FaultPolicy.IGNORE:
            log.warning("%s at $%03X ignored: %s", fault.value, pc, exc)
            self.regs.PC = (pc + 2) & 0xFFFF
            self.instructions += 1
        else:
            log.error("%s at $%03X, halting: %s", fault.value, pc, exc)
            self.halted = True
        return fault

    def run(self, instructions_per_tick: Optional[int] = None,
            on_tick: Optional[Callable[['Machine'], None]] = None,
            max_ticks: Optional[int] = None) -> StopReason:
        """Run until halted, faulted, a breakpoint, or max_ticks.

        Args:
            instructions_per_tick: steps between timer ticks (default from config)
            on_tick: host callback, called after every timer tick
            max_ticks: tick budget before TIMEOUT (None = unbounded)
        """
        per_tick = (instructions_per_tick if instructions_per_tick is not None
                    else self.config.instructions_per_tick)
        period = 1.0 / TIMER_HZ
        ticks = 0

        while max_ticks is None or ticks < max_ticks:
            if self._halt_requested:
                return self._consume_halt()
            started = time.perf_counter()

            for _ in range(per_tick):
                if self._halt_requested:
                    return self._consume_halt()
                reason = self._run_one()
                if reason is not None:
                    return reason

            self.tick_timers()
            ticks += 1
            if on_tick is not None:
                on_tick(self)
            if self._halt_requested:
                return self._consume_halt()

            if self.config.realtime:
                remaining = period - (time.perf_counter() - started)
                if remaining > 0:
                    time.sleep(remaining)

        return StopReason.TIMEOUT

    def _consume_halt(self) -> StopReason:
        self._halt_requested = False
        return StopReason.HALT_REQUESTED

    def _run_one(self) -> Optional[StopReason]:
        if self.halted:
            return StopReason.FAULT

        pc = self.regs.PC
        if pc in self._breakpoints and pc != self._break_skip:
            self._break_skip = pc
            log.info("Breakpoint hit at $%03X", pc)
            return StopReason.BREAK
        self._break_skip = None

        self.step()
        if self.halted:
            return StopReason.FAULT
        return None

    # ══════════════════════════════════════════════
    # Breakpoint API
    # ══════════════════════════════════════════════

    def add_breakpoint(self, addr: int):
        """run() stops with BREAK before executing the instruction at addr."""
        self._breakpoints.add(addr & 0xFFFF)

    def remove_breakpoint(self, addr: int):
        self._breakpoints.discard(addr & 0xFFFF)

    def clear_breakpoints(self):
        self._breakpoints.clear()

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def enable_trace(self, enable: bool = True):
        self._trace = enable

    def get_trace(self) -> str:
        return '\n'.join(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()
