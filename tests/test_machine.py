"""
Machine-level tests — load/reset lifecycle, fault policy, run loop,
breakpoints, trace.
"""

from chip8_vm.config import FaultPolicy, MachineConfig, PROGRAM_MAX
from chip8_vm.errors import Fault
from chip8_vm.machine import Machine, StopReason
from conftest import load_words


class TestLifecycle:

    def test_init_state(self, machine):
        assert machine.regs.PC == 0x200
        assert machine.regs.SP == 0
        assert machine.regs.I == 0
        assert not any(machine.regs.V)
        assert machine.timers.delay == 0
        assert machine.timers.sound == 0
        assert machine.mem.read_byte(0x200) == 0

    def test_load_program_status(self, machine):
        assert machine.load_program(bytes(PROGRAM_MAX)) is Fault.OK
        assert machine.load_program(bytes(PROGRAM_MAX + 1)) is Fault.PROGRAM_TOO_LARGE

    def test_load_resets_registers_and_timers(self, machine):
        load_words(machine, [0x6005, 0xF015, 0x2200])
        for _ in range(3):
            machine.step()
        assert machine.regs.SP == 1
        load_words(machine, [0x00E0])
        assert machine.regs.PC == 0x200
        assert machine.regs.SP == 0
        assert machine.regs.V[0] == 0
        assert machine.timers.delay == 0

    def test_reset_keeps_program(self, machine):
        load_words(machine, [0x6042])
        machine.step()
        machine.reset()
        assert machine.regs.V[0] == 0
        assert machine.mem.read_word(0x200) == 0x6042

    def test_load_rom_from_file(self, machine, tmp_path):
        rom = tmp_path / "t.ch8"
        rom.write_bytes(bytes([0x60, 0x07]))
        assert machine.load_rom(rom) is Fault.OK
        machine.step()
        assert machine.regs.V[0] == 7

    def test_instances_are_independent(self):
        a, b = Machine(), Machine()
        load_words(a, [0x6011])
        a.step()
        assert b.regs.V[0] == 0
        assert b.mem.read_byte(0x200) == 0


class TestFaultPolicy:

    def test_halt_policy_sticks(self, machine):
        load_words(machine, [0xFFFF, 0x6001])
        assert machine.step() is Fault.INVALID_OPCODE
        assert machine.halted
        assert machine.step() is Fault.INVALID_OPCODE
        assert machine.regs.PC == 0x200
        assert machine.regs.V[0] == 0

    def test_ignore_policy_skips_instruction(self):
        vm = Machine(MachineConfig(fault_policy=FaultPolicy.IGNORE))
        load_words(vm, [0xFFFF, 0x6001])
        assert vm.step() is Fault.INVALID_OPCODE
        assert not vm.halted
        assert vm.regs.PC == 0x202
        assert vm.step() is Fault.OK
        assert vm.regs.V[0] == 1

    def test_per_fault_override(self):
        config = MachineConfig(
            fault_policy=FaultPolicy.HALT,
            fault_overrides={Fault.INVALID_OPCODE: FaultPolicy.IGNORE},
        )
        vm = Machine(config)
        load_words(vm, [0xFFFF, 0x00EE])
        assert vm.step() is Fault.INVALID_OPCODE
        assert not vm.halted
        assert vm.step() is Fault.STACK_UNDERFLOW
        assert vm.halted

    def test_ignored_stack_overflow_changes_nothing(self):
        vm = Machine(MachineConfig(fault_policy=FaultPolicy.IGNORE))
        load_words(vm, [0x2200])
        for _ in range(16):
            vm.step()
        stack = list(vm.regs.stack)
        assert vm.step() is Fault.STACK_OVERFLOW
        assert vm.regs.stack == stack
        assert vm.regs.SP == 16
        assert vm.regs.PC == 0x202

    def test_pc_running_off_the_end(self, machine):
        load_words(machine, [0x1FFE])
        machine.mem.load_binary(bytes([0x1F, 0xFF]), 0xFFE)   # JP $FFF
        machine.step()
        machine.step()
        assert machine.regs.PC == 0xFFF
        assert machine.step() is Fault.ADDRESS_OUT_OF_BOUNDS

    def test_reset_clears_halt(self, machine):
        load_words(machine, [0xFFFF])
        machine.step()
        machine.reset()
        assert not machine.halted
        assert machine.last_fault is Fault.OK


class TestRunLoop:

    def test_timeout_counts_ticks(self, machine):
        load_words(machine, [0x1200])   # JP $200 forever
        assert machine.run(instructions_per_tick=5, max_ticks=3) is StopReason.TIMEOUT
        assert machine.ticks == 3
        assert machine.instructions == 15

    def test_timers_tick_once_per_batch(self, machine):
        load_words(machine, [0x6008, 0xF015, 0x1204])
        machine.run(instructions_per_tick=2, max_ticks=1)
        assert machine.timers.delay == 7
        machine.run(instructions_per_tick=100, max_ticks=3)
        assert machine.timers.delay == 4

    def test_fault_stops_run(self, machine):
        load_words(machine, [0x6001, 0xFFFF])
        assert machine.run(10, max_ticks=5) is StopReason.FAULT
        assert machine.last_fault is Fault.INVALID_OPCODE
        assert machine.ticks == 0

    def test_ignored_faults_keep_running(self):
        vm = Machine(MachineConfig(fault_policy=FaultPolicy.IGNORE))
        load_words(vm, [0xFFFF, 0x1200])
        assert vm.run(4, max_ticks=2) is StopReason.TIMEOUT

    def test_host_halt_from_callback(self, machine):
        load_words(machine, [0x1200])
        seen = []

        def on_tick(vm):
            seen.append(vm.ticks)
            if vm.ticks == 2:
                vm.request_halt()

        assert machine.run(3, on_tick=on_tick) is StopReason.HALT_REQUESTED
        assert seen == [1, 2]

    def test_callback_feeds_keys(self, machine):
        load_words(machine, [0xF50A, 0x1202])

        def on_tick(vm):
            if vm.ticks == 2:
                vm.set_keys(1 << 9)

        machine.run(4, on_tick=on_tick, max_ticks=4)
        assert machine.regs.V[5] == 9
        assert machine.regs.PC == 0x202

    def test_zero_instructions_per_tick_only_ticks(self, machine):
        load_words(machine, [0x6003, 0xF015, 0x1204])
        machine.run(2, max_ticks=1)
        assert machine.timers.delay == 2
        assert machine.run(0, max_ticks=3) is StopReason.TIMEOUT
        assert machine.instructions == 2
        assert machine.timers.delay == 0
        assert machine.regs.PC == 0x204

    def test_halt_requested_before_run(self, machine):
        load_words(machine, [0x1200])
        machine.request_halt()
        assert machine.run(2, max_ticks=3) is StopReason.HALT_REQUESTED
        assert machine.instructions == 0
        assert machine.ticks == 0
        # The request is used up by the run it stopped
        assert machine.run(2, max_ticks=1) is StopReason.TIMEOUT

    def test_default_instructions_per_tick(self):
        vm = Machine(MachineConfig(instructions_per_tick=7))
        load_words(vm, [0x1200])
        vm.run(max_ticks=2)
        assert vm.instructions == 14


class TestBreakpoints:

    def test_break_before_instruction(self, machine):
        load_words(machine, [0x6001, 0x6102, 0x6203, 0x1206])
        machine.add_breakpoint(0x204)
        assert machine.run(10, max_ticks=10) is StopReason.BREAK
        assert machine.regs.PC == 0x204
        assert machine.regs.V[2] == 0
        assert machine.regs.V[1] == 2

    def test_resume_steps_past(self, machine):
        load_words(machine, [0x6001, 0x6102, 0x6203, 0x1206])
        machine.add_breakpoint(0x204)
        machine.run(10, max_ticks=10)
        assert machine.run(10, max_ticks=1) is StopReason.TIMEOUT
        assert machine.regs.V[2] == 3

    def test_loop_hits_breakpoint_again(self, machine):
        load_words(machine, [0x7001, 0x1200])
        machine.add_breakpoint(0x200)
        assert machine.run(10, max_ticks=1) is StopReason.BREAK
        assert machine.run(10, max_ticks=1) is StopReason.BREAK
        assert machine.regs.V[0] == 1

    def test_remove_breakpoint(self, machine):
        load_words(machine, [0x1200])
        machine.add_breakpoint(0x200)
        machine.remove_breakpoint(0x200)
        assert machine.run(2, max_ticks=1) is StopReason.TIMEOUT


class TestTrace:

    def test_trace_lines(self, machine):
        load_words(machine, [0x6005, 0x6103, 0x8014])
        machine.enable_trace()
        for _ in range(3):
            machine.step()
        lines = machine.get_trace().splitlines()
        assert len(lines) == 3
        assert lines[0].startswith("$200: LD V0, #05")
        assert lines[2].startswith("$204: ADD V0, V1")
        machine.clear_trace()
        assert machine.get_trace() == ""

    def test_trace_records_fault(self, machine):
        load_words(machine, [0x00EE])
        machine.enable_trace()
        machine.step()
        assert "FAULT STACK_UNDERFLOW" in machine.get_trace()
