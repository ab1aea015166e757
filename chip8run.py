#!/usr/bin/env python3
"""
chip8run — CHIP-8 VM runner

Usage:
    python chip8run.py <rom.ch8> [--cycles 10] [--ticks 600] [--policy halt|ignore]
                                 [--quirks chip8|schip] [--trace] [--screen]

Modes:
    default     run headless for --ticks timer ticks (unbounded if omitted)
    --disasm    print a listing of the ROM and exit
    --serial    serve the VM over a serial port (frames out, keys/ROMs in)

Examples:
    python chip8run.py pong.ch8 --ticks 600 --screen
    python chip8run.py test_opcode.ch8 --ticks 60 --trace -v
    python chip8run.py maze.ch8 --disasm
    python chip8run.py pong.ch8 --serial /dev/ttyUSB0 --realtime

Exit codes: 0 = ran to completion / break / halt, 1 = fault or bad input,
2 = ROM too large.
"""

import argparse
import logging
import sys
from pathlib import Path

from chip8_vm import __version__
from chip8_vm.config import (
    MachineConfig, FaultPolicy, QUIRK_PROFILES, quirks_for,
    DEFAULT_INSTRUCTIONS_PER_TICK, SERIAL_BAUD,
)
from chip8_vm.disasm import format_listing
from chip8_vm.errors import Fault
from chip8_vm.log_setup import setup_logging
from chip8_vm.machine import Machine, StopReason


def parse_int_arg(value: str) -> int:
    """Parse an integer that may be hex (0x... / #... / $...) or decimal."""
    value = value.strip()
    if value.lower().startswith("0x"):
        return int(value, 16)
    if value.startswith(("#", "$")):
        return int(value[1:], 16)
    return int(value)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chip8run",
        description="Headless CHIP-8 virtual machine",
        epilog="Quirk profiles: " + ", ".join(
            f"{k} ({v['description']})" for k, v in QUIRK_PROFILES.items()),
    )
    parser.add_argument("rom", help="CHIP-8 ROM image (raw, loaded at $200)")
    parser.add_argument("--cycles", type=int, default=DEFAULT_INSTRUCTIONS_PER_TICK,
                        help="Instructions per 60 Hz tick (default: %(default)s)")
    parser.add_argument("--ticks", type=int, default=None,
                        help="Stop after this many ticks (default: run until halt)")
    parser.add_argument("--policy", choices=[p.value for p in FaultPolicy],
                        default=FaultPolicy.HALT.value,
                        help="What to do on a fault (default: halt)")
    parser.add_argument("--quirks", choices=list(QUIRK_PROFILES.keys()), default=None,
                        help="Compatibility profile (default: none)")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for RND, for reproducible runs")
    parser.add_argument("--realtime", action="store_true",
                        help="Pace ticks to 60 Hz wall clock")
    parser.add_argument("--trace", action="store_true",
                        help="Print an instruction trace after the run")
    parser.add_argument("--break", dest="breakpoints", action="append", default=[],
                        metavar="ADDR", help="Stop before executing ADDR (repeatable)")
    parser.add_argument("--keys", default=None, metavar="MASK",
                        help="Initial 16-bit key mask, e.g. 0x0010 holds key 4")
    parser.add_argument("--disasm", action="store_true",
                        help="Disassemble the ROM and exit")
    parser.add_argument("--screen", action="store_true",
                        help="Print the final framebuffer as text")
    parser.add_argument("--serial", default=None, metavar="PORT",
                        help="Serve over a serial port instead of running headless")
    parser.add_argument("--baud", type=int, default=SERIAL_BAUD,
                        help="Serial baud rate (default: %(default)s)")
    parser.add_argument("--log-dir", default=None,
                        help="Directory for log files (default: $CHIP8_LOG_DIR, else ./logs)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Show INFO messages on the console")
    parser.add_argument("--version", action="version",
                        version=f"chip8run {__version__}")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    log = setup_logging(
        "chip8_vm",
        console_level=logging.INFO if args.verbose else logging.WARNING,
        log_dir=args.log_dir,
        tag=Path(args.rom).stem,
        step_debug=args.trace,
    )

    try:
        with open(args.rom, "rb") as f:
            rom = f.read()
    except OSError as e:
        print(f"Error reading {args.rom}: {e}", file=sys.stderr)
        return 1

    if args.disasm:
        print(format_listing(rom))
        return 0

    config = MachineConfig(
        fault_policy=FaultPolicy(args.policy),
        instructions_per_tick=args.cycles,
        realtime=args.realtime,
        seed=args.seed,
    )
    if args.quirks:
        config.quirks = quirks_for(args.quirks)

    vm = Machine(config)
    if vm.load_program(rom) is Fault.PROGRAM_TOO_LARGE:
        print(f"Error: {args.rom} is {len(rom)} bytes, larger than the 3584-byte program area",
              file=sys.stderr)
        return 2

    try:
        for addr in args.breakpoints:
            vm.add_breakpoint(parse_int_arg(addr))
        if args.keys is not None:
            vm.set_keys(parse_int_arg(args.keys))
    except ValueError as e:
        print(f"Error: bad number: {e}", file=sys.stderr)
        return 1

    vm.enable_trace(args.trace)

    if args.serial:
        from chip8_vm.host.serial_link import SerialHost, serve
        host = SerialHost(args.serial, args.baud)
        if not host.open():
            print(f"Error: cannot open serial port {args.serial}", file=sys.stderr)
            return 1
        try:
            reason = serve(vm, host, args.cycles, args.ticks)
        except KeyboardInterrupt:
            reason = StopReason.HALT_REQUESTED
        finally:
            host.close()
    else:
        try:
            reason = vm.run(args.cycles, max_ticks=args.ticks)
        except KeyboardInterrupt:
            reason = StopReason.HALT_REQUESTED

    log.info("Stopped: %s after %d instructions, %d ticks",
             reason.value, vm.instructions, vm.ticks)

    if args.trace:
        print(vm.get_trace())
    if args.screen:
        print(vm.display.render_text(on="#", off="."))

    print(f"[chip8run] {reason.value}  PC=${vm.regs.PC:03X}  "
          f"instructions={vm.instructions}  ticks={vm.ticks}"
          + (f"  fault={vm.last_fault.value}" if vm.last_fault is not Fault.OK else ""),
          file=sys.stderr)

    return 1 if reason is StopReason.FAULT else 0


if __name__ == "__main__":
    sys.exit(main())
