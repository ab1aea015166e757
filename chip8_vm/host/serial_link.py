"""
CHIP-8 VM — Serial Host

Drives a Machine from the far end of a serial line. Once per 60 Hz tick:
  - drain whatever the host sent ('Q' packets: ROM loads, key masks,
    raw memory writes) and apply it to the machine
  - if the screen changed, send the packed framebuffer back as a 'D'
    packet

open() reports failure by returning False rather than raising; only the
context manager turns that into a SerialException.
"""

import logging
from typing import List, Optional

import serial
import serial.tools.list_ports

from ..config import PROGRAM_START, SERIAL_BAUD, SERIAL_TIMEOUT
from ..errors import Chip8Fault, Fault
from .packets import (
    ADDR_KEYS, PacketError, PacketReader, build_data_packet, split_dma_body,
)

log = logging.getLogger(__name__)


class SerialHost:
    """Serial framebuffer/keypad bridge for one Machine."""

    def __init__(self, port: Optional[str] = None, baud: int = SERIAL_BAUD,
                 ser=None):
        self.port = port
        self.baud = baud
        self.ser: Optional[serial.Serial] = ser
        self._reader = PacketReader()
        self.frames_sent = 0
        self.packets_received = 0

    @staticmethod
    def scan_ports() -> List[str]:
        """Ports that can currently be opened."""
        ports = []
        for p in serial.tools.list_ports.comports():
            try:
                s = serial.Serial(p.device)
                s.close()
                ports.append(p.device)
            except (serial.SerialException, OSError):
                pass
        return ports

    def open(self) -> bool:
        if self.ser is not None:
            return True
        if self.port is None:
            ports = self.scan_ports()
            if not ports:
                log.error("No serial ports found")
                return False
            self.port = ports[0]
        try:
            self.ser = serial.Serial(
                port=self.port,
                baudrate=self.baud,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=SERIAL_TIMEOUT,
            )
        except serial.SerialException as e:
            log.error("Cannot open %s: %s", self.port, e)
            return False
        log.info("Opened %s @ %d baud", self.port, self.baud)
        return True

    def close(self):
        if self.ser is not None:
            self.ser.close()
            log.info("Closed %s", self.port)
            self.ser = None

    @property
    def is_connected(self) -> bool:
        return self.ser is not None and self.ser.is_open

    def __enter__(self):
        if not self.open():
            raise serial.SerialException(f"Could not open serial port {self.port}")
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # --- Per-tick work ---

    def poll(self, machine) -> int:
        """Apply every complete inbound packet. Returns how many were applied."""
        waiting = self.ser.in_waiting
        if waiting:
            self._reader.feed(self.ser.read(waiting))

        applied = 0
        for header, body in self._reader.packets():
            if header != 'Q':
                log.warning("Ignoring unexpected %r packet from host", header)
                continue
            try:
                address, payload = split_dma_body(body)
            except PacketError as e:
                log.warning("Bad DMA packet: %s", e)
                continue
            self._apply(machine, address, payload)
            applied += 1
        self.packets_received += applied
        return applied

    def _apply(self, machine, address: int, payload: bytes):
        if address == ADDR_KEYS:
            if len(payload) != 2:
                log.warning("Key packet with %d bytes, expected 2", len(payload))
                return
            machine.set_keys(int.from_bytes(payload, 'big'))
        elif address == PROGRAM_START:
            if machine.load_program(payload) is not Fault.OK:
                log.warning("Host sent an oversized program (%d bytes)", len(payload))
        else:
            try:
                machine.mem.load_binary(payload, address)
            except Chip8Fault as e:
                log.warning("DMA write rejected: %s", e)

    def send_frame(self, machine, force: bool = False) -> bool:
        """Send the framebuffer if it changed since the last frame."""
        if not (force or machine.display.dirty):
            return False
        self.ser.write(build_data_packet(machine.display.to_bytes()))
        machine.display.dirty = False
        self.frames_sent += 1
        return True

    def on_tick(self, machine):
        self.poll(machine)
        self.send_frame(machine)


def serve(machine, host: SerialHost, instructions_per_tick: Optional[int] = None,
          max_ticks: Optional[int] = None):
    """Run machine with host polled/refreshed on every timer tick."""
    return machine.run(instructions_per_tick, on_tick=host.on_tick, max_ticks=max_ticks)
