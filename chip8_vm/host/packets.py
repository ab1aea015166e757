"""
CHIP-8 VM — Host Link Packet Framing

Pure protocol layer, no serial I/O here. Two packet kinds share one
envelope:

  [HEADER] [LEN_HI] [LEN_LO] [BODY...]

  'Q'  host → VM  DMA write. BODY = 32-bit big-endian address + payload,
                  LEN = len(payload) + 4.
  'D'  VM → host  Data.      BODY = payload, LEN = len(payload).
                  The VM sends the 256-byte packed framebuffer this way.

Special DMA addresses:
  $00000200    payload is a ROM image → load_program() + reset
  $FFFFFFF0    2-byte payload is the big-endian 16-bit key mask
  anything else  raw write into VM memory
"""

import struct
from typing import Iterator, Tuple

HEADER_DMA = ord('Q')
HEADER_DATA = ord('D')
HEADERS = (HEADER_DMA, HEADER_DATA)

ADDR_KEYS = 0xFFFFFFF0
MAX_LENGTH = 0xFFFF

_ENVELOPE = struct.Struct('>BH')
_ADDRESS = struct.Struct('>I')


class PacketError(Exception):
    """Malformed or oversized packet."""
    pass


def build_dma_packet(address: int, payload: bytes) -> bytes:
    length = len(payload) + _ADDRESS.size
    if length > MAX_LENGTH:
        raise PacketError(f"DMA payload of {len(payload)} bytes does not fit a 16-bit length")
    if not 0 <= address <= 0xFFFFFFFF:
        raise PacketError(f"Address {address:#x} is not 32-bit")
    return _ENVELOPE.pack(HEADER_DMA, length) + _ADDRESS.pack(address) + bytes(payload)


def build_data_packet(payload: bytes) -> bytes:
    if len(payload) > MAX_LENGTH:
        raise PacketError(f"Data payload of {len(payload)} bytes does not fit a 16-bit length")
    return _ENVELOPE.pack(HEADER_DATA, len(payload)) + bytes(payload)


def build_keys_packet(mask: int) -> bytes:
    return build_dma_packet(ADDR_KEYS, (mask & 0xFFFF).to_bytes(2, 'big'))


def split_dma_body(body: bytes) -> Tuple[int, bytes]:
    """Split a 'Q' body into (address, payload)."""
    if len(body) < _ADDRESS.size:
        raise PacketError(f"DMA body of {len(body)} bytes has no address")
    (address,) = _ADDRESS.unpack_from(body)
    return address, bytes(body[_ADDRESS.size:])


def parse_dma_packet(frame: bytes) -> Tuple[int, bytes]:
    """Parse one complete 'Q' frame into (address, payload)."""
    if len(frame) < _ENVELOPE.size:
        raise PacketError("Frame shorter than header")
    header, length = _ENVELOPE.unpack_from(frame)
    if header != HEADER_DMA:
        raise PacketError(f"Expected 'Q' header, got {header:#04x}")
    body = frame[_ENVELOPE.size:]
    if len(body) != length:
        raise PacketError(f"Length field says {length}, frame carries {len(body)}")
    return split_dma_body(body)


class PacketReader:
    """Incremental parser for a byte stream of packets.

    Bytes before a recognised header are discarded (resync after line
    noise or a partial packet from before we opened the port).
    """

    def __init__(self, headers=HEADERS):
        self._headers = bytes(headers)
        self._buf = bytearray()
        self.discarded = 0

    def feed(self, data: bytes):
        self._buf.extend(data)

    def packets(self) -> Iterator[Tuple[str, bytes]]:
        """Yield (header_char, body) for every complete packet buffered."""
        while True:
            start = self._find_header()
            if start < 0:
                self.discarded += len(self._buf)
                self._buf.clear()
                return
            if start:
                self.discarded += start
                del self._buf[:start]

            if len(self._buf) < _ENVELOPE.size:
                return
            header, length = _ENVELOPE.unpack_from(self._buf)
            end = _ENVELOPE.size + length
            if len(self._buf) < end:
                return

            body = bytes(self._buf[_ENVELOPE.size:end])
            del self._buf[:end]
            yield chr(header), body

    def _find_header(self) -> int:
        positions = [self._buf.find(h) for h in self._headers]
        positions = [p for p in positions if p >= 0]
        return min(positions) if positions else -1

    @property
    def pending(self) -> int:
        return len(self._buf)
