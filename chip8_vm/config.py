"""
CHIP-8 VM — Machine Constants and Run Configuration

Fixed hardware numbers live here as module constants so every component
reads the same values. Per-run behaviour (fault policy, quirks, pacing)
goes through MachineConfig.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from .errors import Fault


# =============================================================================
#  MEMORY MAP
# =============================================================================
MEMORY_SIZE = 0x1000          # 4K address space
PROGRAM_START = 0x200         # ROMs load here, PC starts here
PROGRAM_MAX = MEMORY_SIZE - PROGRAM_START   # 0xE00 = 3584 bytes
FONT_REGION_END = 0x1FF       # Interpreter area [0x000, 0x1FF]
FONT_BASE = 0x050             # Conventional hex-digit font location
FONT_GLYPH_SIZE = 5           # Bytes per glyph


# =============================================================================
#  CPU / PERIPHERALS
# =============================================================================
NUM_REGISTERS = 16
STACK_DEPTH = 16
NUM_KEYS = 16
DISPLAY_WIDTH = 64
DISPLAY_HEIGHT = 32
TIMER_HZ = 60
DEFAULT_INSTRUCTIONS_PER_TICK = 10   # ~600 instructions/s at 60 Hz


# =============================================================================
#  SERIAL HOST LINK
# =============================================================================
SERIAL_PORT = None            # None = autoscan
SERIAL_BAUD = 115200
SERIAL_TIMEOUT = 0.0          # Non-blocking reads, polled once per tick


# =============================================================================
#  LOGGING
# =============================================================================
LOG_DIR_ENV = "CHIP8_LOG_DIR"     # Overrides the default log directory
LOG_DIR_NAME = "logs"             # Default: ./logs under the working directory


class FaultPolicy(Enum):
    HALT = 'halt'
    IGNORE = 'ignore'


@dataclass
class Quirks:
    """Interpreter compatibility switches. All off gives the common modern
    interpreter behaviour; the "chip8" profile restores the COSMAC VIP one.
    """
    shift_uses_vy: bool = False
    load_store_increments_i: bool = False
    logic_resets_vf: bool = False
    jump_uses_vx: bool = False


QUIRK_PROFILES = {
    "chip8": {
        "description": "COSMAC VIP behaviour",
        "quirks": dict(shift_uses_vy=True, load_store_increments_i=True,
                       logic_resets_vf=True, jump_uses_vx=False),
    },
    "schip": {
        "description": "Super-CHIP / CHIP-48 behaviour",
        "quirks": dict(shift_uses_vy=False, load_store_increments_i=False,
                       logic_resets_vf=False, jump_uses_vx=True),
    },
}


def quirks_for(profile: str) -> Quirks:
    """Build a Quirks set from a named profile."""
    if profile not in QUIRK_PROFILES:
        raise ValueError(f"Unknown quirk profile: {profile!r}")
    return Quirks(**QUIRK_PROFILES[profile]["quirks"])


@dataclass
class MachineConfig:
    fault_policy: FaultPolicy = FaultPolicy.HALT
    fault_overrides: Dict[Fault, FaultPolicy] = field(default_factory=dict)
    quirks: Quirks = field(default_factory=Quirks)
    instructions_per_tick: int = DEFAULT_INSTRUCTIONS_PER_TICK
    realtime: bool = False
    seed: Optional[int] = None

    def policy_for(self, fault: Fault) -> FaultPolicy:
        """Per-fault override if one is set, else the global policy."""
        return self.fault_overrides.get(fault, self.fault_policy)
