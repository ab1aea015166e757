"""Shared fixtures: a fresh Machine per test, plus a helper to poke opcodes in."""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from chip8_vm.machine import Machine


def load_words(machine, words):
    """Load a list of 16-bit opcodes as a ROM at $200."""
    rom = b''.join(w.to_bytes(2, 'big') for w in words)
    machine.load_program(rom)
    return rom


@pytest.fixture
def machine():
    return Machine()
