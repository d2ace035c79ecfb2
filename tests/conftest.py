# tests/conftest.py
import sys, os
# Add project root to sys.path so both `bend_sim` and `cli` are importable
ROOT = os.path.dirname(os.path.dirname(__file__))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import pytest

from bend_sim.core.bend32 import build_table
from bend_sim.core.cpu import CPU
from bend_sim.core.decoder import encode_instr
from bend_sim.core.trap import TrapHandler


@pytest.fixture
def table():
    return build_table()


@pytest.fixture
def trap_out():
    return []


@pytest.fixture
def cpu(table, trap_out):
    return CPU(table=table, trap=TrapHandler(collector=trap_out))


@pytest.fixture
def asm(table):
    """asm('PACK', 1, 0, 5) -> encoded word"""
    def _asm(mnemonic, *operands):
        return encode_instr(table, mnemonic, *operands)
    return _asm
