# registers.py: 32 x 32-bit register bank plus program counter
from typing import List

from .encoding import WORD_MASK, wrap32
from .errors import InvalidRegister

NUM_REGISTERS = 32
AVATAR_REGISTER = 27  # "av": Avatar-state flag, 0 or 1


class RegisterFile:
    """
    General-purpose registers r0..r31 (signed 32-bit) and the PC (unsigned).
    Values written are wrapped to 32 bits; the PC is not checked against memory
    here, a bad PC surfaces on the next fetch.

    zero_wired=True turns writes to r0 into no-ops. Off by default: r0 is an
    ordinary register in BEND32.
    """

    def __init__(self, zero_wired: bool = False, pc: int = 0):
        self.zero_wired = zero_wired
        self._regs: List[int] = [0] * NUM_REGISTERS
        self._pc: int = pc & WORD_MASK

    @staticmethod
    def _check(index) -> int:
        if isinstance(index, bool) or not isinstance(index, int):
            raise InvalidRegister(index)
        if not 0 <= index < NUM_REGISTERS:
            raise InvalidRegister(index)
        return index

    def get(self, index: int) -> int:
        return self._regs[self._check(index)]

    def set(self, index: int, value: int):
        self._check(index)
        if index == 0 and self.zero_wired:
            return
        self._regs[index] = wrap32(int(value))

    # ---- program counter ----
    def get_program_counter(self) -> int:
        return self._pc

    def set_program_counter(self, addr: int):
        self._pc = int(addr) & WORD_MASK

    @property
    def pc(self) -> int:
        return self._pc

    @pc.setter
    def pc(self, addr: int):
        self.set_program_counter(addr)

    # ---- Avatar flag ----
    @property
    def avatar(self) -> int:
        return self._regs[AVATAR_REGISTER]

    def snapshot(self) -> List[int]:
        return list(self._regs)

    def reset(self, pc: int = 0):
        self._regs = [0] * NUM_REGISTERS
        self._pc = pc & WORD_MASK

    def __repr__(self):
        nonzero = ", ".join(f"r{i}={v:+d}" for i, v in enumerate(self._regs) if v)
        return f"RegisterFile(pc=0x{self._pc:08X}{', ' + nonzero if nonzero else ''})"
