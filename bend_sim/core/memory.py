# memory.py: sparse byte-addressable store with aligned word access
from typing import Dict, Iterable, List

from .encoding import (
    BYTE_PER_WORD,
    WORD_MASK,
    from_twos_complement,
    word_to_bytes,
    bytes_to_word,
)
from .errors import AddressError

TEXT_BASE = 0x00400000
DATA_BASE = 0x10010000
USER_LIMIT = 0x80000000


class Memory:
    """
    Single coherent byte store covering [base, base + size).
    Untouched bytes read as zero. Word access must be 4-byte aligned.
    """

    def __init__(self, base: int = 0, size: int = USER_LIMIT, byteorder: str = "little"):
        if byteorder not in ("little", "big"):
            raise ValueError(f"byteorder must be 'little' or 'big', got {byteorder!r}")
        if base < 0 or size <= 0 or base + size > WORD_MASK + 1:
            raise ValueError("memory range must lie inside the 32-bit address space")
        self.base = base
        self.size = size
        self.byteorder = byteorder
        self._bytes: Dict[int, int] = {}

    @property
    def limit(self) -> int:
        return self.base + self.size

    def _check_range(self, addr: int, width: int):
        if addr < self.base or addr + width > self.limit:
            raise AddressError(
                addr, f"outside addressable range [0x{self.base:08X}, 0x{self.limit:08X})"
            )

    def _check_word(self, addr: int):
        if addr % BYTE_PER_WORD != 0:
            raise AddressError(addr, "word access not aligned on a 4-byte boundary")
        self._check_range(addr, BYTE_PER_WORD)

    # --- byte I/O ---
    def read_byte(self, addr: int) -> int:
        self._check_range(addr, 1)
        return self._bytes.get(addr, 0)

    def write_byte(self, addr: int, value: int):
        self._check_range(addr, 1)
        self._bytes[addr] = value & 0xFF

    # --- word I/O ---
    def read_bits(self, addr: int) -> int:
        """Unsigned 32-bit word (instruction fetch)."""
        self._check_word(addr)
        raw = bytes(self._bytes.get(addr + i, 0) for i in range(BYTE_PER_WORD))
        return bytes_to_word(raw, self.byteorder)

    def read_word(self, addr: int) -> int:
        return from_twos_complement(self.read_bits(addr))

    def write_word(self, addr: int, value: int):
        self._check_word(addr)
        for i, b in enumerate(word_to_bytes(value, self.byteorder)):
            self._bytes[addr + i] = b

    def load_words(self, base: int, words: Iterable[int]) -> int:
        """Write consecutive words from 'base'; returns the address after the last one."""
        addr = base
        for w in words:
            self.write_word(addr, w)
            addr += BYTE_PER_WORD
        return addr

    def dump(self, addr: int, count: int) -> List[int]:
        return [self.read_bits(addr + i * BYTE_PER_WORD) for i in range(count)]

    def clear(self):
        self._bytes.clear()
