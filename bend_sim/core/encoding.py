# encoding.py: 32-bit word helpers, sign extension, byte packing
from typing import Iterable, List

WORD_BITS = 32
BYTE_PER_WORD = 4
WORD_MASK = (1 << WORD_BITS) - 1
SIGN_BIT = 1 << (WORD_BITS - 1)

REG_BITS = 5
IMM_BITS = 16
TARGET_BITS = 26


def to_twos_complement(val: int) -> int:
    """Wrap any Python int to its unsigned 32-bit pattern."""
    return val & WORD_MASK


def from_twos_complement(bits: int) -> int:
    bits &= WORD_MASK
    if bits & SIGN_BIT:
        return bits - (1 << WORD_BITS)
    return bits


def wrap32(val: int) -> int:
    """Fixed-width signed arithmetic: wrap to [-2^31, 2^31 - 1]."""
    return from_twos_complement(to_twos_complement(val))


def sign_extend(bits: int, width: int) -> int:
    mask = (1 << width) - 1
    bits &= mask
    if bits & (1 << (width - 1)):
        return bits - (1 << width)
    return bits


def word_to_bytes(bits: int, byteorder: str = "little") -> bytes:
    return to_twos_complement(bits).to_bytes(BYTE_PER_WORD, byteorder=byteorder, signed=False)


def bytes_to_word(b: bytes, byteorder: str = "little") -> int:
    return int.from_bytes(b, byteorder=byteorder, signed=False) & WORD_MASK


def parse_hex_words(tokens: Iterable[str]) -> List[int]:
    words = []
    for tok in tokens:
        t = tok.strip().lower()
        if t.startswith("0x"):
            t = t[2:]
        t = t.replace("_", "")
        if not t:
            continue
        if len(t) > 8:
            raise ValueError(f"hex32 too long; expected up to 8 hex digits: {tok!r}")
        words.append(int(t, 16) & WORD_MASK)
    return words
