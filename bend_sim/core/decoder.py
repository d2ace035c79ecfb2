# decoder.py: mask-driven field extraction, plus the inverse encoder and disassembler
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .descriptors import FieldKind, InstructionDescriptor, InstructionTable, operand_names
from .encoding import WORD_MASK, sign_extend, REG_BITS, TARGET_BITS

_ADDR_LIMIT = 1 << (TARGET_BITS + 2)


@dataclass(frozen=True)
class DecodedInstruction:
    word: int
    descriptor: InstructionDescriptor
    operands: Tuple[int, ...]

    @property
    def mnemonic(self) -> str:
        return self.descriptor.mnemonic

    def __str__(self):
        return disassemble(self)


def extract_bits(word: int, positions: Sequence[int]) -> int:
    """Concatenate the given bit positions of 'word', most significant first."""
    val = 0
    for bit in positions:
        val = (val << 1) | ((word >> bit) & 1)
    return val


def convert_field(kind: FieldKind, raw: int, width: int) -> int:
    if kind is FieldKind.REGISTER:
        return raw
    if kind in (FieldKind.IMMEDIATE, FieldKind.OFFSET):
        return sign_extend(raw, width)
    if kind is FieldKind.CODE:
        return raw
    # TARGET: word index -> absolute byte address
    return raw << 2


def extract_operands(descriptor: InstructionDescriptor, word: int) -> Tuple[int, ...]:
    return tuple(
        convert_field(f.kind, extract_bits(word, f.positions), f.width)
        for f in descriptor.fields
    )


def decode(table: InstructionTable, word: int, address: Optional[int] = None) -> DecodedInstruction:
    """Pure: find the matching descriptor and pull its operands out of 'word'."""
    word &= WORD_MASK
    descriptor = table.lookup(word, address)
    return DecodedInstruction(word, descriptor, extract_operands(descriptor, word))


# -----------------------------------------------------------------------
# Encoding (hand assembly for front ends and tests)
# -----------------------------------------------------------------------
def _field_raw(descriptor: InstructionDescriptor, kind: FieldKind, value: int, width: int) -> int:
    name = descriptor.mnemonic
    if kind is FieldKind.REGISTER:
        if not 0 <= value < (1 << REG_BITS):
            raise ValueError(f"{name}: register index {value} out of range 0..31")
        return value
    if kind in (FieldKind.IMMEDIATE, FieldKind.OFFSET):
        lo = -(1 << (width - 1))
        hi = (1 << (width - 1)) - 1
        if not lo <= value <= hi:
            raise ValueError(f"{name}: immediate {value} does not fit in {width} bits")
        return value & ((1 << width) - 1)
    if kind is FieldKind.CODE:
        if not 0 <= value < (1 << width):
            raise ValueError(f"{name}: code {value} out of range 0..{(1 << width) - 1}")
        return value
    if value % 4 != 0:
        raise ValueError(f"{name}: jump target 0x{value:X} is not word aligned")
    if not 0 <= value < _ADDR_LIMIT:
        raise ValueError(f"{name}: jump target 0x{value:X} outside the 26-bit word range")
    return value >> 2


def encode(descriptor: InstructionDescriptor, operands: Sequence[int] = ()) -> int:
    """Build the word that decodes back to 'operands' under 'descriptor'."""
    if len(operands) != len(descriptor.fields):
        raise ValueError(
            f"{descriptor.mnemonic} takes {len(descriptor.fields)} operands, got {len(operands)}"
        )
    word = descriptor.fixed_bits
    for f, value in zip(descriptor.fields, operands):
        raw = _field_raw(descriptor, f.kind, int(value), f.width)
        for i, bit in enumerate(f.positions):
            if (raw >> (f.width - 1 - i)) & 1:
                word |= 1 << bit
    return word & WORD_MASK


def encode_instr(table: InstructionTable, mnemonic: str, *operands: int) -> int:
    return encode(table.find(mnemonic), operands)


# -----------------------------------------------------------------------
# Disassembly
# -----------------------------------------------------------------------
def format_operand(kind: FieldKind, value: int) -> str:
    if kind is FieldKind.REGISTER:
        return f"${value}"
    if kind is FieldKind.TARGET:
        return f"0x{value:08x}"
    return str(value)


def disassemble(decoded: DecodedInstruction) -> str:
    """Render the descriptor's syntax with the decoded operand values substituted."""
    d = decoded.descriptor
    parts = d.syntax.strip().split(None, 1)
    if len(parts) < 2:
        return d.mnemonic
    rendered = parts[1]
    names = operand_names(d.syntax)
    out = []
    pos = 0
    for name, f, value in zip(names, d.fields, decoded.operands):
        idx = rendered.index(name, pos)
        out.append(rendered[pos:idx])
        out.append(format_operand(f.kind, value))
        pos = idx + len(name)
    out.append(rendered[pos:])
    return f"{d.mnemonic} {''.join(out)}"
