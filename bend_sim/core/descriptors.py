# descriptors.py: declarative instruction descriptors and the lookup table
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from .encoding import WORD_BITS, REG_BITS, IMM_BITS, TARGET_BITS
from .errors import DuplicatePattern, MaskError, UnknownInstruction

MASK_ALPHABET = set("01fst")
FIELD_TAGS = "fst"  # 1st, 2nd, 3rd operand in textual order

_OPERAND_NAME = re.compile(r"[A-Za-z_]\w*")


class Format(Enum):
    R_FORMAT = "R"
    I_FORMAT = "I"
    I_BRANCH_FORMAT = "I-Branch"
    J_FORMAT = "J"


class FieldKind(Enum):
    REGISTER = "register"
    IMMEDIATE = "immediate"   # sign-extended 16-bit
    OFFSET = "offset"         # sign-extended 16-bit word offset
    CODE = "code"             # unsigned 16-bit trap code
    TARGET = "target"         # 26-bit word index, handed out as a byte address


# width of the one non-register field each format may carry
IMMEDIATE_WIDTH = {
    Format.R_FORMAT: None,
    Format.I_FORMAT: IMM_BITS,
    Format.I_BRANCH_FORMAT: IMM_BITS,
    Format.J_FORMAT: TARGET_BITS,
}

IMMEDIATE_KIND = {
    Format.I_FORMAT: FieldKind.IMMEDIATE,
    Format.I_BRANCH_FORMAT: FieldKind.OFFSET,
    Format.J_FORMAT: FieldKind.TARGET,
}


@dataclass(frozen=True)
class OperandField:
    tag: str
    positions: Tuple[int, ...]   # bit numbers, most significant first
    kind: FieldKind

    @property
    def width(self) -> int:
        return len(self.positions)


def parse_mask(mask: str) -> Tuple[int, int, Dict[str, Tuple[int, ...]]]:
    """
    Split a 32-char template into (fixed_mask, fixed_bits, {tag: positions}).
    Character 0 of the string is bit 31.
    """
    if len(mask) != WORD_BITS:
        raise MaskError(f"mask must be {WORD_BITS} characters, got {len(mask)}: {mask!r}")
    bad = set(mask) - MASK_ALPHABET
    if bad:
        raise MaskError(f"mask {mask!r} has characters outside 0,1,f,s,t: {sorted(bad)}")
    fixed_mask = 0
    fixed_bits = 0
    fields: Dict[str, List[int]] = {}
    for i, ch in enumerate(mask):
        bit = WORD_BITS - 1 - i
        if ch in "01":
            fixed_mask |= 1 << bit
            if ch == "1":
                fixed_bits |= 1 << bit
        else:
            fields.setdefault(ch, []).append(bit)
    return fixed_mask, fixed_bits, {k: tuple(v) for k, v in fields.items()}


def operand_names(syntax: str) -> List[str]:
    """Operand names of a syntax string, in textual order ('FLOW rt,imm(rs)' -> rt, imm, rs)."""
    parts = syntax.strip().split(None, 1)
    if len(parts) < 2:
        return []
    return _OPERAND_NAME.findall(parts[1])


@dataclass(frozen=True)
class InstructionDescriptor:
    """
    One catalog entry. The routine is called as
    routine(operands, registers, memory, trap) and returns the next PC.
    """
    mnemonic: str
    syntax: str
    fmt: Format
    mask: str
    routine: Callable = field(compare=False, repr=False)
    description: str = ""
    unsigned_imm: bool = False
    fixed_mask: int = field(init=False, repr=False)
    fixed_bits: int = field(init=False, repr=False)
    fields: Tuple[OperandField, ...] = field(init=False, repr=False)

    def __post_init__(self):
        fixed_mask, fixed_bits, raw = parse_mask(self.mask)
        tags = "".join(t for t in FIELD_TAGS if t in raw)
        if tags != FIELD_TAGS[:len(tags)]:
            raise MaskError(f"{self.mnemonic}: operand tags must be used in order f,s,t (got {tags!r})")

        imm_width = IMMEDIATE_WIDTH[self.fmt]
        fields = []
        immediates = 0
        for tag in tags:
            positions = raw[tag]
            if len(positions) == REG_BITS:
                kind = FieldKind.REGISTER
            elif imm_width is not None and len(positions) == imm_width:
                kind = IMMEDIATE_KIND[self.fmt]
                if self.unsigned_imm and kind is FieldKind.IMMEDIATE:
                    kind = FieldKind.CODE
                immediates += 1
            else:
                raise MaskError(
                    f"{self.mnemonic}: field '{tag}' is {len(positions)} bits wide, "
                    f"not valid for {self.fmt.value} format"
                )
            fields.append(OperandField(tag, positions, kind))
        if immediates > 1:
            raise MaskError(f"{self.mnemonic}: more than one immediate field")

        names = operand_names(self.syntax)
        if len(names) != len(fields):
            raise MaskError(
                f"{self.mnemonic}: syntax {self.syntax!r} names {len(names)} operands, "
                f"mask declares {len(fields)}"
            )
        if not callable(self.routine):
            raise MaskError(f"{self.mnemonic}: routine is not callable")

        object.__setattr__(self, "fixed_mask", fixed_mask)
        object.__setattr__(self, "fixed_bits", fixed_bits)
        object.__setattr__(self, "fields", tuple(fields))

    def matches(self, word: int) -> bool:
        return (word & self.fixed_mask) == self.fixed_bits

    def conflicts_with(self, other: "InstructionDescriptor") -> bool:
        """True if some word satisfies both fixed-bit patterns."""
        common = self.fixed_mask & other.fixed_mask
        return ((self.fixed_bits ^ other.fixed_bits) & common) == 0


class InstructionTable:
    """Registry of descriptors; every word matches at most one entry."""

    def __init__(self, descriptors=None):
        self._entries: List[InstructionDescriptor] = []
        self._by_name: Dict[str, InstructionDescriptor] = {}
        for d in descriptors or ():
            self.register(d)

    def register(self, descriptor: InstructionDescriptor) -> InstructionDescriptor:
        key = descriptor.mnemonic.upper()
        if key in self._by_name:
            raise MaskError(f"mnemonic {descriptor.mnemonic!r} is already registered")
        for existing in self._entries:
            if descriptor.conflicts_with(existing):
                raise DuplicatePattern(descriptor, existing)
        self._entries.append(descriptor)
        self._by_name[key] = descriptor
        return descriptor

    def lookup(self, word: int, address: Optional[int] = None) -> InstructionDescriptor:
        for d in self._entries:
            if d.matches(word):
                return d
        raise UnknownInstruction(word, address)

    def find(self, mnemonic: str) -> InstructionDescriptor:
        try:
            return self._by_name[mnemonic.upper()]
        except KeyError:
            raise KeyError(f"No instruction named {mnemonic!r}") from None

    def conflicts(self) -> List[Tuple[InstructionDescriptor, InstructionDescriptor]]:
        """Pairwise audit; empty for any table built through register()."""
        out = []
        for i, a in enumerate(self._entries):
            for b in self._entries[i + 1:]:
                if a.conflicts_with(b):
                    out.append((a, b))
        return out

    def __iter__(self) -> Iterator[InstructionDescriptor]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, mnemonic) -> bool:
        return isinstance(mnemonic, str) and mnemonic.upper() in self._by_name
