# errors.py: structured simulation failures
from typing import Optional


class SimulationError(Exception):
    """Base class for every architectural failure raised by the core."""


class UnknownInstruction(SimulationError):
    def __init__(self, word: int, address: Optional[int] = None):
        self.word = word
        self.address = address
        where = f" @ PC = 0x{address:08X}" if address is not None else ""
        super().__init__(f"Illegal instruction{where}: '0x{word:08X}'")


class InvalidRegister(SimulationError):
    def __init__(self, index):
        self.index = index
        super().__init__(f"Invalid register index {index!r} (expected 0..31)")


class AddressError(SimulationError):
    def __init__(self, address: int, reason: str):
        self.address = address
        self.reason = reason
        super().__init__(f"Address error at 0x{address & 0xFFFFFFFF:08X}: {reason}")


class DuplicatePattern(SimulationError):
    def __init__(self, new, existing):
        self.new = new
        self.existing = existing
        super().__init__(
            f"{new.mnemonic} ({new.mask}) overlaps {existing.mnemonic} ({existing.mask})"
        )


class RoutineError(SimulationError):
    """Raised when an execution routine does not hand back the next PC."""

    def __init__(self, mnemonic: str, result):
        self.mnemonic = mnemonic
        self.result = result
        super().__init__(f"{mnemonic}: routine returned {result!r} instead of a next PC")


class MaskError(ValueError):
    """Malformed instruction descriptor (mask, format or syntax mismatch)."""
