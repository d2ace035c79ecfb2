# trap.py: SPIRITCALL side channel (console text output keyed by a code)
import sys
from typing import List, Optional, TextIO


class TrapHandler:
    """Write-only text sink. Appends to 'collector' if given, else writes to 'stream'."""

    def __init__(self, stream: Optional[TextIO] = None, collector: Optional[List[str]] = None):
        self.stream = stream
        self.collector = collector
        self.count = 0

    def print_string(self, text: str):
        if self.collector is not None:
            self.collector.append(text)
            return
        out = self.stream if self.stream is not None else sys.stdout
        out.write(text)
        out.flush()

    @staticmethod
    def message(code: int) -> str:
        if code == 0:
            return "SPIRITCALL 0: Normal mode path\n"
        if code == 1:
            return "SPIRITCALL 1: Avatar path\n"
        return f"SPIRITCALL {code}: invoked\n"

    def invoke(self, code: int):
        self.count += 1
        self.print_string(self.message(code))

    def output(self) -> str:
        """Everything written so far (collector mode only)."""
        return "".join(self.collector or [])
