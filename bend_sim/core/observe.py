# core/observe.py
import json
import time
from typing import Any, Dict, List, Optional


class TraceSink:
    """Simple sink that appends JSON lines to a file path or a list-like collector."""
    def __init__(self, path: Optional[str] = None, collector: Optional[List] = None):
        self.path = path
        self.collector = collector

    def emit(self, event: Dict[str, Any]):
        if self.path:
            line = json.dumps(event, separators=(",", ":"))
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        elif self.collector is not None:
            self.collector.append(event)


def now_ts() -> float:
    return time.time()


def new_metrics() -> Dict[str, Any]:
    return {
        "instr_count": 0,
        "by_opcode": {},        # mnemonic -> count
        "by_format": {},        # format tag -> count
        "branches_taken": 0,
        "traps": 0,
        "errors": 0,
    }
