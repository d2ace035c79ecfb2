# cpu.py: fetch/decode/dispatch over a register file, memory and trap handler
import threading
from typing import Iterable, List, Optional

from .bend32 import build_table
from .decoder import DecodedInstruction, decode, disassemble
from .descriptors import InstructionTable
from .encoding import BYTE_PER_WORD, WORD_MASK
from .errors import RoutineError, SimulationError
from .memory import Memory, TEXT_BASE
from .observe import TraceSink, new_metrics, now_ts
from .registers import RegisterFile
from .trap import TrapHandler


class CPU:
    """
    One simulated BEND32 machine: registers + PC, memory, trap sink, and the
    instruction table used to decode.

    Routines never rely on an implicit PC advance. Each returns the next PC and
    execute() stores it; a routine that returns anything but an int is a
    RoutineError.

    Several CPUs can coexist; nothing here is shared between instances.
    """

    def __init__(
        self,
        table: Optional[InstructionTable] = None,
        registers: Optional[RegisterFile] = None,
        memory: Optional[Memory] = None,
        trap: Optional[TrapHandler] = None,
        verbose: bool = False,
    ):
        self.table = table if table is not None else build_table()
        self.registers = registers if registers is not None else RegisterFile()
        self.memory = memory if memory is not None else Memory()
        self.trap = trap if trap is not None else TrapHandler()
        self.verbose = verbose

        # program region used by run(); set by load_program()
        self.text_base: Optional[int] = None
        self.text_end: Optional[int] = None

        # one cycle at a time, even when tooling steps from several threads
        self._lock = threading.RLock()

        # Observability
        self.trace_sink = None          # type: Optional[TraceSink]
        self.metrics = new_metrics()
        self._anomaly_rules = []        # list of callables(event)->list[str]

    # -----------------------------------------------------------------------
    # Loading
    # -----------------------------------------------------------------------
    def load_program(self, words: Iterable[int], base: int = TEXT_BASE, start: Optional[int] = None) -> int:
        """Place instruction words at 'base' and point the PC at 'start' (default: base)."""
        end = self.memory.load_words(base, words)
        self.text_base = base
        self.text_end = end
        self.registers.pc = base if start is None else start
        return end

    def in_program(self, addr: int) -> bool:
        if self.text_base is None:
            return False
        return self.text_base <= addr < self.text_end

    # -----------------------------------------------------------------------
    # Observability hooks
    # -----------------------------------------------------------------------
    def set_trace_sink(self, sink):
        self.trace_sink = sink

    def add_anomaly_rule(self, rule_callable):
        """rule(event_dict) -> list[str] of triggered rule IDs"""
        self._anomaly_rules.append(rule_callable)

    def _account(self, decoded: DecodedInstruction, pc: int, next_pc: int, trapped: bool):
        d = decoded.descriptor
        taken = next_pc != ((pc + BYTE_PER_WORD) & WORD_MASK)

        self.metrics["instr_count"] += 1
        self.metrics["by_opcode"][d.mnemonic] = 1 + self.metrics["by_opcode"].get(d.mnemonic, 0)
        self.metrics["by_format"][d.fmt.value] = 1 + self.metrics["by_format"].get(d.fmt.value, 0)
        if taken:
            self.metrics["branches_taken"] += 1
        if trapped:
            self.metrics["traps"] += 1

        if not self.trace_sink:
            return
        event = {
            "ts": now_ts(),
            "pc": pc,
            "word": decoded.word,
            "op_name": d.mnemonic,
            "format": d.fmt.value,
            "operands": list(decoded.operands),
            "text": disassemble(decoded),
            "next_pc": next_pc,
            "taken": taken,
            "avatar": self.registers.avatar,
            "anomalies": [],
        }
        for rule in self._anomaly_rules:
            event["anomalies"].extend(rule(event) or [])
        self.trace_sink.emit(event)

    # -----------------------------------------------------------------------
    # Dispatch
    # -----------------------------------------------------------------------
    def execute(self, decoded: DecodedInstruction) -> int:
        """Run one decoded instruction at the current PC; returns the new PC."""
        with self._lock:
            d = decoded.descriptor
            pc = self.registers.pc
            traps_before = self.trap.count

            next_pc = d.routine(decoded.operands, self.registers, self.memory, self.trap)
            if isinstance(next_pc, bool) or not isinstance(next_pc, int):
                raise RoutineError(d.mnemonic, next_pc)

            self.registers.pc = next_pc
            if self.verbose:
                print(f"DEBUG: 0x{pc:08X}: {disassemble(decoded):<24} -> pc=0x{self.registers.pc:08X}")
            self._account(decoded, pc, self.registers.pc, self.trap.count != traps_before)
            return self.registers.pc

    def decode(self, word: int, address: Optional[int] = None) -> DecodedInstruction:
        return decode(self.table, word, address)

    def execute_word(self, word: int) -> int:
        """Decode 'word' as if fetched from the current PC and execute it."""
        with self._lock:
            return self.execute(self.decode(word, self.registers.pc))

    def step(self) -> int:
        """One full fetch-decode-execute cycle at the current PC."""
        with self._lock:
            pc = self.registers.pc
            try:
                word = self.memory.read_bits(pc)
                return self.execute(self.decode(word, pc))
            except SimulationError:
                self.metrics["errors"] += 1
                raise

    # -----------------------------------------------------------------------
    # Run loop
    # -----------------------------------------------------------------------
    def run(self, max_steps: Optional[int] = None, stop_at: Optional[int] = None) -> int:
        """
        Step until the PC leaves the loaded program region, reaches 'stop_at',
        or 'max_steps' cycles have run. MEDITATE (PC = 0) therefore ends a run
        whenever address 0 is outside the program. Returns the number of cycles.
        """
        if self.text_base is None:
            raise ValueError("No program loaded; call load_program() first")
        steps = 0
        while self.in_program(self.registers.pc):
            if max_steps is not None and steps >= max_steps:
                break
            if stop_at is not None and steps > 0 and self.registers.pc == stop_at:
                break
            self.step()
            steps += 1
        return steps

    def reset(self):
        with self._lock:
            self.registers.reset(self.text_base or 0)
            self.metrics = new_metrics()

    def register_dump(self) -> List[str]:
        regs = self.registers.snapshot()
        lines = [f"pc  = 0x{self.registers.pc:08X}"]
        for i in range(0, len(regs), 4):
            lines.append("  ".join(f"r{j:<2}= {regs[j]:+11d}" for j in range(i, i + 4)))
        return lines
