# cli.py: command-line front end for the BEND32 simulation core
# Lists the instruction catalog, disassembles raw words, and runs hex-word programs.

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from bend_sim.core import bend32
from bend_sim.core.cpu import CPU
from bend_sim.core.encoding import parse_hex_words
from bend_sim.core.errors import SimulationError
from bend_sim.core.memory import Memory, TEXT_BASE
from bend_sim.core.observe import TraceSink
from bend_sim.core.registers import RegisterFile
from bend_sim.core.trap import TrapHandler
from bend_sim.tools.anomaly_rules import rule_halt_to_zero, rule_self_loop
from bend_sim.tools.loader import load_hex_file


# -----------------------------------------------------------------------------
# Command handlers
# -----------------------------------------------------------------------------

def cmd_isa(args: argparse.Namespace) -> int:
    cpu = CPU()
    print(f"{bend32.NAME}: {bend32.DESCRIPTION}")
    for d in cpu.table:
        print(f"{d.mnemonic:<11} {d.fmt.value:<9} {d.mask}  {d.syntax:<20} {d.description}")
    print(f"{len(cpu.table)} instructions.")
    return 0


def cmd_decode(args: argparse.Namespace) -> int:
    cpu = CPU()
    try:
        words = parse_hex_words(args.words)
    except ValueError as e:
        print(f"Error: {e}")
        return 1
    rc = 0
    for i, w in enumerate(words):
        addr = args.base + 4 * i
        try:
            text = str(cpu.decode(w, addr))
        except SimulationError as e:
            text = f"<{e}>"
            rc = 1
        print(f"0x{addr:08X}: 0x{w:08X}  {text}")
    return rc


def cmd_run(args: argparse.Namespace) -> int:
    collector = [] if args.quiet_traps else None
    cpu = CPU(
        registers=RegisterFile(zero_wired=args.zero_wired),
        memory=Memory(byteorder=args.byteorder),
        trap=TrapHandler(collector=collector),
        verbose=args.verbose,
    )

    try:
        base, end = load_hex_file(cpu, Path(args.program), start=args.start)
    except (OSError, ValueError, SimulationError) as e:
        print(f"Error: {e}")
        return 1
    print(f"Loaded '{args.program}' at 0x{base:08X}..0x{end:08X}. PC = 0x{cpu.registers.pc:08X}")

    # Trace configuration
    if args.trace_file:
        cpu.set_trace_sink(TraceSink(path=args.trace_file))
        cpu.add_anomaly_rule(rule_halt_to_zero)
        cpu.add_anomaly_rule(rule_self_loop)
        print(f"Tracing to '{args.trace_file}'")

    rc = 0
    try:
        steps = cpu.run(max_steps=args.max_steps, stop_at=args.stop_at)
        print(f"Run finished after {steps} steps. PC = 0x{cpu.registers.pc:08X}")
    except SimulationError as e:
        print(f"Error: {e}")
        rc = 1

    if args.dump_regs:
        print("\n".join(cpu.register_dump()))

    # Dump metrics if requested
    if args.trace_metrics:
        Path(args.trace_metrics).write_text(json.dumps(cpu.metrics, indent=2), encoding="utf-8")
        print(f"Metrics saved to '{args.trace_metrics}'")

    return rc


# -----------------------------------------------------------------------------
# Argument parsing
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="BEND32 instruction-set simulator")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("isa", help="List the instruction catalog")

    pd = sub.add_parser("decode", help="Disassemble raw 32-bit words")
    pd.add_argument("words", nargs="+", help="Hex words, e.g. 0x0022181e")
    pd.add_argument("--base", type=lambda s: int(s, 0), default=TEXT_BASE, help="Address of the first word")

    pr = sub.add_parser("run", help="Run a hex-word program")
    pr.add_argument("program", help="Program file (hex words, '@addr' origins, '#' comments)")
    pr.add_argument("--start", type=lambda s: int(s, 0), help="Start PC (default: first word)")
    pr.add_argument("--max-steps", type=int, default=1000000, help="Stop after this many cycles")
    pr.add_argument("--stop-at", type=lambda s: int(s, 0), help="Stop when the PC reaches this address")
    pr.add_argument("--zero-wired", action="store_true", help="Make r0 read as zero")
    pr.add_argument("--byteorder", choices=("little", "big"), default="little", help="Memory byte order")
    pr.add_argument("--quiet-traps", action="store_true", help="Do not echo SPIRITCALL output")
    pr.add_argument("--dump-regs", action="store_true", help="Print registers after the run")
    pr.add_argument("--trace-file", help="Write JSONL trace to file")
    pr.add_argument("--trace-metrics", help="Write metrics JSON to file")
    pr.add_argument("-v", "--verbose", action="store_true", help="Print every executed instruction")

    return p


# -----------------------------------------------------------------------------
# Main
# -----------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "isa":
        return cmd_isa(args)
    elif args.cmd == "decode":
        return cmd_decode(args)
    elif args.cmd == "run":
        return cmd_run(args)
    else:
        parser.error("Unknown command")
        return 2


if __name__ == "__main__":
    sys.exit(main())
