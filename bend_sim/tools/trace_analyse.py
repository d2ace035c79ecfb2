# bend_sim/tools/trace_analyse.py
import json
import sys
from collections import Counter


def analyze(path: str) -> dict:
    ops = Counter()
    formats = Counter()
    anomalies = Counter()
    taken = 0
    count = 0

    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            ev = json.loads(line)
            count += 1
            ops[ev.get("op_name", "?")] += 1
            formats[ev.get("format", "?")] += 1
            if ev.get("taken"):
                taken += 1
            for a in ev.get("anomalies", []) or []:
                anomalies[a] += 1

    return {
        "events": count,
        "top_opcodes": ops.most_common(10),
        "by_format": dict(formats),
        "branches_taken": taken,
        "anomalies": anomalies.most_common(),
    }


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) < 1:
        print("Usage: python -m bend_sim.tools.trace_analyse <trace.jsonl>")
        return 2
    summary = analyze(argv[0])
    print("Events:", summary["events"])
    print("Top opcodes:", summary["top_opcodes"])
    print("By format:", summary["by_format"])
    print("Branches taken:", summary["branches_taken"])
    print("Anomalies:", summary["anomalies"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
