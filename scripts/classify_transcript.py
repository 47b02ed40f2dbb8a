#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from voice_policy.backend.invariants.engine import evaluate  # noqa: E402
from voice_policy.backend.logging_config import setup_logging  # noqa: E402
from voice_policy.backend.policy.classifier import classify  # noqa: E402
from voice_policy.backend.policy.logline import build_logline  # noqa: E402
from voice_policy.backend.policy.types import Classification, Message  # noqa: E402


@dataclass
class TranscriptLine:
    role: str
    text: str


def _parse_line(raw: str) -> Optional[TranscriptLine]:
    line = raw.strip()
    if not line or line.startswith("#"):
        return None
    lowered = line.lower()
    for role in ("user", "assistant"):
        prefix = f"{role}:"
        if lowered.startswith(prefix):
            return TranscriptLine(role=role, text=line[len(prefix):].strip())
    return TranscriptLine(role="user", text=line)


def load_transcript(path: Path) -> List[TranscriptLine]:
    lines: List[TranscriptLine] = []
    for raw in path.read_text(encoding="utf-8").splitlines():
        parsed = _parse_line(raw)
        if parsed is not None:
            lines.append(parsed)
    return lines


def analyze(lines: List[TranscriptLine]) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    history: List[Message] = []
    current: Optional[Classification] = None
    for line in lines:
        if line.role == "user":
            current = classify(line.text, history)
            rows.append(
                {
                    "role": "user",
                    "text": line.text,
                    "tier": current.tier,
                    "dimension": current.primary_dimension,
                    "mode": current.budget.mode,
                    "max_words": current.budget.max_words,
                    "resistance": [signal.type for signal in current.resistance],
                    "logline": build_logline(current)["therefore"],
                }
            )
        elif current is not None:
            gate = evaluate(line.text, current)
            rows.append(
                {
                    "role": "assistant",
                    "text": line.text,
                    "pass": gate.passed,
                    "violations": [f"{v.invariant}:{v.severity}" for v in gate.violations],
                }
            )
        history.append(Message(role=line.role, content=line.text))
    return rows


def _render_table(rows: List[Dict[str, Any]]) -> str:
    out: List[str] = []
    for row in rows:
        if row["role"] == "user":
            resistance = f" resistance={','.join(row['resistance'])}" if row["resistance"] else ""
            out.append(f"W{row['tier']:<3} {row['dimension']:<11} {row['mode']:<18}{resistance}  {row['text']}")
        else:
            verdict = "PASS" if row["pass"] else "FAIL " + ", ".join(row["violations"])
            out.append(f"     -> {verdict}  {row['text']}")
    return "\n".join(out)


def main() -> int:
    parser = argparse.ArgumentParser(description="Classify a transcript and gate its assistant replies.")
    parser.add_argument("transcript", help="Text file, one utterance per line, optionally prefixed user:/assistant:.")
    parser.add_argument("--json", action="store_true", help="Print JSON rows instead of a table.")
    parser.add_argument("--output", default="", help="Optional path for the JSON report.")
    parser.add_argument("--log-level", default="WARNING", help="voice_policy logger level.")
    args = parser.parse_args()

    setup_logging(args.log_level)
    path = Path(args.transcript)
    if not path.is_file():
        print(f"transcript not found: {path}", file=sys.stderr)
        return 2

    rows = analyze(load_transcript(path))
    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps(rows, indent=2) + "\n", encoding="utf-8")
    print(json.dumps(rows, indent=2) if args.json else _render_table(rows))
    failures = sum(1 for row in rows if row["role"] == "assistant" and not row["pass"])
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
