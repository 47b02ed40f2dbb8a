from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Literal


TurnStage = Literal["classify", "backchannel", "prompt", "generate", "gate", "deliver"]
TraceStatus = Literal["pass", "adjusted", "fallback", "blocked", "skipped"]


def now_iso() -> str:
	return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class TurnTraceEvent:
	stage: TurnStage
	status: TraceStatus
	detail: str
	timestamp: str

	def as_dict(self) -> Dict[str, str]:
		return {
			"stage": self.stage,
			"status": self.status,
			"detail": self.detail,
			"timestamp": self.timestamp,
		}


def make_event(*, stage: TurnStage, status: TraceStatus, detail: str) -> TurnTraceEvent:
	return TurnTraceEvent(stage=stage, status=status, detail=detail, timestamp=now_iso())


def serialize_trace(trace_events: Iterable[TurnTraceEvent]) -> List[dict]:
	return [event.as_dict() for event in trace_events]
