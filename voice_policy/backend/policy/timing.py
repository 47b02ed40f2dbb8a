from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from voice_policy.backend import constants


Clock = Callable[[], float]


def _monotonic_ms() -> float:
	return time.perf_counter() * 1000.0


@dataclass(frozen=True)
class CheckpointTiming:
	name: str
	elapsed_ms: Optional[float]
	target_ms: int

	@property
	def met(self) -> bool:
		return self.elapsed_ms is not None and self.elapsed_ms <= self.target_ms


@dataclass(frozen=True)
class TimingReport:
	checkpoints: List[CheckpointTiming]

	def checkpoint(self, name: str) -> CheckpointTiming:
		for item in self.checkpoints:
			if item.name == name:
				return item
		raise KeyError(name)

	@property
	def summary(self) -> str:
		parts = []
		for item in self.checkpoints:
			elapsed = "-" if item.elapsed_ms is None else f"{item.elapsed_ms:.0f}ms"
			parts.append(f"{item.name}:{elapsed}/{'met' if item.met else 'missed'}")
		return " ".join(parts)

	def as_dict(self) -> Dict[str, object]:
		payload: Dict[str, object] = {}
		for item in self.checkpoints:
			key = f"checkpoint_{item.name.lower()}"
			payload[f"{key}_ms"] = None if item.elapsed_ms is None else round(item.elapsed_ms, 3)
			payload[f"{key}_target_ms"] = item.target_ms
			payload[f"{key}_met"] = item.met
		payload["summary"] = self.summary
		return payload


class TimingController:
	"""Turn-scoped latency bookkeeping. Never raises, never blocks."""

	def __init__(self, clock: Clock = _monotonic_ms):
		self._clock = clock
		self._utterance_end: Optional[float] = None
		self._marks: Dict[str, float] = {}

	def mark_utterance_end(self) -> None:
		self._utterance_end = self._clock()
		self._marks.clear()

	def _mark(self, name: str) -> None:
		if self._utterance_end is None:
			return
		self._marks.setdefault(name, self._clock())

	def mark_checkpoint_a(self) -> None:
		self._mark("A")

	def mark_checkpoint_b(self) -> None:
		self._mark("B")

	def mark_checkpoint_c(self) -> None:
		self._mark("C")

	def report(self) -> Optional[TimingReport]:
		if self._utterance_end is None:
			return None
		checkpoints = []
		for name, target in constants.CHECKPOINT_TARGETS_MS.items():
			mark = self._marks.get(name)
			elapsed = None if mark is None else mark - self._utterance_end
			checkpoints.append(CheckpointTiming(name=name, elapsed_ms=elapsed, target_ms=target))
		return TimingReport(checkpoints=checkpoints)
