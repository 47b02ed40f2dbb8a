# voice_policy/backend/invariants/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Tuple


InvariantName = Literal["NEVER_ABANDONS", "ALWAYS_CALIBRATES", "NEVER_JUDGES", "NEVER_FILLS", "NEVER_NARRATES"]
ViolationSeverity = Literal["critical", "high", "medium"]


@dataclass(frozen=True)
class Violation:
	invariant: InvariantName
	severity: ViolationSeverity
	matched: str
	rule: str
	detail: Dict[str, Any] = field(default_factory=dict)

	def as_dict(self) -> Dict[str, Any]:
		payload: Dict[str, Any] = {
			"invariant": self.invariant,
			"severity": self.severity,
			"matched": self.matched,
			"rule": self.rule,
		}
		if self.detail:
			payload["detail"] = dict(self.detail)
		return payload


@dataclass(frozen=True)
class GateResult:
	violations: Tuple[Violation, ...]
	regeneration_hints: str = ""
	elapsed_ms: float = 0.0

	@property
	def passed(self) -> bool:
		return not self.violations

	@property
	def requires_regeneration(self) -> bool:
		return any(violation.severity == "critical" for violation in self.violations)

	@property
	def invariants_violated(self) -> List[str]:
		seen: List[str] = []
		for violation in self.violations:
			if violation.invariant not in seen:
				seen.append(violation.invariant)
		return seen

	def by_invariant(self, name: str) -> List[Violation]:
		return [violation for violation in self.violations if violation.invariant == name]

	@property
	def summary(self) -> str:
		if self.passed:
			return "Gate passed."
		return f"Gate failed: {len(self.violations)} violation(s) in {', '.join(self.invariants_violated)}."

	def as_dict(self) -> Dict[str, Any]:
		return {
			"pass": self.passed,
			"requires_regeneration": self.requires_regeneration,
			"violations": [violation.as_dict() for violation in self.violations],
			"regeneration_hints": self.regeneration_hints,
			"summary": self.summary,
			"elapsed_ms": round(self.elapsed_ms, 3),
		}


RegenerationState = Literal["generating", "gating", "passed", "regenerate_requested", "exhausted"]


@dataclass
class RegenerationOutcome:
	text: str
	gate: GateResult
	state: RegenerationState
	attempts: int
	transitions: List[RegenerationState] = field(default_factory=list)
	history: List[GateResult] = field(default_factory=list)

	@property
	def delivered_with_warnings(self) -> bool:
		return self.state == "exhausted"

	def as_dict(self) -> Dict[str, Any]:
		return {
			"state": self.state,
			"attempts": self.attempts,
			"transitions": list(self.transitions),
			"delivered_with_warnings": self.delivered_with_warnings,
			"gate": self.gate.as_dict(),
			"attempt_summaries": [result.summary for result in self.history],
		}
