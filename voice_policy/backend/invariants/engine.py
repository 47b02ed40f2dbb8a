# voice_policy/backend/invariants/engine.py
from __future__ import annotations

import time
from typing import Callable, Dict, List

from voice_policy.backend import constants
from voice_policy.backend.invariants.always_calibrates import check as check_always_calibrates
from voice_policy.backend.invariants.never_abandons import check as check_never_abandons
from voice_policy.backend.invariants.never_fills import check as check_never_fills
from voice_policy.backend.invariants.never_judges import check as check_never_judges
from voice_policy.backend.invariants.never_narrates import check as check_never_narrates
from voice_policy.backend.invariants.rules import CORRECTIVE_HINTS
from voice_policy.backend.invariants.types import GateResult, Violation
from voice_policy.backend.policy.scanning import straighten_quotes
from voice_policy.backend.policy.types import Classification


CheckFn = Callable[[str, Classification], List[Violation]]

CHECKS: Dict[str, CheckFn] = {
	"NEVER_ABANDONS": check_never_abandons,
	"ALWAYS_CALIBRATES": check_always_calibrates,
	"NEVER_JUDGES": check_never_judges,
	"NEVER_FILLS": check_never_fills,
	"NEVER_NARRATES": check_never_narrates,
}


def build_regeneration_hints(violations: List[Violation]) -> str:
	names = {violation.invariant for violation in violations}
	lines = [f"- {name}: {CORRECTIVE_HINTS[name]}" for name in constants.INVARIANT_ORDER if name in names]
	return "\n".join(lines)


def evaluate(response_text: str, classification: Classification) -> GateResult:
	"""Check a generated response against all five invariants, in priority order."""
	started = time.perf_counter()
	text = straighten_quotes(response_text or "")
	violations: List[Violation] = []
	for name in constants.INVARIANT_ORDER:
		violations.extend(CHECKS[name](text, classification))
	critical = any(violation.severity == "critical" for violation in violations)
	return GateResult(
		violations=tuple(violations),
		regeneration_hints=build_regeneration_hints(violations) if critical else "",
		elapsed_ms=(time.perf_counter() - started) * 1000,
	)
