# voice_policy/backend/invariants/always_calibrates.py
from __future__ import annotations

from typing import List

from voice_policy.backend import constants
from voice_policy.backend.invariants.matching import compile_patterns, pattern_violations
from voice_policy.backend.invariants.rules import (
	CAUTIONARY_PATTERNS,
	CHEERFUL_PATTERNS,
	COMFORT_MAX_QUESTIONS,
	EXCLAMATION_MIN_COUNT,
	PROBING_PATTERNS,
)
from voice_policy.backend.invariants.types import Violation
from voice_policy.backend.policy.types import Classification


_CHEERFUL = compile_patterns(CHEERFUL_PATTERNS)
_PROBING = compile_patterns(PROBING_PATTERNS)
_CAUTIONARY = compile_patterns(CAUTIONARY_PATTERNS)

_DEPTH_RULE = f"W{constants.CALIBRATION_MIN_TIER}+ content received a cheerful or dismissive response."
_COMFORT_RULE = "Exhausted speaker received probing questions."
_CELEBRATION_RULE = "Celebration received a cautionary or heavy response."


def _exclamation_violation(response: str) -> List[Violation]:
	stripped = response.rstrip()
	count = stripped.count("!")
	if count >= EXCLAMATION_MIN_COUNT or stripped.endswith("!"):
		return [
			Violation(
				invariant="ALWAYS_CALIBRATES",
				severity="medium",
				matched="!" * max(count, 1),
				rule=_DEPTH_RULE,
				detail={"mismatch": "depth_cheerful", "exclamations": count},
			)
		]
	return []


def _question_violation(response: str) -> List[Violation]:
	count = response.count("?")
	if count > COMFORT_MAX_QUESTIONS:
		return [
			Violation(
				invariant="ALWAYS_CALIBRATES",
				severity="medium",
				matched="?" * count,
				rule=_COMFORT_RULE,
				detail={"mismatch": "comfort_probing", "questions": count},
			)
		]
	return []


def check(response: str, classification: Classification) -> List[Violation]:
	violations: List[Violation] = []
	if classification.tier >= constants.CALIBRATION_MIN_TIER:
		violations.extend(_exclamation_violation(response))
		violations.extend(
			pattern_violations(response, _CHEERFUL, invariant="ALWAYS_CALIBRATES", severity="medium", rule=_DEPTH_RULE)
		)
	if classification.has_resistance_action("comfort_mode"):
		violations.extend(_question_violation(response))
		violations.extend(
			pattern_violations(response, _PROBING, invariant="ALWAYS_CALIBRATES", severity="medium", rule=_COMFORT_RULE)
		)
	if classification.mood.mode == "JOYFUL":
		violations.extend(
			pattern_violations(response, _CAUTIONARY, invariant="ALWAYS_CALIBRATES", severity="medium", rule=_CELEBRATION_RULE)
		)
	return violations
