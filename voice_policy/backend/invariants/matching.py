# voice_policy/backend/invariants/matching.py
from __future__ import annotations

import re
from typing import Iterable, List, Pattern

from voice_policy.backend.invariants.rules import RULE_TEXT
from voice_policy.backend.invariants.types import InvariantName, Violation, ViolationSeverity


def compile_patterns(patterns: Iterable[str]) -> List[Pattern[str]]:
	return [re.compile(pattern, re.IGNORECASE) for pattern in patterns]


def pattern_violations(
	response: str,
	patterns: Iterable[Pattern[str]],
	*,
	invariant: InvariantName,
	severity: ViolationSeverity,
	rule: str | None = None,
) -> List[Violation]:
	"""One violation per pattern that matches, in pattern order."""
	violations: List[Violation] = []
	for pattern in patterns:
		match = pattern.search(response)
		if match:
			violations.append(
				Violation(
					invariant=invariant,
					severity=severity,
					matched=match.group(0),
					rule=rule or RULE_TEXT[invariant],
				)
			)
	return violations
