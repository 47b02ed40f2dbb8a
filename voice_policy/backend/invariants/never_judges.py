# voice_policy/backend/invariants/never_judges.py
from __future__ import annotations

from typing import List

from voice_policy.backend.invariants.matching import compile_patterns, pattern_violations
from voice_policy.backend.invariants.rules import JUDGMENT_PATTERNS
from voice_policy.backend.invariants.types import Violation
from voice_policy.backend.policy.types import Classification


_PATTERNS = compile_patterns(JUDGMENT_PATTERNS)


def check(response: str, _classification: Classification) -> List[Violation]:
	return pattern_violations(response, _PATTERNS, invariant="NEVER_JUDGES", severity="high")
