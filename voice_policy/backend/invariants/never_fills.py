# voice_policy/backend/invariants/never_fills.py
from __future__ import annotations

import math
from typing import List, Tuple

from voice_policy.backend import constants
from voice_policy.backend.invariants.rules import RULE_TEXT
from voice_policy.backend.invariants.types import Violation
from voice_policy.backend.policy.scanning import count_sentences, count_words
from voice_policy.backend.policy.types import Classification


def approximate_tokens(text: str) -> int:
	return int(math.ceil(count_words(text) * constants.TOKENS_PER_WORD))


def limits_for_tier(tier: int) -> Tuple[int, int]:
	"""(token ceiling, sentence ceiling); tighter as the tier rises."""
	if tier >= 21:
		key = 21
	elif tier >= 13:
		key = 13
	else:
		key = 8
	return constants.FILL_TOKEN_LIMITS[key], constants.FILL_SENTENCE_LIMITS[key]


def check(response: str, classification: Classification) -> List[Violation]:
	tier = classification.tier
	if tier < constants.FILL_CHECK_MIN_TIER:
		return []

	token_limit, sentence_limit = limits_for_tier(tier)
	tokens = approximate_tokens(response)
	sentences = count_sentences(response)
	violations: List[Violation] = []
	if tokens > token_limit:
		violations.append(
			Violation(
				invariant="NEVER_FILLS",
				severity="medium",
				matched=f"{tokens} tokens (limit: {token_limit} for W{tier})",
				rule=RULE_TEXT["NEVER_FILLS"],
				detail={"measure": "tokens", "actual": tokens, "allowed": token_limit},
			)
		)
	if sentences > sentence_limit:
		violations.append(
			Violation(
				invariant="NEVER_FILLS",
				severity="medium",
				matched=f"{sentences} sentences (limit: {sentence_limit} for W{tier})",
				rule=RULE_TEXT["NEVER_FILLS"],
				detail={"measure": "sentences", "actual": sentences, "allowed": sentence_limit},
			)
		)
	return violations
