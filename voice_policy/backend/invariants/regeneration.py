# voice_policy/backend/invariants/regeneration.py
"""Bounded regeneration loop driven by gate results.

States: generating -> gating -> passed | regenerate_requested | exhausted.
Only critical violations consume the retry budget; any other failure is
delivered with warnings.
"""

from __future__ import annotations

from typing import Callable, List, Optional

from voice_policy.backend.invariants.engine import evaluate
from voice_policy.backend.invariants.types import GateResult, RegenerationOutcome, RegenerationState
from voice_policy.backend.logging_config import get_logger
from voice_policy.backend.policy.types import Classification


logger = get_logger("gate")

GenerateFn = Callable[[Optional[str]], str]
EvaluateFn = Callable[[str, Classification], GateResult]
AttemptHook = Callable[[int, str, GateResult], None]

TERMINAL_STATES = ("passed", "exhausted")


def run_regeneration_loop(
	*,
	generate: GenerateFn,
	classification: Classification,
	max_retries: int,
	evaluate_fn: EvaluateFn = evaluate,
	on_attempt: Optional[AttemptHook] = None,
) -> RegenerationOutcome:
	"""Generate, gate and retry until passed or exhausted.

	``generate`` receives ``None`` on the first attempt and the previous
	gate's regeneration hints on retries. Exceptions from ``generate``
	propagate unchanged.
	"""
	state: RegenerationState = "generating"
	transitions: List[RegenerationState] = [state]
	history: List[GateResult] = []
	hints: Optional[str] = None
	text = ""
	retries = 0
	attempts = 0
	result: Optional[GateResult] = None

	while state not in TERMINAL_STATES:
		if state == "generating":
			text = generate(hints)
			attempts += 1
			state = "gating"
		elif state == "gating":
			result = evaluate_fn(text, classification)
			history.append(result)
			if on_attempt is not None:
				on_attempt(attempts, text, result)
			if result.passed:
				state = "passed"
			elif result.requires_regeneration and retries < max(0, max_retries):
				state = "regenerate_requested"
			else:
				state = "exhausted"
		elif state == "regenerate_requested":
			retries += 1
			hints = result.regeneration_hints if result is not None else None
			state = "generating"
		transitions.append(state)

	assert result is not None
	if state == "exhausted":
		logger.warning(
			"Gate exhausted after %s attempt(s); delivering with warnings: %s",
			attempts,
			", ".join(result.invariants_violated),
		)
	return RegenerationOutcome(
		text=text,
		gate=result,
		state=state,
		attempts=attempts,
		transitions=transitions,
		history=history,
	)
