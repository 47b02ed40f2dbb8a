"""One conversational turn, end to end.

classify -> backchannel (checkpoint A) -> landscape snapshot -> reinforce
(fire and forget) -> prompt -> generate/gate loop (checkpoint B on the first
generation) -> deliver (checkpoint C).
"""

from __future__ import annotations

import random
from concurrent.futures import Executor, Future
from typing import Any, Dict, List, Optional

from voice_policy.backend.adapters.llm_adapter import ResponseGenerator, clean_for_speech
from voice_policy.backend.config import EngineSettings
from voice_policy.backend.errors import TurnCancelledError
from voice_policy.backend.invariants.regeneration import run_regeneration_loop
from voice_policy.backend.invariants.types import GateResult
from voice_policy.backend.logging_config import get_logger
from voice_policy.backend.policy.backchannel import select_backchannel
from voice_policy.backend.policy.classifier import classify
from voice_policy.backend.policy.logline import build_logline
from voice_policy.backend.policy.prompt_assembler import assemble
from voice_policy.backend.policy.sentiment import score_sentiment
from voice_policy.backend.policy.timing import Clock, TimingController
from voice_policy.backend.policy.trace import TurnTraceEvent, make_event, serialize_trace
from voice_policy.backend.policy.types import Classification
from voice_policy.backend.services.conductance_service import PathwayAccumulator
from voice_policy.backend.services.conversation_service import ConversationContext, ConversationRegistry
from voice_policy.backend.services.observability import ObservabilitySink, violation_labels


logger = get_logger("turns")


class TurnPipeline:
	def __init__(
		self,
		*,
		settings: EngineSettings,
		registry: ConversationRegistry,
		accumulator: PathwayAccumulator,
		generator: ResponseGenerator,
		sink: ObservabilitySink,
		executor: Executor,
		clock: Optional[Clock] = None,
		rng: Optional[random.Random] = None,
	):
		self.settings = settings
		self.registry = registry
		self.accumulator = accumulator
		self.generator = generator
		self.sink = sink
		self._executor = executor
		self._clock = clock
		self._rng = rng

	def run_turn(self, conversation_id: str, utterance: str) -> Dict[str, Any]:
		context = self.registry.get(conversation_id)
		context.acquire_turn(self.settings.turn_queue_timeout_s)
		try:
			return self._run_locked(context, utterance)
		except TurnCancelledError:
			logger.info("Turn discarded for closed conversation %s", conversation_id)
			raise
		finally:
			context.release_turn()

	def _check_cancelled(self, context: ConversationContext) -> None:
		if context.cancelled.is_set():
			raise TurnCancelledError(context.conversation_id)

	def _new_timing(self) -> TimingController:
		if self._clock is None:
			return TimingController()
		return TimingController(self._clock)

	def _run_locked(self, context: ConversationContext, utterance: str) -> Dict[str, Any]:
		self._check_cancelled(context)
		timing = self._new_timing()
		timing.mark_utterance_end()
		trace: List[TurnTraceEvent] = []

		classification = classify(utterance, context.recent_history(), strict=self.settings.strict_tiers)
		trace.append(
			make_event(
				stage="classify",
				status="pass",
				detail=f"tier={classification.tier} dimension={classification.primary_dimension}",
			)
		)

		backchannel = select_backchannel(classification, self._rng)
		timing.mark_checkpoint_a()
		trace.append(make_event(stage="backchannel", status="pass", detail=backchannel.description))

		# The prompt sees the landscape as it stood before this turn.
		landscape = self.accumulator.load_landscape(context.user_id)
		self._submit_reinforcement(context, classification)
		bundle = assemble(classification, landscape)
		trace.append(
			make_event(
				stage="prompt",
				status="pass",
				detail=f"sections={','.join(bundle.section_names)} max_tokens={bundle.max_tokens}",
			)
		)

		def generate(hints: Optional[str]) -> str:
			self._check_cancelled(context)
			attempt_bundle = assemble(classification, landscape, hints) if hints else bundle
			text = clean_for_speech(self.generator.generate(attempt_bundle, utterance))
			timing.mark_checkpoint_b()
			trace.append(
				make_event(
					stage="generate",
					status="adjusted" if hints else "pass",
					detail=f"provider={self.generator.provider} retry={bool(hints)}",
				)
			)
			self._check_cancelled(context)
			return text

		def on_attempt(attempt: int, text: str, gate: GateResult) -> None:
			trace.append(make_event(stage="gate", status="pass" if gate.passed else "blocked", detail=gate.summary))
			self.sink.emit(
				"gate",
				{
					"conversation_id": context.conversation_id,
					"attempt": attempt,
					"tier": classification.tier,
					"pass": gate.passed,
					"requires_regeneration": gate.requires_regeneration,
					"violations": violation_labels(gate),
					"elapsed_ms": round(gate.elapsed_ms, 3),
				},
			)

		outcome = run_regeneration_loop(
			generate=generate,
			classification=classification,
			max_retries=self.settings.max_regenerations,
			on_attempt=on_attempt,
		)
		self._check_cancelled(context)

		timing.mark_checkpoint_c()
		trace.append(
			make_event(
				stage="deliver",
				status="fallback" if outcome.delivered_with_warnings else "pass",
				detail=f"state={outcome.state} attempts={outcome.attempts}",
			)
		)
		context.record_turn(utterance, outcome.text, classification.tier)

		report = timing.report()
		timing_fields = report.as_dict() if report is not None else {}
		logline = build_logline(classification)
		self.sink.emit(
			"turn",
			{
				"conversation_id": context.conversation_id,
				"user_id": context.user_id,
				"tier": classification.tier,
				"dimension": classification.primary_dimension,
				"mode": classification.budget.mode,
				"violations": violation_labels(outcome.gate),
				"attempts": outcome.attempts,
				"final_state": outcome.state,
				"sentiment": score_sentiment(utterance),
				"logline": logline["therefore"],
				**timing_fields,
			},
		)

		return {
			"conversation_id": context.conversation_id,
			"response_text": outcome.text,
			"backchannel": backchannel.as_dict(),
			"classification": classification.as_dict(),
			"logline": logline,
			"gate": outcome.as_dict(),
			"timing": timing_fields,
			"trace": serialize_trace(trace),
		}

	def _submit_reinforcement(self, context: ConversationContext, classification: Classification) -> None:
		def reinforce() -> None:
			if self.accumulator.reinforce(context.user_id, classification) is not None:
				context.note_reinforced()

		future = self._executor.submit(reinforce)
		future.add_done_callback(_log_reinforcement_failure)
		context.track(future)


def _log_reinforcement_failure(future: Future) -> None:
	if future.cancelled():
		logger.warning("Reinforcement was cancelled before it ran")
		return
	exc = future.exception()
	if exc is not None:
		logger.error("Reinforcement failed: %s", exc, exc_info=exc)
