import json
import os
import tempfile
import threading
from concurrent.futures import Future
from typing import List
from unittest import TestCase

from voice_policy.backend.adapters.llm_adapter import LocalResponseGenerator
from voice_policy.backend.adapters.sqlite_adapter import SqlitePathwayStore
from voice_policy.backend.config import EngineSettings
from voice_policy.backend.errors import ConversationBusyError, ConversationNotFoundError, TurnCancelledError
from voice_policy.backend.services.conductance_service import PathwayAccumulator
from voice_policy.backend.services.conversation_service import ConversationRegistry
from voice_policy.backend.services.engine_service import build_engine
from voice_policy.backend.services.observability import ObservabilitySink
from voice_policy.backend.services.turn_service import TurnPipeline


COVENANT = "I never told anyone but when I was a kid my father abandoned us and it still haunts me"


class _ScriptedGenerator:
	provider = "scripted"

	def __init__(self, replies: List[str]):
		self._replies = list(replies)
		self.bundles = []

	def generate(self, bundle, utterance: str) -> str:
		self.bundles.append(bundle)
		if len(self._replies) > 1:
			return self._replies.pop(0)
		return self._replies[0]


class _BlockingGenerator:
	provider = "blocking"

	def __init__(self, reply: str = "I'm here."):
		self.entered = threading.Event()
		self.release = threading.Event()
		self._reply = reply

	def generate(self, bundle, utterance: str) -> str:
		self.entered.set()
		self.release.wait(timeout=5)
		return self._reply


class TurnPipelineTests(TestCase):
	def setUp(self) -> None:
		self._tmp = tempfile.TemporaryDirectory()
		self.db_path = os.path.join(self._tmp.name, "pathways.db")
		self.store = SqlitePathwayStore(self.db_path)
		self.engine = None

	def tearDown(self) -> None:
		if self.engine is not None:
			self.engine.shutdown()
		self._tmp.cleanup()

	def _engine(self, generator, **overrides):
		settings = EngineSettings(db_path=self.db_path, provider_mode="local", **overrides)
		self.engine = build_engine(settings, store=self.store, generator=generator, sink=ObservabilitySink())
		return self.engine

	def test_turn_runs_every_stage_and_records_the_session(self) -> None:
		engine = self._engine(LocalResponseGenerator())
		context = engine.registry.open("user-1")
		result = engine.pipeline.run_turn(context.conversation_id, COVENANT)

		self.assertEqual(result["response_text"], "I'm here.")
		self.assertEqual(result["classification"]["tier"], 21)
		self.assertEqual(result["gate"]["state"], "passed")
		stages = [event["stage"] for event in result["trace"]]
		self.assertEqual(stages, ["classify", "backchannel", "prompt", "generate", "gate", "deliver"])
		self.assertIn("checkpoint_a_ms", result["timing"])
		self.assertIn("summary", result["timing"])

		turn_records = engine.sink.records("turn")
		self.assertEqual(len(turn_records), 1)
		self.assertEqual(turn_records[0]["final_state"], "passed")
		self.assertEqual(turn_records[0]["mode"], "COVENANT")
		self.assertEqual(len(engine.sink.records("gate")), 1)

		summary = engine.registry.close(context.conversation_id)
		self.assertTrue(summary["session_recorded"])
		self.assertEqual(summary["turn_count"], 1)
		self.assertEqual(summary["max_tier"], 21)
		self.assertEqual(summary["pathways_reinforced"], 1)
		self.assertEqual(self.store.count_sessions("user-1"), 1)
		self.assertIsNotNone(self.store.get("user-1", "psychology", "trauma"))

	def test_critical_violation_regenerates_with_hints(self) -> None:
		generator = _ScriptedGenerator(["Please call a crisis line.", "I'm here."])
		engine = self._engine(generator)
		context = engine.registry.open("user-1")
		result = engine.pipeline.run_turn(context.conversation_id, COVENANT)

		self.assertEqual(result["response_text"], "I'm here.")
		self.assertEqual(result["gate"]["attempts"], 2)
		self.assertFalse(generator.bundles[0].is_retry)
		self.assertTrue(generator.bundles[1].is_retry)
		self.assertIn("NEVER_ABANDONS", generator.bundles[1].render())
		statuses = [(event["stage"], event["status"]) for event in result["trace"]]
		self.assertIn(("gate", "blocked"), statuses)
		self.assertIn(("generate", "adjusted"), statuses)
		self.assertEqual([record["attempt"] for record in engine.sink.records("gate")], [1, 2])

	def test_exhausted_turn_is_delivered_with_warnings(self) -> None:
		engine = self._engine(_ScriptedGenerator(["Please call a crisis line."]), max_regenerations=2)
		context = engine.registry.open("user-1")
		with self.assertLogs("voice_policy.gate", level="WARNING"):
			result = engine.pipeline.run_turn(context.conversation_id, COVENANT)

		self.assertEqual(result["gate"]["state"], "exhausted")
		self.assertEqual(result["gate"]["attempts"], 3)
		self.assertTrue(result["gate"]["delivered_with_warnings"])
		self.assertEqual(result["trace"][-1]["status"], "fallback")
		self.assertEqual(set(engine.sink.records("turn")[0]["violations"]), {"NEVER_ABANDONS:critical"})

	def test_concurrent_turn_on_same_conversation_is_busy(self) -> None:
		generator = _BlockingGenerator()
		engine = self._engine(generator)
		context = engine.registry.open("user-1")
		worker = threading.Thread(target=engine.pipeline.run_turn, args=(context.conversation_id, "hey"))
		worker.start()
		try:
			self.assertTrue(generator.entered.wait(timeout=5))
			with self.assertRaises(ConversationBusyError):
				engine.pipeline.run_turn(context.conversation_id, "hello again")
		finally:
			generator.release.set()
			worker.join(timeout=5)
		self.assertEqual(context.turn_count, 1)

	def test_queued_turn_waits_for_the_active_one(self) -> None:
		generator = _BlockingGenerator()
		engine = self._engine(generator, turn_queue_timeout_s=5.0)
		context = engine.registry.open("user-1")
		results = []
		first = threading.Thread(target=lambda: results.append(engine.pipeline.run_turn(context.conversation_id, "hey")))
		second = threading.Thread(target=lambda: results.append(engine.pipeline.run_turn(context.conversation_id, "hi")))
		first.start()
		self.assertTrue(generator.entered.wait(timeout=5))
		second.start()
		generator.release.set()
		first.join(timeout=5)
		second.join(timeout=5)
		self.assertEqual(len(results), 2)
		self.assertEqual(context.turn_count, 2)

	def test_close_cancels_in_flight_turn_but_keeps_reinforcement(self) -> None:
		generator = _BlockingGenerator()
		engine = self._engine(generator)
		context = engine.registry.open("user-1")
		errors = []
		summaries = []

		def run() -> None:
			try:
				engine.pipeline.run_turn(context.conversation_id, COVENANT)
			except TurnCancelledError as exc:
				errors.append(exc)

		worker = threading.Thread(target=run)
		worker.start()
		self.assertTrue(generator.entered.wait(timeout=5))
		closer = threading.Thread(target=lambda: summaries.append(engine.registry.close(context.conversation_id)))
		closer.start()
		self.assertTrue(context.cancelled.wait(timeout=5))
		generator.release.set()
		worker.join(timeout=5)
		closer.join(timeout=10)

		self.assertEqual(len(errors), 1)
		self.assertEqual(summaries[0]["turn_count"], 0)
		self.assertEqual(summaries[0]["pathways_reinforced"], 1)
		self.assertIsNotNone(self.store.get("user-1", "psychology", "trauma"))
		self.assertEqual(engine.sink.records("turn"), [])

	def test_unknown_and_closed_conversations_are_not_found(self) -> None:
		engine = self._engine(LocalResponseGenerator())
		with self.assertRaises(ConversationNotFoundError):
			engine.pipeline.run_turn("missing", "hey")
		context = engine.registry.open("user-1")
		engine.registry.close(context.conversation_id)
		with self.assertRaises(ConversationNotFoundError):
			engine.pipeline.run_turn(context.conversation_id, "hey")
		with self.assertRaises(ConversationNotFoundError):
			engine.registry.close(context.conversation_id)

	def test_history_keeps_recent_messages_only(self) -> None:
		engine = self._engine(LocalResponseGenerator())
		context = engine.registry.open("user-1")
		for index in range(8):
			engine.pipeline.run_turn(context.conversation_id, f"I went to the store today {index}")
		history = context.recent_history()
		self.assertEqual(len(history), 12)
		self.assertEqual(history[-2].role, "user")
		self.assertTrue(history[-2].content.endswith("7"))

	def test_later_turns_see_the_landscape_without_narration(self) -> None:
		generator = _ScriptedGenerator(["I'm here."])
		engine = self._engine(generator)
		context = engine.registry.open("user-1")
		engine.pipeline.run_turn(context.conversation_id, COVENANT)
		engine.registry.close(context.conversation_id)

		second = engine.registry.open("user-1")
		engine.pipeline.run_turn(second.conversation_id, COVENANT)
		prompt = generator.bundles[-1].render()
		self.assertIn("RELATIONAL CALIBRATION", prompt)
		self.assertIn("trauma", prompt)


class _InlineExecutor:
	def submit(self, fn, *args, **kwargs) -> Future:
		future: Future = Future()
		future.set_result(fn(*args, **kwargs))
		return future


class _DeferredExecutor:
	def __init__(self):
		self.queued = []

	def submit(self, fn, *args, **kwargs) -> Future:
		future: Future = Future()
		self.queued.append((future, fn, args, kwargs))
		return future

	def run_pending(self) -> None:
		for future, fn, args, kwargs in self.queued:
			future.set_result(fn(*args, **kwargs))
		self.queued.clear()


class ReinforcementSchedulingTests(TestCase):
	def setUp(self) -> None:
		self._tmp = tempfile.TemporaryDirectory()

	def tearDown(self) -> None:
		self._tmp.cleanup()

	def _first_turn(self, executor, name: str):
		db_path = os.path.join(self._tmp.name, f"{name}.db")
		store = SqlitePathwayStore(db_path)
		registry = ConversationRegistry(session_recorder=store.record_session)
		generator = _ScriptedGenerator(["I'm here."])
		pipeline = TurnPipeline(
			settings=EngineSettings(db_path=db_path, provider_mode="local"),
			registry=registry,
			accumulator=PathwayAccumulator(store),
			generator=generator,
			sink=ObservabilitySink(),
			executor=executor,
		)
		context = registry.open("user-1")
		pipeline.run_turn(context.conversation_id, COVENANT)
		return generator.bundles[0].render(), store

	def test_prompt_does_not_depend_on_when_reinforcement_runs(self) -> None:
		inline_prompt, inline_store = self._first_turn(_InlineExecutor(), "inline")
		deferred = _DeferredExecutor()
		deferred_prompt, deferred_store = self._first_turn(deferred, "deferred")

		self.assertEqual(inline_prompt, deferred_prompt)
		self.assertNotIn("RELATIONAL CALIBRATION", inline_prompt)
		self.assertIsNotNone(inline_store.get("user-1", "psychology", "trauma"))

		self.assertIsNone(deferred_store.get("user-1", "psychology", "trauma"))
		deferred.run_pending()
		self.assertIsNotNone(deferred_store.get("user-1", "psychology", "trauma"))


class ObservabilitySinkTests(TestCase):
	def test_buffer_is_bounded_and_records_are_logged_as_json(self) -> None:
		sink = ObservabilitySink(buffer_size=2)
		with self.assertLogs("voice_policy.observability", level="INFO") as captured:
			for index in range(3):
				sink.emit("turn", {"index": index})
		self.assertEqual([record["index"] for record in sink.records()], [1, 2])
		payload = json.loads(captured.records[-1].getMessage())
		self.assertEqual(payload["type"], "turn")
		self.assertEqual(payload["index"], 2)
		self.assertIn("recorded_at", payload)

	def test_records_filter_by_type_and_clear(self) -> None:
		sink = ObservabilitySink()
		sink.emit("gate", {"pass": True})
		sink.emit("turn", {"tier": 3})
		self.assertEqual(len(sink.records("gate")), 1)
		sink.clear()
		self.assertEqual(sink.records(), [])
