import math
import os
import sqlite3
import tempfile
import threading
from datetime import datetime, timedelta, timezone
from unittest import TestCase
from unittest.mock import MagicMock

from voice_policy.backend.adapters.sqlite_adapter import SqlitePathwayStore
from voice_policy.backend.policy.classifier import classify
from voice_policy.backend.policy.types import Pathway
from voice_policy.backend.services.conductance_service import (
	PathwayAccumulator,
	extract_theme,
	grow_conductance,
	seed_conductance,
	tier_multiplier,
)


COVENANT = classify("I never told anyone but when I was a kid my father abandoned us and it still haunts me")
CONTEXT = classify("I went to the store today")
SOMATIC = classify("My back is in so much pain")

START = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class _Clock:
	def __init__(self, now: datetime):
		self.now = now

	def __call__(self) -> datetime:
		return self.now

	def advance(self, days: float) -> None:
		self.now = self.now + timedelta(days=days)


class PathwayAccumulatorTests(TestCase):
	def setUp(self) -> None:
		self._tmp = tempfile.TemporaryDirectory()
		self.store = SqlitePathwayStore(os.path.join(self._tmp.name, "pathways.db"))
		self.clock = _Clock(START)
		self.accumulator = PathwayAccumulator(self.store, now_fn=self.clock)

	def tearDown(self) -> None:
		self._tmp.cleanup()

	def _conductance(self, theme: str) -> float:
		for pathway in self.accumulator.load_landscape("u1").pathways:
			if pathway.theme == theme:
				return pathway.conductance
		return 0.0

	def test_low_tier_is_a_no_op(self) -> None:
		self.assertIsNone(self.accumulator.reinforce("u1", CONTEXT))
		self.assertEqual(self.accumulator.load_landscape("u1").pathways, ())

	def test_new_pathway_seeded_by_tier(self) -> None:
		pathway = self.accumulator.reinforce("u1", COVENANT)
		self.assertEqual((pathway.dimension, pathway.theme), ("psychology", "trauma"))
		self.assertEqual(pathway.conductance, 0.3)
		self.assertEqual(pathway.reinforcement_count, 1)
		self.assertEqual(self.accumulator.reinforce("u1", SOMATIC).conductance, 0.1)

	def test_reinforce_then_load_shows_growth(self) -> None:
		before = self._conductance("trauma")
		self.accumulator.reinforce("u1", COVENANT)
		after_first = self._conductance("trauma")
		self.accumulator.reinforce("u1", COVENANT)
		after_second = self._conductance("trauma")
		self.assertGreater(after_first, before)
		self.assertGreater(after_second, after_first)
		# 0.3 + 0.15 * 0.7 * 2.0 + 0.1
		self.assertAlmostEqual(after_second, 0.61)

	def test_loading_twice_in_a_day_does_not_double_decay(self) -> None:
		self.accumulator.reinforce("u1", COVENANT)
		self.clock.advance(3)
		first = self._conductance("trauma")
		second = self._conductance("trauma")
		self.assertAlmostEqual(first, 0.3 * math.exp(-0.02 * 3))
		self.assertEqual(first, second)
		self.clock.advance(0.5)
		self.assertEqual(self._conductance("trauma"), first)
		self.clock.advance(1.0)
		self.assertAlmostEqual(self._conductance("trauma"), first * math.exp(-0.02 * 1.5))

	def test_no_decay_within_first_day(self) -> None:
		self.accumulator.reinforce("u1", COVENANT)
		self.clock.advance(0.9)
		self.assertEqual(self._conductance("trauma"), 0.3)

	def test_pending_decay_applies_before_growth(self) -> None:
		self.accumulator.reinforce("u1", COVENANT)
		self.clock.advance(10)
		decayed_value = 0.3 * math.exp(-0.02 * 10)
		pathway = self.accumulator.reinforce("u1", COVENANT)
		expected = decayed_value + 0.15 * (1.0 - decayed_value) * 2.0 + 0.1
		self.assertAlmostEqual(pathway.conductance, expected)
		self.assertEqual(pathway.reinforcement_count, 2)

	def test_weak_stale_pathways_are_pruned(self) -> None:
		old = START - timedelta(days=100)
		self.store.upsert(Pathway("u1", "psychology", "fear", 0.04, 1, 13, old, old))
		self.store.upsert(Pathway("u1", "sociology", "family", 0.9, 6, 21, old, old))
		landscape = self.accumulator.load_landscape("u1")
		self.assertEqual([pathway.theme for pathway in landscape.pathways], ["family"])
		self.assertIsNone(self.store.get("u1", "psychology", "fear"))
		self.assertAlmostEqual(landscape.pathways[0].days_since_reinforced, 100.0)

	def test_landscape_is_sorted_and_counts_sessions(self) -> None:
		self.accumulator.reinforce("u1", SOMATIC)
		self.accumulator.reinforce("u1", COVENANT)
		self.store.record_session(user_id="u1", session_id="s1", pathways_reinforced=2, max_tier=21)
		landscape = self.accumulator.load_landscape("u1")
		self.assertEqual([pathway.theme for pathway in landscape.pathways], ["trauma", "health"])
		self.assertEqual(landscape.session_count, 1)
		self.assertEqual(self.accumulator.load_landscape("someone-else").pathways, ())

	def test_store_failures_degrade_to_empty_results(self) -> None:
		broken = MagicMock()
		broken.get.side_effect = sqlite3.OperationalError("database is locked")
		broken.list_by_user.side_effect = sqlite3.OperationalError("database is locked")
		accumulator = PathwayAccumulator(broken, now_fn=self.clock)
		with self.assertLogs("voice_policy.conductance", level="ERROR"):
			self.assertIsNone(accumulator.reinforce("u1", COVENANT))
		with self.assertLogs("voice_policy.conductance", level="ERROR"):
			landscape = accumulator.load_landscape("u1")
		self.assertEqual(landscape.pathways, ())
		self.assertEqual(landscape.session_count, 0)

	def test_concurrent_reinforcement_loses_no_updates(self) -> None:
		self.accumulator.reinforce("u1", COVENANT)
		workers = 8
		barrier = threading.Barrier(workers)
		failures = []

		def reinforce() -> None:
			barrier.wait(timeout=5)
			if self.accumulator.reinforce("u1", COVENANT) is None:
				failures.append("reinforce returned None")

		threads = [threading.Thread(target=reinforce) for _ in range(workers)]
		for thread in threads:
			thread.start()
		for thread in threads:
			thread.join(timeout=10)

		self.assertEqual(failures, [])
		pathway = self.store.get("u1", "psychology", "trauma")
		self.assertEqual(pathway.reinforcement_count, workers + 1)
		expected = seed_conductance(COVENANT.tier)
		for _ in range(workers):
			expected = grow_conductance(expected, COVENANT)
		self.assertAlmostEqual(pathway.conductance, expected, places=9)

	def test_user_locks_are_stable_and_bounded(self) -> None:
		self.assertIs(self.accumulator._user_lock("u1"), self.accumulator._user_lock("u1"))
		locks = {id(self.accumulator._user_lock(f"user-{index}")) for index in range(1000)}
		self.assertLessEqual(len(locks), len(self.accumulator._locks))


class ConductanceMathTests(TestCase):
	def test_theme_comes_from_first_marker_of_top_dimension(self) -> None:
		self.assertEqual(extract_theme(COVENANT), "trauma")
		self.assertEqual(extract_theme(SOMATIC), "health")
		self.assertIsNone(extract_theme(CONTEXT))
		self.assertIsNone(extract_theme(classify("hey")))

	def test_multiplier_and_seed_tables(self) -> None:
		self.assertEqual([tier_multiplier(tier) for tier in (3, 8, 13, 21)], [1.0, 1.2, 1.5, 2.0])
		self.assertEqual([seed_conductance(tier) for tier in (5, 8, 13, 21)], [0.1, 0.1, 0.2, 0.3])

	def test_growth_is_clamped_to_ceiling(self) -> None:
		self.assertEqual(grow_conductance(0.99, COVENANT), 1.0)
		self.assertLess(grow_conductance(0.5, SOMATIC), 1.0)
