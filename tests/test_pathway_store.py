import os
import tempfile
from datetime import datetime, timedelta, timezone
from unittest import TestCase

from voice_policy.backend.adapters import sqlite_adapter
from voice_policy.backend.adapters.sqlite_adapter import SqlitePathwayStore
from voice_policy.backend.policy.types import Pathway


NOW = datetime(2026, 5, 10, 12, 0, tzinfo=timezone.utc)


def _pathway(theme: str, conductance: float, *, age_days: float = 0.0, user_id: str = "u1") -> Pathway:
	stamp = NOW - timedelta(days=age_days)
	return Pathway(
		user_id=user_id,
		dimension="sociology",
		theme=theme,
		conductance=conductance,
		reinforcement_count=1,
		max_tier_seen=13,
		last_reinforced_at=stamp,
		created_at=stamp,
	)


class SqlitePathwayStoreTests(TestCase):
	def setUp(self) -> None:
		self._tmp = tempfile.TemporaryDirectory()
		self.db_path = os.path.join(self._tmp.name, "nested", "pathways.db")
		self.store = SqlitePathwayStore(self.db_path)

	def tearDown(self) -> None:
		self._tmp.cleanup()

	def test_upsert_round_trips_every_field(self) -> None:
		original = _pathway("family", 0.42)
		self.store.upsert(original)
		loaded = self.store.get("u1", "sociology", "family")
		self.assertEqual(loaded, original)
		self.assertIsNone(loaded.last_decayed_at)

	def test_upsert_updates_existing_row_in_place(self) -> None:
		self.store.upsert(_pathway("family", 0.2))
		self.store.upsert(_pathway("family", 0.7))
		rows = self.store.list_by_user("u1")
		self.assertEqual(len(rows), 1)
		self.assertEqual(rows[0].conductance, 0.7)

	def test_list_by_user_filters_sorts_and_limits(self) -> None:
		for theme, value in (("family", 0.2), ("trust", 0.9), ("work", 0.005), ("social", 0.5)):
			self.store.upsert(_pathway(theme, value))
		self.store.upsert(_pathway("romantic", 0.99, user_id="u2"))
		themes = [row.theme for row in self.store.list_by_user("u1", min_conductance=0.01)]
		self.assertEqual(themes, ["trust", "social", "family"])
		self.assertEqual(len(self.store.list_by_user("u1", limit=2)), 2)

	def test_delete_where_requires_weak_and_stale(self) -> None:
		self.store.upsert(_pathway("weak_stale", 0.01, age_days=120))
		self.store.upsert(_pathway("weak_fresh", 0.01, age_days=5))
		self.store.upsert(_pathway("strong_stale", 0.6, age_days=120))
		removed = self.store.delete_where("u1", 0.05, 90, now=NOW)
		self.assertEqual(removed, 1)
		remaining = sorted(row.theme for row in self.store.list_by_user("u1"))
		self.assertEqual(remaining, ["strong_stale", "weak_fresh"])

	def test_sessions_are_counted_per_user_and_idempotent_per_session(self) -> None:
		self.store.record_session(user_id="u1", session_id="s1", pathways_reinforced=1, max_tier=13)
		self.store.record_session(user_id="u1", session_id="s1", pathways_reinforced=2, max_tier=21)
		self.store.record_session(user_id="u1", session_id="s2", pathways_reinforced=0, max_tier=3)
		self.store.record_session(user_id="u2", session_id="s3", pathways_reinforced=0, max_tier=1)
		self.assertEqual(self.store.count_sessions("u1"), 2)
		self.assertEqual(self.store.count_sessions("nobody"), 0)

	def test_storage_meta_reports_wal(self) -> None:
		meta = self.store.storage_meta()
		self.assertEqual(meta["journal_mode"], "wal")
		self.assertEqual(meta["quick_check"], "ok")
		self.assertEqual(meta["path"], self.db_path)

	def test_timestamps_compare_chronologically(self) -> None:
		earlier = datetime(2026, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
		later = datetime(2026, 1, 1, 0, 0, 0, 500000, tzinfo=timezone.utc)
		self.assertLess(sqlite_adapter._to_ts(earlier), sqlite_adapter._to_ts(later))
