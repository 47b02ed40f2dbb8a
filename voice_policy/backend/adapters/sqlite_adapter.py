from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from voice_policy.backend import constants
from voice_policy.backend.policy.types import Pathway


_TS_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"
_PATHWAY_COLUMNS = (
	"user_id, dimension, theme, conductance, reinforcement_count, max_tier_seen, "
	"last_reinforced_at, last_decayed_at, created_at"
)


def _now() -> datetime:
	return datetime.now(timezone.utc)


def _to_ts(value: datetime) -> str:
	# Fixed-width so string comparison in SQL matches chronological order.
	return value.astimezone(timezone.utc).strftime(_TS_FORMAT)


def _from_ts(raw: Optional[str]) -> Optional[datetime]:
	if not raw:
		return None
	return datetime.strptime(raw, _TS_FORMAT).replace(tzinfo=timezone.utc)


def _get_db_path(db_path: Optional[str]) -> str:
	if db_path:
		return db_path
	return constants.DEFAULT_DB_PATH


def _connect(path: str) -> sqlite3.Connection:
	conn = sqlite3.connect(path, timeout=constants.SQLITE_BUSY_TIMEOUT_MS / 1000)
	conn.execute("PRAGMA journal_mode=WAL")
	conn.execute("PRAGMA synchronous=NORMAL")
	conn.execute(f"PRAGMA busy_timeout={constants.SQLITE_BUSY_TIMEOUT_MS}")
	conn.execute("PRAGMA foreign_keys=ON")
	return conn


def init_db(db_path: Optional[str] = None) -> None:
	path = _get_db_path(db_path)
	Path(path).parent.mkdir(parents=True, exist_ok=True)
	conn = _connect(path)
	try:
		conn.execute(
			"""
			CREATE TABLE IF NOT EXISTS pathways (
				id INTEGER PRIMARY KEY AUTOINCREMENT,
				user_id TEXT NOT NULL,
				dimension TEXT NOT NULL,
				theme TEXT NOT NULL,
				conductance REAL NOT NULL,
				reinforcement_count INTEGER NOT NULL DEFAULT 1,
				max_tier_seen INTEGER NOT NULL,
				last_reinforced_at TEXT NOT NULL,
				last_decayed_at TEXT,
				created_at TEXT NOT NULL,
				UNIQUE(user_id, dimension, theme)
			)
			"""
		)
		conn.execute("CREATE INDEX IF NOT EXISTS idx_pathways_user ON pathways(user_id, conductance)")
		conn.execute(
			"""
			CREATE TABLE IF NOT EXISTS pathway_sessions (
				id INTEGER PRIMARY KEY AUTOINCREMENT,
				user_id TEXT NOT NULL,
				session_id TEXT NOT NULL UNIQUE,
				pathways_reinforced INTEGER NOT NULL DEFAULT 0,
				max_tier INTEGER NOT NULL DEFAULT 1,
				started_at TEXT,
				ended_at TEXT NOT NULL
			)
			"""
		)
		conn.commit()
	finally:
		conn.close()


def _row_to_pathway(row: sqlite3.Row) -> Pathway:
	return Pathway(
		user_id=row["user_id"],
		dimension=row["dimension"],
		theme=row["theme"],
		conductance=float(row["conductance"]),
		reinforcement_count=int(row["reinforcement_count"]),
		max_tier_seen=int(row["max_tier_seen"]),
		last_reinforced_at=_from_ts(row["last_reinforced_at"]),
		last_decayed_at=_from_ts(row["last_decayed_at"]),
		created_at=_from_ts(row["created_at"]),
	)


def get_pathway(user_id: str, dimension: str, theme: str, db_path: Optional[str] = None) -> Optional[Pathway]:
	path = _get_db_path(db_path)
	conn = _connect(path)
	try:
		conn.row_factory = sqlite3.Row
		row = conn.execute(
			f"SELECT {_PATHWAY_COLUMNS} FROM pathways WHERE user_id = ? AND dimension = ? AND theme = ?",
			(user_id, dimension, theme),
		).fetchone()
		if row is None:
			return None
		return _row_to_pathway(row)
	finally:
		conn.close()


def upsert_pathway(pathway: Pathway, db_path: Optional[str] = None) -> Pathway:
	path = _get_db_path(db_path)
	conn = _connect(path)
	try:
		conn.execute(
			f"""
			INSERT INTO pathways ({_PATHWAY_COLUMNS})
			VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
			ON CONFLICT(user_id, dimension, theme)
			DO UPDATE SET
				conductance=excluded.conductance,
				reinforcement_count=excluded.reinforcement_count,
				max_tier_seen=excluded.max_tier_seen,
				last_reinforced_at=excluded.last_reinforced_at,
				last_decayed_at=excluded.last_decayed_at
			""",
			(
				pathway.user_id,
				pathway.dimension,
				pathway.theme,
				pathway.conductance,
				pathway.reinforcement_count,
				pathway.max_tier_seen,
				_to_ts(pathway.last_reinforced_at),
				_to_ts(pathway.last_decayed_at) if pathway.last_decayed_at else None,
				_to_ts(pathway.created_at),
			),
		)
		conn.commit()
	finally:
		conn.close()
	return pathway


def list_pathways_by_user(
	user_id: str,
	min_conductance: float = 0.0,
	limit: Optional[int] = None,
	db_path: Optional[str] = None,
) -> List[Pathway]:
	path = _get_db_path(db_path)
	conn = _connect(path)
	try:
		conn.row_factory = sqlite3.Row
		query = (
			f"SELECT {_PATHWAY_COLUMNS} FROM pathways "
			"WHERE user_id = ? AND conductance >= ? ORDER BY conductance DESC, id ASC"
		)
		params: List[Any] = [user_id, min_conductance]
		if limit is not None:
			query += " LIMIT ?"
			params.append(int(limit))
		rows = conn.execute(query, params).fetchall()
		return [_row_to_pathway(row) for row in rows]
	finally:
		conn.close()


def delete_pathways_where(
	user_id: str,
	max_conductance: float,
	max_age_days: float,
	now: Optional[datetime] = None,
	db_path: Optional[str] = None,
) -> int:
	"""Delete pathways that are both weak and stale. Returns the number removed."""
	cutoff = (now or _now()) - timedelta(days=max_age_days)
	path = _get_db_path(db_path)
	conn = _connect(path)
	try:
		cursor = conn.execute(
			"DELETE FROM pathways WHERE user_id = ? AND conductance < ? AND last_reinforced_at < ?",
			(user_id, max_conductance, _to_ts(cutoff)),
		)
		conn.commit()
		return cursor.rowcount
	finally:
		conn.close()


def record_session(
	user_id: str,
	session_id: str,
	pathways_reinforced: int,
	max_tier: int,
	started_at: Optional[datetime] = None,
	ended_at: Optional[datetime] = None,
	db_path: Optional[str] = None,
) -> Dict[str, Any]:
	path = _get_db_path(db_path)
	ended = ended_at or _now()
	conn = _connect(path)
	try:
		conn.execute(
			"""
			INSERT INTO pathway_sessions (user_id, session_id, pathways_reinforced, max_tier, started_at, ended_at)
			VALUES (?, ?, ?, ?, ?, ?)
			ON CONFLICT(session_id)
			DO UPDATE SET pathways_reinforced=excluded.pathways_reinforced, max_tier=excluded.max_tier, ended_at=excluded.ended_at
			""",
			(
				user_id,
				session_id,
				pathways_reinforced,
				max_tier,
				_to_ts(started_at) if started_at else None,
				_to_ts(ended),
			),
		)
		conn.commit()
	finally:
		conn.close()
	return {
		"user_id": user_id,
		"session_id": session_id,
		"pathways_reinforced": pathways_reinforced,
		"max_tier": max_tier,
	}


def count_sessions(user_id: str, db_path: Optional[str] = None) -> int:
	path = _get_db_path(db_path)
	conn = _connect(path)
	try:
		row = conn.execute("SELECT COUNT(*) FROM pathway_sessions WHERE user_id = ?", (user_id,)).fetchone()
		return int(row[0]) if row else 0
	finally:
		conn.close()


def get_storage_meta(db_path: Optional[str] = None) -> Dict[str, object]:
	init_db(db_path)
	path = _get_db_path(db_path)
	conn = _connect(path)
	try:
		quick_check = conn.execute("PRAGMA quick_check").fetchone()[0]
		journal_mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
		pathway_count = conn.execute("SELECT COUNT(*) FROM pathways").fetchone()[0]
		return {
			"path": path,
			"journal_mode": journal_mode,
			"quick_check": quick_check,
			"pathway_count": pathway_count,
		}
	finally:
		conn.close()


class SqlitePathwayStore:
	"""Pathway store bound to one SQLite file."""

	def __init__(self, db_path: Optional[str] = None):
		self.db_path = _get_db_path(db_path)
		init_db(self.db_path)

	def get(self, user_id: str, dimension: str, theme: str) -> Optional[Pathway]:
		return get_pathway(user_id, dimension, theme, db_path=self.db_path)

	def upsert(self, pathway: Pathway) -> Pathway:
		return upsert_pathway(pathway, db_path=self.db_path)

	def list_by_user(self, user_id: str, min_conductance: float = 0.0, limit: Optional[int] = None) -> List[Pathway]:
		return list_pathways_by_user(user_id, min_conductance, limit, db_path=self.db_path)

	def delete_where(self, user_id: str, max_conductance: float, max_age_days: float, now: Optional[datetime] = None) -> int:
		return delete_pathways_where(user_id, max_conductance, max_age_days, now=now, db_path=self.db_path)

	def count_sessions(self, user_id: str) -> int:
		return count_sessions(user_id, db_path=self.db_path)

	def record_session(self, **kwargs: Any) -> Dict[str, Any]:
		return record_session(db_path=self.db_path, **kwargs)

	def storage_meta(self) -> Dict[str, object]:
		return get_storage_meta(self.db_path)
