"""Cross-session pathway reinforcement.

Conductance grows with saturating increments whenever a meaningful turn
touches a theme and decays exponentially with time. Decay is a read-time
side effect of ``load_landscape``: there is no background timer. Every
persistence failure is logged and degraded to a no-op so the turn never
fails because of the pathway store.
"""

from __future__ import annotations

import math
import sqlite3
import zlib
from dataclasses import replace
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, List, Optional, Protocol, Tuple

from voice_policy.backend import constants
from voice_policy.backend.logging_config import get_logger
from voice_policy.backend.policy.types import Classification, LandscapePathway, Pathway, PathwayLandscape


logger = get_logger("conductance")

_SECONDS_PER_DAY = 86400.0
# Decay steps smaller than this are not written back.
_MIN_DECAY_DELTA = 0.001
_LOCK_STRIPES = 64

PERSISTENCE_ERRORS = (sqlite3.Error, OSError)


class PathwayStore(Protocol):
	def get(self, user_id: str, dimension: str, theme: str) -> Optional[Pathway]:
		...

	def upsert(self, pathway: Pathway) -> Pathway:
		...

	def list_by_user(self, user_id: str, min_conductance: float = 0.0, limit: Optional[int] = None) -> List[Pathway]:
		...

	def delete_where(self, user_id: str, max_conductance: float, max_age_days: float, now: Optional[datetime] = None) -> int:
		...

	def count_sessions(self, user_id: str) -> int:
		...


def _utc_now() -> datetime:
	return datetime.now(timezone.utc)


def days_between(earlier: datetime, later: datetime) -> float:
	return max(0.0, (later - earlier).total_seconds() / _SECONDS_PER_DAY)


def extract_theme(classification: Classification) -> Optional[str]:
	primary = classification.primary
	if primary is None or primary.dimension not in constants.DIMENSION_TIERS:
		return None
	return primary.category


def tier_multiplier(tier: int) -> float:
	for floor in sorted(constants.TIER_MULTIPLIERS, reverse=True):
		if tier >= floor:
			return constants.TIER_MULTIPLIERS[floor]
	return 1.0


def seed_conductance(tier: int) -> float:
	for floor in sorted(constants.SEED_CONDUCTANCE, reverse=True):
		if tier >= floor:
			return constants.SEED_CONDUCTANCE[floor]
	return constants.DEFAULT_SEED_CONDUCTANCE


def depth_bonus(classification: Classification) -> float:
	if classification.depth.is_covenant:
		return constants.COVENANT_DEPTH_BONUS
	if classification.depth.is_deep:
		return constants.DEEP_DEPTH_BONUS
	return 0.0


def clamp_conductance(value: float) -> float:
	return max(constants.MIN_CONDUCTANCE, min(constants.MAX_CONDUCTANCE, value))


def grow_conductance(current: float, classification: Classification) -> float:
	headroom = constants.MAX_CONDUCTANCE - current
	increment = constants.REINFORCEMENT_RATE * (headroom / constants.MAX_CONDUCTANCE)
	return clamp_conductance(current + increment * tier_multiplier(classification.tier) + depth_bonus(classification))


def decayed(pathway: Pathway, now: datetime) -> Pathway:
	"""Apply pending decay since the pathway's anchor. Unchanged under one day."""
	elapsed = days_between(pathway.decay_anchor, now)
	if elapsed < 1:
		return pathway
	value = clamp_conductance(pathway.conductance * math.exp(-constants.DECAY_RATE_PER_DAY * elapsed))
	if abs(value - pathway.conductance) <= _MIN_DECAY_DELTA:
		return pathway
	return replace(pathway, conductance=value, last_decayed_at=now)


class PathwayAccumulator:
	def __init__(self, store: PathwayStore, now_fn: Callable[[], datetime] = _utc_now):
		self._store = store
		self._now = now_fn
		self._locks: Tuple[Lock, ...] = tuple(Lock() for _ in range(_LOCK_STRIPES))

	def _user_lock(self, user_id: str) -> Lock:
		# Users sharing a stripe serialize; a user never spans two stripes.
		return self._locks[zlib.crc32(user_id.encode("utf-8")) % _LOCK_STRIPES]

	def reinforce(self, user_id: str, classification: Classification) -> Optional[Pathway]:
		if not user_id or classification.tier < constants.REINFORCE_MIN_TIER:
			return None
		theme = extract_theme(classification)
		if not theme:
			return None
		dimension = classification.primary_dimension
		try:
			with self._user_lock(user_id):
				return self._reinforce_locked(user_id, dimension, theme, classification)
		except PERSISTENCE_ERRORS as exc:
			logger.error("Reinforce failed for %s/%s: %s", dimension, theme, exc)
			return None

	def _reinforce_locked(self, user_id: str, dimension: str, theme: str, classification: Classification) -> Pathway:
		now = self._now()
		existing = self._store.get(user_id, dimension, theme)
		if existing is None:
			pathway = Pathway(
				user_id=user_id,
				dimension=dimension,
				theme=theme,
				conductance=seed_conductance(classification.tier),
				reinforcement_count=1,
				max_tier_seen=classification.tier,
				last_reinforced_at=now,
				created_at=now,
			)
			logger.info("New pathway %s/%s at %.3f", dimension, theme, pathway.conductance)
			return self._store.upsert(pathway)

		primary = classification.primary
		logger.debug(
			"Theme %s/%s matched again by phrase %r",
			dimension,
			theme,
			primary.phrase if primary else None,
		)
		current = decayed(existing, now)
		pathway = replace(
			current,
			conductance=grow_conductance(current.conductance, classification),
			reinforcement_count=existing.reinforcement_count + 1,
			max_tier_seen=max(existing.max_tier_seen, classification.tier),
			last_reinforced_at=now,
		)
		logger.info(
			"Reinforced %s/%s to %.3f (was %.3f)",
			dimension,
			theme,
			pathway.conductance,
			existing.conductance,
		)
		return self._store.upsert(pathway)

	def apply_decay(self, user_id: str) -> int:
		"""Write pending decay for every pathway of the user. Returns rows updated."""
		now = self._now()
		updated = 0
		for pathway in self._store.list_by_user(user_id):
			after = decayed(pathway, now)
			if after is not pathway:
				self._store.upsert(after)
				updated += 1
		if updated:
			logger.info("Decayed %s pathway(s) for user %s", updated, user_id)
		return updated

	def prune(self, user_id: str) -> int:
		removed = self._store.delete_where(
			user_id,
			constants.PRUNE_THRESHOLD,
			constants.STALE_AGE_DAYS,
			now=self._now(),
		)
		if removed:
			logger.info("Pruned %s stale pathway(s) for user %s", removed, user_id)
		return removed

	def load_landscape(self, user_id: str) -> PathwayLandscape:
		if not user_id:
			return PathwayLandscape.empty()
		try:
			with self._user_lock(user_id):
				self.apply_decay(user_id)
				self.prune(user_id)
			now = self._now()
			rows = [
				pathway
				for pathway in self._store.list_by_user(
					user_id,
					constants.VISIBILITY_THRESHOLD,
					constants.MAX_PATHWAYS_PER_USER,
				)
				if pathway.conductance > constants.VISIBILITY_THRESHOLD
			]
			session_count = self._store.count_sessions(user_id)
		except PERSISTENCE_ERRORS as exc:
			logger.error("Landscape load failed for user %s: %s", user_id, exc)
			return PathwayLandscape.empty()

		pathways = tuple(
			LandscapePathway(
				dimension=row.dimension,
				theme=row.theme,
				conductance=row.conductance,
				reinforcement_count=row.reinforcement_count,
				max_tier_seen=row.max_tier_seen,
				days_since_reinforced=days_between(row.last_reinforced_at, now),
			)
			for row in rows
		)
		return PathwayLandscape(pathways=pathways, session_count=session_count)
