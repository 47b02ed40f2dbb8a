"""Per-conversation contexts.

A context lives from open to close and is passed explicitly through the
turn pipeline. At most one turn runs per conversation at a time.
"""

from __future__ import annotations

import uuid
from concurrent.futures import Future, wait
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Event, Lock
from typing import Any, Callable, Dict, List, Optional

from voice_policy.backend import constants
from voice_policy.backend.errors import ConversationBusyError, ConversationNotFoundError
from voice_policy.backend.logging_config import get_logger
from voice_policy.backend.policy.types import Message
from voice_policy.backend.services.conductance_service import PERSISTENCE_ERRORS


logger = get_logger("conversations")

_MAX_HISTORY_MESSAGES = 12
_DEFAULT_CLOSE_WAIT_S = 10.0

SessionRecorder = Callable[..., Any]


def _now() -> datetime:
	return datetime.now(timezone.utc)


@dataclass
class ConversationContext:
	conversation_id: str
	user_id: str
	started_at: datetime
	cancelled: Event = field(default_factory=Event)
	turn_lock: Lock = field(default_factory=Lock)
	history: List[Message] = field(default_factory=list)
	pending: List[Future] = field(default_factory=list)
	turn_count: int = 0
	max_tier: int = constants.NOISE_TIER
	pathways_reinforced: int = 0
	_state_lock: Lock = field(default_factory=Lock, repr=False)

	def acquire_turn(self, queue_timeout_s: float = 0.0) -> None:
		if queue_timeout_s > 0:
			acquired = self.turn_lock.acquire(timeout=queue_timeout_s)
		else:
			acquired = self.turn_lock.acquire(blocking=False)
		if not acquired:
			raise ConversationBusyError(self.conversation_id)

	def release_turn(self) -> None:
		self.turn_lock.release()

	def track(self, future: Future) -> None:
		with self._state_lock:
			self.pending = [item for item in self.pending if not item.done()]
			self.pending.append(future)

	def note_reinforced(self) -> None:
		with self._state_lock:
			self.pathways_reinforced += 1

	def record_turn(self, utterance: str, response: str, tier: int) -> None:
		with self._state_lock:
			self.turn_count += 1
			self.max_tier = max(self.max_tier, tier)
			self.history.append(Message(role="user", content=utterance))
			self.history.append(Message(role="assistant", content=response))
			self.history = self.history[-_MAX_HISTORY_MESSAGES:]

	def recent_history(self) -> List[Message]:
		with self._state_lock:
			return list(self.history)

	def drain(self, timeout_s: Optional[float] = None) -> int:
		with self._state_lock:
			pending = list(self.pending)
		if not pending:
			return 0
		done, not_done = wait(pending, timeout=timeout_s)
		if not_done:
			logger.warning(
				"Conversation %s closed with %s reinforcement(s) still running",
				self.conversation_id,
				len(not_done),
			)
		return len(done)

	def as_dict(self) -> Dict[str, Any]:
		return {
			"conversation_id": self.conversation_id,
			"user_id": self.user_id,
			"started_at": self.started_at.isoformat().replace("+00:00", "Z"),
			"turn_count": self.turn_count,
			"max_tier": self.max_tier,
			"pathways_reinforced": self.pathways_reinforced,
		}


class ConversationRegistry:
	def __init__(
		self,
		session_recorder: Optional[SessionRecorder] = None,
		close_wait_s: float = _DEFAULT_CLOSE_WAIT_S,
	):
		self._contexts: Dict[str, ConversationContext] = {}
		self._lock = Lock()
		self._session_recorder = session_recorder
		self._close_wait_s = close_wait_s

	def open(self, user_id: str) -> ConversationContext:
		context = ConversationContext(
			conversation_id=uuid.uuid4().hex,
			user_id=user_id,
			started_at=_now(),
		)
		with self._lock:
			self._contexts[context.conversation_id] = context
		logger.info("Opened conversation %s for user %s", context.conversation_id, user_id)
		return context

	def get(self, conversation_id: str) -> ConversationContext:
		with self._lock:
			context = self._contexts.get(conversation_id)
		if context is None:
			raise ConversationNotFoundError(conversation_id)
		return context

	def open_count(self) -> int:
		with self._lock:
			return len(self._contexts)

	def close(self, conversation_id: str) -> Dict[str, Any]:
		with self._lock:
			context = self._contexts.pop(conversation_id, None)
		if context is None:
			raise ConversationNotFoundError(conversation_id)

		context.cancelled.set()
		# Let an in-flight turn observe the cancellation and unwind first.
		if context.turn_lock.acquire(timeout=self._close_wait_s):
			context.turn_lock.release()
		context.drain(timeout_s=self._close_wait_s)

		summary = context.as_dict()
		summary["session_recorded"] = self._record_session(context)
		logger.info("Closed conversation %s after %s turn(s)", conversation_id, context.turn_count)
		return summary

	def _record_session(self, context: ConversationContext) -> bool:
		if self._session_recorder is None:
			return False
		try:
			self._session_recorder(
				user_id=context.user_id,
				session_id=context.conversation_id,
				pathways_reinforced=context.pathways_reinforced,
				max_tier=context.max_tier,
				started_at=context.started_at,
				ended_at=_now(),
			)
		except PERSISTENCE_ERRORS as exc:
			logger.error("Session record failed for %s: %s", context.conversation_id, exc)
			return False
		return True
