from __future__ import annotations

import json
from collections import deque
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Deque, Dict, List, Optional

from voice_policy.backend.invariants.types import GateResult
from voice_policy.backend.logging_config import get_logger


_DEFAULT_BUFFER_SIZE = 500


def _now_iso() -> str:
	return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def violation_labels(gate: Optional[GateResult]) -> List[str]:
	if gate is None:
		return []
	return [f"{violation.invariant}:{violation.severity}" for violation in gate.violations]


class ObservabilitySink:
	"""Flat analytics records, logged as JSON and kept in a bounded buffer."""

	def __init__(self, buffer_size: int = _DEFAULT_BUFFER_SIZE, logger_name: str = "observability"):
		self._records: Deque[Dict[str, Any]] = deque(maxlen=max(1, buffer_size))
		self._lock = Lock()
		self._logger = get_logger(logger_name)

	def emit(self, record_type: str, fields: Dict[str, Any]) -> Dict[str, Any]:
		record: Dict[str, Any] = {"type": record_type, "recorded_at": _now_iso()}
		record.update(fields)
		with self._lock:
			self._records.append(record)
		self._logger.info(json.dumps(record, sort_keys=True, default=str))
		return record

	def records(self, record_type: Optional[str] = None) -> List[Dict[str, Any]]:
		with self._lock:
			snapshot = list(self._records)
		if record_type is None:
			return snapshot
		return [record for record in snapshot if record.get("type") == record_type]

	def clear(self) -> None:
		with self._lock:
			self._records.clear()
