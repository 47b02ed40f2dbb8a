from __future__ import annotations

from typing import Dict

from voice_policy.backend import constants
from voice_policy.backend.logging_config import get_logger
from voice_policy.backend.services.conductance_service import PERSISTENCE_ERRORS
from voice_policy.backend.services.engine_service import PolicyEngine


logger = get_logger("health")


def _storage(engine: PolicyEngine) -> Dict[str, object]:
	meta_fn = getattr(engine.store, "storage_meta", None)
	if meta_fn is None:
		return {"status": "external"}
	try:
		meta = dict(meta_fn())
	except PERSISTENCE_ERRORS as exc:
		logger.error("Storage health check failed: %s", exc)
		return {"status": "unavailable", "error": str(exc)}
	meta["status"] = "ok" if meta.get("quick_check") == "ok" else "degraded"
	return meta


def get_summary(engine: PolicyEngine) -> Dict[str, object]:
	settings = engine.settings
	mode = settings.effective_provider_mode
	return {
		"app": {"name": constants.APP_NAME, "version": constants.APP_VERSION, "environment": settings.environment},
		"provider": {
			"configured_mode": settings.provider_mode,
			"mode": mode,
			"model": settings.openai_model if mode == "openai" else None,
			"ready": mode == "local" or bool(settings.openai_api_key),
		},
		"gate": {
			"invariants": list(constants.INVARIANT_ORDER),
			"max_regenerations": settings.max_regenerations,
		},
		"timing_targets_ms": dict(constants.CHECKPOINT_TARGETS_MS),
		"conversations": {"open": engine.registry.open_count()},
		"storage": _storage(engine),
	}
