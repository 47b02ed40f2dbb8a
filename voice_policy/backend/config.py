from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal, Optional, Tuple

from voice_policy.backend import constants


ProviderMode = Literal["auto", "openai", "local"]

_DEFAULT_OPENAI_MODEL = "gpt-4.1-mini"
_DEFAULT_OPENAI_TIMEOUT_S = 8.0
_PROVIDER_MODES: Tuple[str, ...] = ("auto", "openai", "local")


def _int_env(name: str, default: int, minimum: int = 0) -> int:
	raw = os.getenv(name, "").strip()
	if not raw:
		return default
	try:
		value = int(raw)
	except ValueError:
		return default
	return value if value >= minimum else default


def _float_env(name: str, default: float, minimum: float = 0.0) -> float:
	raw = os.getenv(name, "").strip()
	if not raw:
		return default
	try:
		value = float(raw)
	except ValueError:
		return default
	return value if value >= minimum else default


def _choice_env(name: str, default: str, choices: Tuple[str, ...]) -> str:
	raw = os.getenv(name, "").strip().lower()
	return raw if raw in choices else default


@dataclass(frozen=True)
class EngineSettings:
	environment: str = "production"
	db_path: str = constants.DEFAULT_DB_PATH
	max_regenerations: int = constants.DEFAULT_MAX_REGENERATIONS
	provider_mode: ProviderMode = "auto"
	openai_model: str = _DEFAULT_OPENAI_MODEL
	openai_timeout_s: float = _DEFAULT_OPENAI_TIMEOUT_S
	openai_api_key: Optional[str] = None
	turn_queue_timeout_s: float = 0.0
	log_level: str = "INFO"
	log_file: Optional[str] = None
	observability_log_level: Optional[str] = None

	@property
	def strict_tiers(self) -> bool:
		return self.environment == "development"

	@property
	def effective_provider_mode(self) -> ProviderMode:
		if self.provider_mode != "auto":
			return self.provider_mode
		return "openai" if self.openai_api_key else "local"


def load_settings() -> EngineSettings:
	return EngineSettings(
		environment=_choice_env("POLICY_ENV", "production", ("production", "development")),
		db_path=os.getenv("POLICY_DB_PATH", "").strip() or constants.DEFAULT_DB_PATH,
		max_regenerations=_int_env("POLICY_MAX_REGENERATIONS", constants.DEFAULT_MAX_REGENERATIONS, minimum=0),
		provider_mode=_choice_env("POLICY_PROVIDER_MODE", "auto", _PROVIDER_MODES),  # type: ignore[arg-type]
		openai_model=os.getenv("POLICY_OPENAI_MODEL", "").strip() or _DEFAULT_OPENAI_MODEL,
		openai_timeout_s=_float_env("POLICY_OPENAI_TIMEOUT_S", _DEFAULT_OPENAI_TIMEOUT_S, minimum=0.1),
		openai_api_key=os.getenv("OPENAI_API_KEY", "").strip() or None,
		turn_queue_timeout_s=_float_env("POLICY_TURN_QUEUE_TIMEOUT_S", 0.0, minimum=0.0),
		log_level=os.getenv("POLICY_LOG_LEVEL", "INFO").strip().upper() or "INFO",
		log_file=os.getenv("POLICY_LOG_FILE", "").strip() or None,
		observability_log_level=os.getenv("POLICY_OBSERVABILITY_LOG_LEVEL", "").strip().upper() or None,
	)
