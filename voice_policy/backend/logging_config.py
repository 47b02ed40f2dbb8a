"""
Logging for the policy engine: one ``voice_policy`` logger tree.

Turn and gate analytics go to ``voice_policy.observability`` and can be
tuned apart from the component loggers, so production can keep the JSON
records while silencing debug chatter (or the reverse).
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

from voice_policy.backend.config import EngineSettings


ROOT_LOGGER = "voice_policy"
OBSERVABILITY_LOGGER = f"{ROOT_LOGGER}.observability"
_DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
# Marks handlers installed here so a reconfigure leaves foreign handlers alone.
_OWNED_ATTR = "_voice_policy_owned"


def _level(name: Optional[str], default: int = logging.INFO) -> int:
	if not name:
		return default
	value = logging.getLevelName(name.strip().upper())
	return value if isinstance(value, int) else default


def _owned(handler: logging.Handler) -> logging.Handler:
	setattr(handler, _OWNED_ATTR, True)
	return handler


def setup_logging(
	level: str = "INFO",
	log_file: Optional[str] = None,
	*,
	observability_level: Optional[str] = None,
	format_string: Optional[str] = None,
) -> logging.Logger:
	"""Configure the ``voice_policy`` tree. Repeat calls replace earlier setup."""
	logger = logging.getLogger(ROOT_LOGGER)
	logger.setLevel(_level(level))
	for handler in [h for h in logger.handlers if getattr(h, _OWNED_ATTR, False)]:
		logger.removeHandler(handler)
		handler.close()

	formatter = logging.Formatter(format_string or _DEFAULT_FORMAT)
	console_handler = _owned(logging.StreamHandler(sys.stdout))
	console_handler.setFormatter(formatter)
	logger.addHandler(console_handler)

	if log_file:
		log_path = Path(log_file)
		log_path.parent.mkdir(parents=True, exist_ok=True)
		file_handler = _owned(logging.FileHandler(log_path))
		file_handler.setFormatter(formatter)
		logger.addHandler(file_handler)

	# NOTSET defers to the root level.
	logging.getLogger(OBSERVABILITY_LOGGER).setLevel(_level(observability_level, logging.NOTSET))
	return logger


def configure_logging(settings: EngineSettings) -> logging.Logger:
	return setup_logging(
		settings.log_level,
		settings.log_file,
		observability_level=settings.observability_log_level,
	)


def get_logger(name: str) -> logging.Logger:
	"""Get a child logger for a specific component."""
	return logging.getLogger(f"{ROOT_LOGGER}.{name}")
