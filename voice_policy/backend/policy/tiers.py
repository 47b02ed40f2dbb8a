from __future__ import annotations

from voice_policy.backend import constants
from voice_policy.backend.errors import InvalidTierError
from voice_policy.backend.logging_config import get_logger


logger = get_logger("tiers")


def normalize_tier(value: object, *, strict: bool = False) -> int:
	"""Return ``value`` if it is a defined tier.

	Out-of-set values raise in strict (development) mode and are otherwise
	snapped down to the nearest defined tier.
	"""
	if isinstance(value, int) and not isinstance(value, bool) and value in constants.TIERS:
		return value
	if strict:
		raise InvalidTierError(value)
	try:
		numeric = float(value)  # type: ignore[arg-type]
	except (TypeError, ValueError):
		logger.warning("Tier %r is not numeric; normalised to %s.", value, constants.NOISE_TIER)
		return constants.NOISE_TIER
	candidates = [tier for tier in constants.TIERS if tier <= numeric]
	normalized = candidates[-1] if candidates else constants.NOISE_TIER
	logger.warning("Tier %r is outside the tier set; normalised to %s.", value, normalized)
	return normalized


def next_lower_tier(tier: int) -> int | None:
	index = constants.TIERS.index(tier)
	return constants.TIERS[index - 1] if index > 0 else None
