from __future__ import annotations

from typing import Dict, Union

from voice_policy.backend import constants
from voice_policy.backend.policy.types import Classification


_RETENTION = (
	(21, "Covenant", "permanent pathway, shapes every session"),
	(13, "Voice", "pathway kept ninety days, modifies tone"),
	(8, "Physiology", "pathway kept thirty days"),
)


def build_logline(classification: Classification) -> Dict[str, Union[str, int]]:
	"""And/But/Therefore explanation of a classification."""
	tier = classification.tier
	if classification.is_noise:
		return {
			"and": "User sent surface-level content",
			"but": "it contains no self-reference or emotional weight",
			"therefore": "classify as W1 noise; warm presence, drift toward depth if invited.",
			"tier": tier,
		}

	primary = classification.primary
	first = primary.markers[0] if primary and primary.markers else None
	and_clause = (
		f'User expressed "{first.phrase}" ({first.description})'
		if first
		else f"User shared {classification.primary_dimension} content"
	)

	depth_signals = classification.depth.signals
	if classification.is_multi_dimensional:
		second = classification.all_dimensions[1]
		second_desc = second.markers[0].description if second.markers else "relational context"
		but_clause = f"this also touches {second.dimension} ({second_desc})"
	elif depth_signals:
		but_clause = "depth markers reveal " + " + ".join(signal.description for signal in depth_signals[:2])
	elif tier >= constants.COVENANT_TIER:
		but_clause = "this strikes at identity level"
	elif tier >= 13:
		but_clause = "this involves relational dynamics"
	elif tier >= 8:
		but_clause = "this lives in the body"
	else:
		but_clause = "this is situational, not defining"

	therefore_clause = f"classify as W{tier} Context; session only."
	for floor, label, retention in _RETENTION:
		if tier >= floor:
			therefore_clause = f"classify as W{floor} {label}; {retention}."
			break

	return {"and": and_clause, "but": but_clause, "therefore": therefore_clause, "tier": tier}
