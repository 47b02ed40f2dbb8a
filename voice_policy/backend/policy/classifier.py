"""Deterministic signal classifier.

Scores one utterance along the psychology / sociology / physiology
dimensions, applies depth elevation and derives the response budget. Pure
string scanning, no I/O.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

from voice_policy.backend import constants
from voice_policy.backend.policy import lexicon
from voice_policy.backend.policy.scanning import CategoryTable, first_match, normalize_text, scan_categories
from voice_policy.backend.policy.tiers import normalize_tier
from voice_policy.backend.policy.types import (
	Classification,
	DepthSignal,
	DimensionScore,
	Message,
	Mood,
	ResistanceSignal,
	ResponseBudget,
	SignalMatch,
)


_NOISE_UTILITY_RE = re.compile(lexicon.NOISE_UTILITY_PATTERN)
_SELF_REFERENCE_RE = re.compile(lexicon.SELF_REFERENCE_PATTERN)
_IDENTITY_FUSION_RE = re.compile(lexicon.IDENTITY_FUSION_PATTERN)


def is_noise(text: str) -> bool:
	lowered = normalize_text(text)
	if not lowered:
		return True
	if _SELF_REFERENCE_RE.search(lowered):
		return False
	if len(lowered) < constants.NOISE_MAX_CHARS and first_match(lowered, lexicon.NOISE_PHRASES) is not None:
		return True
	# Utility questions are noise only while they carry no dimension signal.
	return _NOISE_UTILITY_RE.search(lowered) is not None and not score_dimensions(lowered)


def detect_mood(text: str) -> Mood:
	lowered = normalize_text(text)
	for label, mode, energy, phrases in lexicon.MOOD_TABLE:
		phrase = first_match(lowered, phrases)
		if phrase is not None:
			return Mood(label=label, mode=mode, energy=energy, trigger=phrase)
	label, mode, energy = lexicon.DEFAULT_MOOD
	return Mood(label=label, mode=mode, energy=energy, trigger=None)


def detect_resistance(text: str) -> Tuple[ResistanceSignal, ...]:
	lowered = normalize_text(text)
	detected: List[ResistanceSignal] = []
	for signal_type, severity, action, phrases in lexicon.RESISTANCE_TABLE:
		phrase = first_match(lowered, phrases)
		if phrase is not None:
			detected.append(ResistanceSignal(type=signal_type, severity=severity, action=action, phrase=phrase))  # type: ignore[arg-type]
	return tuple(detected)


def detect_depth(text: str) -> DepthSignal:
	return DepthSignal(signals=tuple(scan_categories(normalize_text(text), lexicon.DEPTH_CATEGORIES)))


def _score(text: str, table: CategoryTable, increment: float) -> Tuple[float, List[SignalMatch]]:
	markers = scan_categories(text, table)
	return min(len(markers) * increment, 1.0), markers


def score_dimensions(text: str) -> List[DimensionScore]:
	"""Return every dimension scoring above the minimum, unsorted."""
	lowered = normalize_text(text)

	psych_score, psych_markers = _score(lowered, lexicon.PSYCHOLOGY_CATEGORIES, lexicon.PSYCHOLOGY_INCREMENT)
	if _IDENTITY_FUSION_RE.search(lowered):
		category, description, phrase = lexicon.IDENTITY_FUSION_CATEGORY
		psych_score = min(psych_score + lexicon.IDENTITY_FUSION_INCREMENT, 1.0)
		psych_markers.append(SignalMatch(category=category, phrase=phrase, description=description))
	socio_score, socio_markers = _score(lowered, lexicon.SOCIOLOGY_CATEGORIES, lexicon.SOCIOLOGY_INCREMENT)
	physio_score, physio_markers = _score(lowered, lexicon.PHYSIOLOGY_CATEGORIES, lexicon.PHYSIOLOGY_INCREMENT)

	dimensions: List[DimensionScore] = []
	for name, score, markers in (
		("psychology", psych_score, psych_markers),
		("sociology", socio_score, socio_markers),
		("physiology", physio_score, physio_markers),
	):
		if score > constants.DIMENSION_MIN_SCORE:
			dimensions.append(
				DimensionScore(
					dimension=name,  # type: ignore[arg-type]
					tier=constants.DIMENSION_TIERS[name],
					score=score,
					markers=tuple(markers),
				)
			)
	return dimensions


def _elevate(dimensions: List[DimensionScore], depth: DepthSignal) -> List[DimensionScore]:
	if not dimensions:
		return dimensions
	ordered = sorted(dimensions, key=lambda dim: dim.tier, reverse=True)
	top = ordered[0]
	if depth.is_covenant and top.tier < constants.COVENANT_TIER:
		ordered[0] = DimensionScore(top.dimension, constants.COVENANT_TIER, top.score, top.markers, elevated_by_depth=True)
	elif depth.is_deep and top.tier < constants.DEEP_TIER_FLOOR:
		ordered[0] = DimensionScore(top.dimension, constants.DEEP_TIER_FLOOR, top.score, top.markers, elevated_by_depth=True)
	return sorted(ordered, key=lambda dim: dim.tier, reverse=True)


def derive_budget(tier: int, resistance: Sequence[ResistanceSignal] = ()) -> ResponseBudget:
	if any(signal.severity == "critical" for signal in resistance):
		max_tokens, mode = constants.BOUNDARY_BUDGET
		return ResponseBudget(max_tokens=max_tokens, mode=mode)
	max_tokens, mode = constants.TIER_BUDGETS[normalize_tier(tier)]
	if tier >= constants.FILL_CHECK_MIN_TIER:
		max_tokens = int(max_tokens * constants.LESS_IS_MORE_FACTOR)
	if any(signal.action == "comfort_mode" for signal in resistance):
		max_tokens = min(max_tokens, constants.COMFORT_BUDGET_CEILING)
		mode = constants.COMFORT_MODE
	return ResponseBudget(max_tokens=max_tokens, mode=mode)


def classify(utterance: str, history: Optional[Sequence[Message]] = None, *, strict: bool = False) -> Classification:
	"""Classify one utterance. Never fails; unmatched input resolves to tier 3.

	``history`` is accepted for interface parity with the transport; the rule
	set scores the current utterance only.
	"""
	text = normalize_text(utterance)
	mood = detect_mood(text)
	resistance = detect_resistance(text)

	if is_noise(text):
		tier = constants.NOISE_TIER
		return Classification(
			tier=tier,
			primary_dimension="noise",
			all_dimensions=(DimensionScore(dimension="noise", tier=tier),),
			depth=DepthSignal(),
			mood=mood,
			resistance=resistance,
			budget=derive_budget(tier, resistance),
			is_noise=True,
		)

	depth = detect_depth(text)
	dimensions = _elevate(score_dimensions(text), depth)
	if not dimensions:
		dimensions = [DimensionScore(dimension="context", tier=constants.CONTEXT_TIER)]

	tier = normalize_tier(dimensions[0].tier, strict=strict)
	return Classification(
		tier=tier,
		primary_dimension=dimensions[0].dimension,
		all_dimensions=tuple(dimensions),
		depth=depth,
		mood=mood,
		resistance=resistance,
		budget=derive_budget(tier, resistance),
	)
