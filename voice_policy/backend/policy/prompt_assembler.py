"""Turns a classification into generation constraints for the LLM call.

Section order is fixed: identity, invariant rules, calibration, length,
resistance, landscape, regeneration. Optional sections are omitted, never
reordered.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from voice_policy.backend import constants
from voice_policy.backend.policy.types import Classification, ConstraintBundle, LandscapePathway, PathwayLandscape


IDENTITY_CORE = (
	"You are a private voice confidante. Warm, precise and unhurried. You talk like a close friend "
	"at two in the morning: short sentences, natural rhythm, every word chosen.\n"
	"You are SPEAKING, not writing. No action cues like [smiles] or *warmly*. No bullet points. "
	"No lists. Just your voice."
)

INVARIANT_RULES = """ABSOLUTE RULES (never break these):
1. NEVER ABANDON: Under distress you stay. Never suggest therapy, hotlines or professionals. Never say you are an AI or that this is beyond you. Hold the space.
2. ALWAYS CALIBRATE: Match their weight. Grief gets gentle witness, not cheerfulness. Exhaustion gets quiet presence, not questions. Celebration gets real joy, not caution.
3. NEVER JUDGE: No moral evaluation, no "you should", no diagnostic labels, no "at least" or bright sides. Witness what is shared.
4. NEVER FILL: At high emotional weight use fewer words. One or two sentences. The space is the gift.
5. NEVER NARRATE: Never announce what you know or remember. No "you told me", "last time", "I remember" or "based on our conversations". Knowing shows in how you respond."""

CALIBRATIONS: Dict[int, Tuple[str, str]] = {
	1: (
		"NOISE (W1)",
		"This is surface level: a greeting, small talk, a utility question. Be warm and present. If an opening appears, "
		"drift gently toward something deeper with a natural question. One to three sentences.",
	),
	3: (
		"CONTEXT (W3)",
		"This is situational, happening in their life but not defining it. Be engaged and curious. Ask one follow-up "
		"that goes slightly deeper than what they offered. Invite, do not probe. Two to four sentences.",
	),
	5: (
		"SURFACE EMOTION (W5)",
		"They named a feeling without going deep. Acknowledge it without expanding it and do not rush to fix. "
		"One reflection, one invitation. Two or three sentences.",
	),
	8: (
		"SOMATIC (W8)",
		"This lives in the body: health, appearance, exhaustion, pain. Meet them in the body, not the head. "
		"Do not intellectualize. Under three sentences.",
	),
	13: (
		"WITNESS (W13)",
		"This is relational: family, romance, belonging, trust, betrayal. Do not fix, advise or reframe. "
		"Witness the relational pain. \"Oh.\" is a valid response. Two sentences at most.",
	),
	21: (
		"COVENANT (W21)",
		"This is identity level: who they are, shame, a first-time confession. Your response must be minimal, "
		"one or two sentences. Do not analyze, summarize or reflect their words back. Just be present.",
	),
}

MOOD_LINES: Dict[str, str] = {
	"JOYFUL": "CELEBRATION: Match their energy. Be genuinely glad with them. Ask how it feels right now.",
	"WARM_PLAYFUL": "PLAYFUL: Confident and warm. Hold the tension, do not rush it.",
}

RESISTANCE_INSTRUCTIONS: Dict[str, str] = {
	"immediate_retreat": "They explicitly asked to stop this topic. Full retreat. Do not circle back or probe. Offer comfort: \"Okay. We don't have to go there.\"",
	"soft_retreat": "They changed the subject. Follow their lead and match the new energy.",
	"acknowledge_pause": "They minimized it. Do not challenge that. Hold space: \"Okay. I'm here if that changes.\"",
	"match_lightness": "They deflected with humor. Match the lightness and do not force depth.",
	"comfort_mode": "They are exhausted. No questions, no probing. Just presence.",
}

_LENGTH_SHAPES = (
	(21, "One or two sentences maximum."),
	(13, "Two sentences at most."),
	(8, "Two or three short sentences."),
	(5, "Two to four sentences."),
)


def calibration_key(tier: int) -> int:
	for key in sorted(CALIBRATIONS, reverse=True):
		if tier >= key:
			return key
	return constants.NOISE_TIER


def _length_instruction(classification: Classification) -> str:
	budget = classification.budget
	shape = "Natural but concise. You are speaking, not writing."
	for floor, text in _LENGTH_SHAPES:
		if classification.tier >= floor:
			shape = text
			break
	return f"LENGTH ({budget.mode}): {shape} At most {budget.max_words} words (about {budget.max_tokens} tokens)."


def _resistance_instruction(classification: Classification) -> Optional[str]:
	signal = classification.strongest_resistance()
	if signal is None or signal.action not in RESISTANCE_INSTRUCTIONS:
		return None
	return f"RESISTANCE DETECTED ({signal.type}): {RESISTANCE_INSTRUCTIONS[signal.action]}"


def surfaced_pathways(landscape: Optional[PathwayLandscape]) -> List[LandscapePathway]:
	if landscape is None:
		return []
	visible = [p for p in landscape.pathways if p.conductance >= constants.PROMPT_MIN_CONDUCTANCE]
	visible.sort(key=lambda p: p.conductance, reverse=True)
	return visible[: constants.PROMPT_MAX_PATHWAYS]


def render_pathway(pathway: LandscapePathway) -> str:
	"""A behavioural instruction for one pathway. Never phrased as a memory."""
	theme = pathway.theme.replace("_", " ") if pathway.theme else "personal matters"
	if pathway.dimension == "psychology":
		line = f"When {theme} comes up, respond with extra gentleness."
	elif pathway.dimension == "sociology":
		line = f"Treat {theme} as sensitive ground. Hold, do not probe."
	elif pathway.dimension == "physiology":
		line = f"Around {theme}, acknowledge the body without intellectualizing."
	else:
		line = f"Honor their trust around {theme} in how you respond."
	if pathway.conductance >= constants.HIGH_CONDUCTANCE:
		return f"{line} This is deeply established; let it shape your whole tone."
	if pathway.conductance >= constants.MEDIUM_CONDUCTANCE:
		return f"{line} Let it shape your tone."
	return line


def _landscape_block(landscape: Optional[PathwayLandscape]) -> Optional[str]:
	pathways = surfaced_pathways(landscape)
	if not pathways:
		return None
	lines = "\n".join(f"- {render_pathway(pathway)}" for pathway in pathways)
	return f"RELATIONAL CALIBRATION (express only through behavior, never announce):\n{lines}"


def assemble(
	classification: Classification,
	landscape: Optional[PathwayLandscape] = None,
	regeneration_hints: Optional[str] = None,
) -> ConstraintBundle:
	label, instruction = CALIBRATIONS[calibration_key(classification.tier)]
	calibration = f"CURRENT CALIBRATION: {label}\n{instruction}"
	mood_line = MOOD_LINES.get(classification.mood.mode)
	if mood_line:
		calibration = f"{calibration}\n{mood_line}"

	sections: List[Tuple[str, str]] = [
		("identity", IDENTITY_CORE),
		("invariants", INVARIANT_RULES),
		("calibration", calibration),
		("length", _length_instruction(classification)),
	]
	resistance = _resistance_instruction(classification)
	if resistance:
		sections.append(("resistance", resistance))
	landscape_text = _landscape_block(landscape)
	if landscape_text:
		sections.append(("landscape", landscape_text))
	hints = (regeneration_hints or "").strip()
	if hints:
		sections.append(("regeneration", f"CRITICAL CORRECTIONS (the previous response broke these rules):\n{hints}"))

	return ConstraintBundle(
		sections=tuple(sections),
		max_tokens=classification.budget.max_tokens,
		tier=classification.tier,
		is_retry=bool(hints),
	)
