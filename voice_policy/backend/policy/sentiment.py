from __future__ import annotations

from voice_policy.backend.policy import lexicon
from voice_policy.backend.policy.scanning import contains_phrase, normalize_text


def score_sentiment(text: str) -> float:
	"""Keyword sentiment in [-1, 1]; 0.0 for empty text."""
	lowered = normalize_text(text)
	if not lowered:
		return 0.0
	score = 0.0
	for word in lexicon.SENTIMENT_POSITIVE:
		if contains_phrase(lowered, word):
			score += lexicon.SENTIMENT_STEP
	for word in lexicon.SENTIMENT_NEGATIVE:
		if contains_phrase(lowered, word):
			score -= lexicon.SENTIMENT_STEP
	return round(max(-1.0, min(1.0, score)), 4)
