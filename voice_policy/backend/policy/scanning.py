from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, List, Optional, Pattern, Sequence, Tuple

from voice_policy.backend.policy.types import SignalMatch


CategoryTable = Sequence[Tuple[str, str, Sequence[str]]]

_QUOTE_MAP = str.maketrans({"‘": "'", "’": "'", "“": '"', "”": '"'})


def straighten_quotes(text: str) -> str:
	return (text or "").translate(_QUOTE_MAP)


def normalize_text(text: str) -> str:
	return " ".join(straighten_quotes(text).lower().split())


@lru_cache(maxsize=2048)
def phrase_pattern(phrase: str) -> Pattern[str]:
	return re.compile(r"(?<!\w)" + re.escape(phrase.lower()) + r"(?!\w)")


def contains_phrase(text: str, phrase: str) -> bool:
	return phrase_pattern(phrase).search(text) is not None


def first_match(text: str, phrases: Iterable[str]) -> Optional[str]:
	for phrase in phrases:
		if contains_phrase(text, phrase):
			return phrase
	return None


def scan_categories(text: str, table: CategoryTable) -> List[SignalMatch]:
	"""Return one match per category that fires, in table order."""
	matches: List[SignalMatch] = []
	for category, description, phrases in table:
		phrase = first_match(text, phrases)
		if phrase is not None:
			matches.append(SignalMatch(category=category, phrase=phrase, description=description))
	return matches


def count_words(text: str) -> int:
	return len([word for word in (text or "").split() if word])


def count_sentences(text: str) -> int:
	parts = [part for part in re.split(r"[.!?]+(?:\s+|$)", (text or "").strip()) if part.strip()]
	return len(parts)
