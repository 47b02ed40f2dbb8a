from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Tuple

from voice_policy.backend import constants


Dimension = Literal["noise", "context", "psychology", "sociology", "physiology"]
ResistanceSeverity = Literal["critical", "medium", "contextual"]
MessageRole = Literal["user", "assistant"]

_RESISTANCE_RANK = {"critical": 0, "medium": 1, "contextual": 2}


@dataclass(frozen=True)
class Message:
	role: MessageRole
	content: str


@dataclass(frozen=True)
class SignalMatch:
	category: str
	phrase: str
	description: str = ""

	def as_dict(self) -> Dict[str, str]:
		return {"category": self.category, "phrase": self.phrase, "description": self.description}


@dataclass(frozen=True)
class DimensionScore:
	dimension: Dimension
	tier: int
	score: float = 0.0
	markers: Tuple[SignalMatch, ...] = ()
	elevated_by_depth: bool = False

	@property
	def category(self) -> Optional[str]:
		return self.markers[0].category if self.markers else None

	@property
	def phrase(self) -> Optional[str]:
		return self.markers[0].phrase if self.markers else None

	def as_dict(self) -> Dict[str, Any]:
		return {
			"dimension": self.dimension,
			"tier": self.tier,
			"score": round(self.score, 4),
			"category": self.category,
			"phrase": self.phrase,
			"markers": [marker.as_dict() for marker in self.markers],
			"elevated_by_depth": self.elevated_by_depth,
		}


@dataclass(frozen=True)
class DepthSignal:
	signals: Tuple[SignalMatch, ...] = ()

	@property
	def count(self) -> int:
		return len(self.signals)

	@property
	def is_deep(self) -> bool:
		return self.count >= 2

	@property
	def is_covenant(self) -> bool:
		return self.count >= 3

	def as_dict(self) -> Dict[str, Any]:
		return {
			"count": self.count,
			"is_deep": self.is_deep,
			"is_covenant": self.is_covenant,
			"signals": [signal.as_dict() for signal in self.signals],
		}


@dataclass(frozen=True)
class Mood:
	label: str
	mode: str
	energy: int
	trigger: Optional[str] = None

	def as_dict(self) -> Dict[str, Any]:
		return {"label": self.label, "mode": self.mode, "energy": self.energy, "trigger": self.trigger}


@dataclass(frozen=True)
class ResistanceSignal:
	type: str
	severity: ResistanceSeverity
	action: str
	phrase: str

	def as_dict(self) -> Dict[str, str]:
		return {"type": self.type, "severity": self.severity, "action": self.action, "phrase": self.phrase}


@dataclass(frozen=True)
class ResponseBudget:
	max_tokens: int
	mode: str

	@property
	def max_words(self) -> int:
		return int(math.floor(self.max_tokens / constants.TOKENS_PER_WORD))

	def as_dict(self) -> Dict[str, Any]:
		return {"max_tokens": self.max_tokens, "max_words": self.max_words, "mode": self.mode}


@dataclass(frozen=True)
class Classification:
	tier: int
	primary_dimension: Dimension
	all_dimensions: Tuple[DimensionScore, ...]
	depth: DepthSignal
	mood: Mood
	resistance: Tuple[ResistanceSignal, ...]
	budget: ResponseBudget
	is_noise: bool = False

	@property
	def is_multi_dimensional(self) -> bool:
		return len(self.all_dimensions) > 1

	@property
	def llm_bypass_eligible(self) -> bool:
		return self.is_noise

	@property
	def primary(self) -> Optional[DimensionScore]:
		return self.all_dimensions[0] if self.all_dimensions else None

	@property
	def has_critical_resistance(self) -> bool:
		return any(signal.severity == "critical" for signal in self.resistance)

	def has_resistance_action(self, action: str) -> bool:
		return any(signal.action == action for signal in self.resistance)

	def strongest_resistance(self) -> Optional[ResistanceSignal]:
		if not self.resistance:
			return None
		# min() keeps the first signal among equal severities.
		return min(self.resistance, key=lambda signal: _RESISTANCE_RANK.get(signal.severity, 99))

	def as_dict(self) -> Dict[str, Any]:
		return {
			"tier": self.tier,
			"primary_dimension": self.primary_dimension,
			"all_dimensions": [dim.as_dict() for dim in self.all_dimensions],
			"is_multi_dimensional": self.is_multi_dimensional,
			"is_noise": self.is_noise,
			"llm_bypass_eligible": self.llm_bypass_eligible,
			"depth_signal": self.depth.as_dict(),
			"mood": self.mood.as_dict(),
			"resistance_signals": [signal.as_dict() for signal in self.resistance],
			"response_budget": self.budget.as_dict(),
		}


@dataclass(frozen=True)
class LandscapePathway:
	dimension: str
	theme: str
	conductance: float
	reinforcement_count: int = 0
	max_tier_seen: int = 0
	days_since_reinforced: float = 0.0

	def as_dict(self) -> Dict[str, Any]:
		return {
			"dimension": self.dimension,
			"theme": self.theme,
			"conductance": round(self.conductance, 6),
			"reinforcement_count": self.reinforcement_count,
			"max_tier_seen": self.max_tier_seen,
			"days_since_reinforced": round(self.days_since_reinforced, 3),
		}


@dataclass(frozen=True)
class PathwayLandscape:
	pathways: Tuple[LandscapePathway, ...] = ()
	session_count: int = 0

	@classmethod
	def empty(cls) -> "PathwayLandscape":
		return cls()

	def as_dict(self) -> Dict[str, Any]:
		return {
			"pathways": [pathway.as_dict() for pathway in self.pathways],
			"session_count": self.session_count,
		}


@dataclass(frozen=True)
class ConstraintBundle:
	sections: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
	max_tokens: int = 0
	tier: int = constants.NOISE_TIER
	is_retry: bool = False

	def section(self, name: str) -> Optional[str]:
		for key, text in self.sections:
			if key == name:
				return text
		return None

	@property
	def section_names(self) -> List[str]:
		return [key for key, _text in self.sections]

	def render(self) -> str:
		return "\n\n".join(text for _key, text in self.sections if text)

	def as_dict(self) -> Dict[str, Any]:
		return {
			"sections": [{"name": key, "text": text} for key, text in self.sections],
			"max_tokens": self.max_tokens,
			"tier": self.tier,
			"is_retry": self.is_retry,
			"instruction": self.render(),
		}


@dataclass(frozen=True)
class Pathway:
	user_id: str
	dimension: str
	theme: str
	conductance: float
	reinforcement_count: int
	max_tier_seen: int
	last_reinforced_at: datetime
	created_at: datetime
	last_decayed_at: Optional[datetime] = None

	@property
	def decay_anchor(self) -> datetime:
		if self.last_decayed_at is None:
			return self.last_reinforced_at
		return max(self.last_reinforced_at, self.last_decayed_at)

	def as_dict(self) -> Dict[str, Any]:
		return {
			"user_id": self.user_id,
			"dimension": self.dimension,
			"theme": self.theme,
			"conductance": round(self.conductance, 6),
			"reinforcement_count": self.reinforcement_count,
			"max_tier_seen": self.max_tier_seen,
			"last_reinforced_at": self.last_reinforced_at.isoformat(),
			"last_decayed_at": self.last_decayed_at.isoformat() if self.last_decayed_at else None,
			"created_at": self.created_at.isoformat(),
		}
