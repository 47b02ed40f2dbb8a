from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from voice_policy.backend.policy.types import Classification


@dataclass(frozen=True)
class Backchannel:
	text: str
	avatar_cue: str
	description: str

	@property
	def is_silent(self) -> bool:
		return self.text == "..."

	def as_dict(self) -> Dict[str, object]:
		return {
			"text": self.text,
			"avatar_cue": self.avatar_cue,
			"description": self.description,
			"is_silent": self.is_silent,
		}


# set name -> (verbal options, avatar cue, description)
BACKCHANNEL_SETS: Dict[str, Tuple[Tuple[str, ...], str, str]] = {
	"low": (("Mm.", "Mm-hm.", "Hm."), "gentle_nod", "Light acknowledgment"),
	"medium": (("Mm.", "Oh.", "Hm."), "attentive_lean", "Attentive signal"),
	"physical": (("Mm.", "Oh."), "slow_nod", "Grounded acknowledgment"),
	"relational": (("Oh.", "..."), "soft_concern", "Relational holding"),
	"covenant": (("...",), "still_presence", "Witness silence"),
	"celebration": (("Oh!", "Wait..."), "eyes_widen", "Excited attention"),
	"resistance": (("Okay.",), "gentle_retreat", "Boundary respect"),
}


def backchannel_set_for(classification: Classification) -> str:
	if classification.has_critical_resistance:
		return "resistance"
	if classification.mood.mode == "JOYFUL":
		return "celebration"
	tier = classification.tier
	if tier >= 21:
		return "covenant"
	if tier >= 13:
		return "relational"
	if tier >= 8:
		return "physical"
	if tier >= 5:
		return "medium"
	return "low"


def select_backchannel(classification: Classification, rng: Optional[random.Random] = None) -> Backchannel:
	verbal, avatar_cue, description = BACKCHANNEL_SETS[backchannel_set_for(classification)]
	chooser = rng or random
	return Backchannel(text=chooser.choice(verbal), avatar_cue=avatar_cue, description=description)
