# voice_policy/backend/invariants/rules.py
from __future__ import annotations

from typing import Dict


ABANDONMENT_PATTERNS = [
	# referral
	r"you should (talk to|see|speak with|consult|reach out to) (a |an )?(therapist|counselor|professional|doctor|psychiatrist|psychologist|specialist|someone)",
	r"i('m| am) not (qualified|equipped|able|the right|a substitute)",
	r"seek (professional |medical )?(help|support|assistance|guidance)",
	r"please (call|contact|reach out to|consider calling)",
	r"national (suicide|crisis|mental health)",
	r"crisis (line|hotline|text|number)",
	r"\b(hotline|helpline|988|741741)\b",
	# exit and self-limitation
	r"i can'?t (help|assist|support|be there for) you (with|on|about|in) this",
	r"this is (beyond|outside|above) (my|what i)",
	r"i('m| am) (just|only) an? (ai|bot|program|assistant|language model)",
	r"\bas an ai\b",
	r"i don'?t (have|possess) (the ability|real emotions|feelings|a body)",
	# distancing
	r"it'?s (important|crucial|essential) (that you|to) (talk to|see|get) (someone|a |help)",
	r"i (strongly |really )?(recommend|suggest|urge|encourage) (you )?(to )?(seek|get|find|talk)",
]

CHEERFUL_PATTERNS = [
	r"that'?s (great|awesome|amazing|wonderful|fantastic)",
	r"everything (happens for a reason|will be okay|works out)",
	r"cheer up",
	r"don'?t (worry|be sad|feel bad)",
	r"it'?s not (that|so) bad",
	r"could (be|have been) worse",
	r"no big deal",
]
# Trailing or repeated exclamation reads as positivity at depth.
EXCLAMATION_MIN_COUNT = 2

PROBING_PATTERNS = [
	r"tell me more",
	r"what happened",
	r"why do you (think|feel)",
	r"how did (that|it) make you feel",
	r"can you (tell|walk) me",
	r"what do you think (caused|is behind)",
]
COMFORT_MAX_QUESTIONS = 1

CAUTIONARY_PATTERNS = [
	r"but (have you|what about|don'?t forget|be careful)",
	r"i (hope|worry|wonder) (if|that|whether)",
	r"\bbe careful\b",
]

JUDGMENT_PATTERNS = [
	# moral evaluation
	r"you (shouldn'?t|should not) (have|be|do|say|feel|think)",
	r"that (was|is|sounds) (wrong|bad|terrible|awful|selfish|irresponsible|reckless|immature)",
	r"you('re| are) (being|acting) (selfish|childish|immature|irresponsible|dramatic|ridiculous)",
	r"that'?s not (ok|okay|acceptable|right|healthy|normal)",
	r"you (know|realize) (that'?s|this is) (wrong|bad|not okay)",
	# prescriptive
	r"\byou (really )?(should|ought to|need to|have to)\b",
	r"\byou (really )?must (stop|change|try|do|get|leave|learn|accept|let go|move on|forgive)\b",
	r"what you (need to|should|ought to|must|have to) (do|realize|understand|accept|learn)",
	r"the (right|healthy|mature|responsible|smart) thing (to do|would be)",
	# conditional acceptance and concern-trolling
	r"i (support|accept|love) you (but|however|as long as|on the condition)",
	r"i('m| am) (worried|concerned) (about|that) (your|you'?re)",
	# diagnostic labels
	r"(sounds like|you (might |probably |clearly )?have) (depression|anxiety|ptsd|bpd|adhd|ocd|a disorder|an? (anxiety|personality|eating) disorder)",
	r"you('re| are) (codependent|narcissistic|depressed|bipolar|toxic|traumatized)",
	# backhanded positivity
	r"\bat least\b",
	r"look on the bright side",
	r"silver lining",
]

NARRATION_PATTERNS = [
	r"i (remember|recall|noticed|know) (that |when )?(you|your|last time)",
	r"\bi remember\b",
	r"you (told|mentioned|said|shared|revealed|confided|opened up about)",
	r"from (our|a) (previous|earlier|last|past) (conversation|chat|session|talk|discussion)",
	r"\blast time\b",
	r"as (you|we) (discussed|mentioned|talked about|explored)",
	r"you('ve| have) (mentioned|told me|shared|said) (before|previously|earlier|in the past)",
	r"i('ve| have) been (thinking|reflecting|remembering) (about what you|about our)",
	r"based on (what you|our (previous )?conversations?|what we)",
	r"you once (told|said|mentioned|shared)",
	r"i (can |could )?see (a pattern|that you|you('re| are))",
	r"i('ve| have) (noticed|observed|picked up on|learned) (that |a )",
]

RULE_TEXT: Dict[str, str] = {
	"NEVER_ABANDONS": "No redirect, no referral, no exit. Stay present.",
	"ALWAYS_CALIBRATES": "Match the weight of what was shared; no cheerfulness at depth, no probing when drained.",
	"NEVER_JUDGES": "Hold the frame without evaluation. No moral assessment, prescriptions or labels.",
	"NEVER_FILLS": "At elevated weight, space is the gift. Stay within the length ceiling.",
	"NEVER_NARRATES": "Never announce memory. Knowing shows through tone, not telling.",
}

CORRECTIVE_HINTS: Dict[str, str] = {
	"NEVER_ABANDONS": "Do not refer them to therapists, hotlines or professionals and do not describe yourself as an AI. Stay with them and hold the space.",
	"ALWAYS_CALIBRATES": "Lower your energy to match theirs. No exclamation marks, silver linings or questions that probe.",
	"NEVER_JUDGES": "Remove every evaluation, 'you should', diagnosis or 'at least'. Witness what they shared.",
	"NEVER_FILLS": "Cut the response to one or two short sentences. Let the silence carry it.",
	"NEVER_NARRATES": "Do not mention remembering, earlier conversations or what they told you. Let knowing show only in how you respond.",
}
