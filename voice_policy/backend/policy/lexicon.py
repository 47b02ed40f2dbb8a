"""Lexical signal tables consumed by the classifier.

Every table is ordered. Category tables are ``(category, description, phrases)``
triples; scanning takes the first matching phrase per category, so phrase order
inside a category only affects which phrase is reported.
"""

from __future__ import annotations


NOISE_PHRASES = (
	"hi",
	"hello",
	"hey",
	"sup",
	"yo",
	"what's up",
	"weather",
	"what time",
	"thanks",
	"thank you",
	"ok",
	"okay",
	"cool",
	"nice",
	"good morning",
	"good night",
	"how are you",
)

# Utility questions are noise at any length.
NOISE_UTILITY_PATTERN = r"^(what'?s?|how'?s?|is it)\b.*\b(weather|temperature|time|date)\b"

SELF_REFERENCE_PATTERN = r"\b(i|i'm|i've|i'd|i'll|me|my|mine|myself)\b"

PSYCHOLOGY_CATEGORIES = (
	("identity", "identity statement", ("i am", "i'm a", "who i am", "type of person")),
	("fear", "fear expression", ("afraid", "fear", "terrified", "scared", "anxiety", "panic", "worry", "dread")),
	("desire", "desire/longing", ("want", "need", "crave", "wish", "hope", "dream", "long for")),
	("trauma", "trauma reference", ("trauma", "abuse", "assault", "died", "death", "lost", "grief", "ptsd", "haunts")),
	("shame", "shame/self-judgment", ("ashamed", "embarrassed", "humiliated", "worthless", "stupid", "failure", "hate myself")),
	("existential", "existential concern", ("meaningless", "pointless", "what's the point", "nothing matters", "purpose")),
	("belief", "core belief", ("i believe", "i think", "i feel like", "i always", "i never")),
)
PSYCHOLOGY_INCREMENT = 0.2

# "I'm a failure", "I am so ..." fuse the speaker with a label.
IDENTITY_FUSION_PATTERN = r"\bi('m| am) (a|an|such a|so) "
IDENTITY_FUSION_INCREMENT = 0.3
IDENTITY_FUSION_CATEGORY = ("identity_fusion", "identity-fused statement", "I am a...")

SOCIOLOGY_CATEGORIES = (
	("romantic", "romantic relationship", ("boyfriend", "girlfriend", "husband", "wife", "partner", "ex", "married", "divorced", "dating", "cheated")),
	("family", "family relationship", ("mother", "father", "mom", "dad", "parents", "family", "brother", "sister", "son", "daughter")),
	("social", "social belonging", ("friends", "people", "everyone", "no one", "alone", "lonely", "belong", "rejected")),
	("work", "work relationship", ("job", "work", "boss", "career", "fired", "coworker", "promotion")),
	("trust", "trust dynamics", ("trust", "betrayed", "lied", "cheated", "loyal", "abandoned")),
)
SOCIOLOGY_INCREMENT = 0.25

PHYSIOLOGY_CATEGORIES = (
	("body_image", "body image", ("body", "fat", "skinny", "ugly", "beautiful", "weight", "looks", "face", "attractive")),
	("health", "health/pain", ("sick", "pain", "hurt", "injured", "doctor", "hospital", "disease")),
	("energy", "energy state", ("tired", "exhausted", "drained", "energy", "sleep", "restless")),
	("sensation", "physical sensation", ("hungry", "cold", "hot", "numb", "tense")),
)
PHYSIOLOGY_INCREMENT = 0.25

DEPTH_CATEGORIES = (
	("formative", "formative timeframe", ("when i was", "as a kid", "growing up", "childhood", "years ago")),
	("witness", "witnessed event", ("everyone", "people saw", "they all", "laughed at", "in front of")),
	("permanence", "lasting impact", ("still", "to this day", "never forgot", "haunts me", "changed me", "ever since")),
	("confession", "confession/secret", ("never told", "first time", "admit", "confess", "no one knows", "secret")),
	("self_judgment", "self-judgment", ("i'm a", "i am a", "such a", "pathetic", "worthless")),
)

# (label, mode, energy, phrases); first match wins.
MOOD_TABLE = (
	("playful_flirtatious", "WARM_PLAYFUL", 7, ("flirt", "tease", "seduce", "kiss", "touch", "sexy", "turn you on", "attractive", "you're hot", "beautiful", "want you")),
	("curious_about_her", "SELF_REVELATION", 5, ("tell me about yourself", "what do you", "who are you", "what's your", "do you have", "have you ever", "describe yourself", "your favorite", "your dream", "what would you", "if you could")),
	("emotional_processing", "CONFIDANTE", 4, ("i feel", "going through", "struggling", "hard day", "sad", "angry", "confused", "lost", "overwhelmed", "depressed", "anxious", "scared")),
	("celebration", "JOYFUL", 8, ("excited", "amazing", "best day", "got the job", "engaged", "pregnant", "won", "finally", "celebration", "guess what", "incredible")),
	("seeking_advice", "THOUGHTFUL_GUIDE", 5, ("what should i", "help me decide", "advice", "don't know what to do", "decide between", "your opinion", "what would you do")),
	("casual", "WARM_PRESENCE", 4, ("how are you", "what's up", "hey", "hi", "what are you doing", "thinking of you")),
)
DEFAULT_MOOD = ("default", "WARM_PRESENCE", 4)

# (type, severity, action, phrases); every matching type is collected.
RESISTANCE_TABLE = (
	("explicit_deflection", "critical", "immediate_retreat", ("don't want to talk about", "can we talk about something else", "let's change the subject", "i'd rather not", "not right now", "drop it")),
	("topic_pivot", "medium", "soft_retreat", ("anyway", "but anyway", "moving on", "by the way", "forget that", "never mind")),
	("minimization", "medium", "acknowledge_pause", ("it's fine", "i'm fine", "it's whatever", "doesn't matter", "not a big deal", "i'm over it")),
	("humor_deflection", "medium", "match_lightness", ("lol anyway", "haha but seriously", "just kidding", "i'm being dramatic", "ignore me")),
	("exhaustion", "contextual", "comfort_mode", ("i'm tired", "exhausted", "long day", "drained", "brain is fried")),
)

SENTIMENT_POSITIVE = (
	"happy", "great", "wonderful", "excited", "love", "amazing", "beautiful",
	"yes", "thanks", "thank you", "fantastic", "excellent", "perfect", "awesome", "brilliant",
	"delighted", "pleased", "grateful", "joy", "thrilled", "appreciate",
)
SENTIMENT_NEGATIVE = (
	"sad", "angry", "frustrated", "worried", "anxious", "stressed", "no",
	"hate", "terrible", "awful", "horrible", "disappointed", "upset", "annoyed",
	"confused", "difficult", "problem", "issue", "wrong", "bad",
)
SENTIMENT_STEP = 0.15
