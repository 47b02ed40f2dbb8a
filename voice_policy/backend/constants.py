APP_NAME = "Conversational Policy Engine"
APP_VERSION = "1.0.0"
DEFAULT_DB_PATH = "pathways.db"
DEFAULT_CORS_ALLOW_ORIGINS = [
	"http://localhost",
	"http://127.0.0.1",
	"http://localhost:3000",
]
DEFAULT_TRUSTED_HOSTS = [
	"127.0.0.1",
	"localhost",
	"testserver",
]
SQLITE_BUSY_TIMEOUT_MS = 5000

# Ordered severity tiers. Anything outside this set is a programming error.
TIERS = (1, 3, 5, 8, 13, 21)
NOISE_TIER = 1
CONTEXT_TIER = 3
COVENANT_TIER = 21
DEEP_TIER_FLOOR = 13
FILL_CHECK_MIN_TIER = 8
CALIBRATION_MIN_TIER = 13
REINFORCE_MIN_TIER = 5

DIMENSION_TIERS = {
	"psychology": 21,
	"sociology": 13,
	"physiology": 8,
}
DIMENSION_MIN_SCORE = 0.1
NOISE_MAX_CHARS = 15

# tier -> (max tokens, response mode)
TIER_BUDGETS = {
	1: (40, "DRIFT_OPPORTUNITY"),
	3: (80, "ENGAGED_CURIOSITY"),
	5: (70, "GENTLE_REFLECTION"),
	8: (60, "SOMATIC_PRESENCE"),
	13: (50, "WITNESS"),
	21: (40, "COVENANT"),
}
LESS_IS_MORE_FACTOR = 0.8
BOUNDARY_BUDGET = (25, "BOUNDARY_HONOR")
COMFORT_BUDGET_CEILING = 40
COMFORT_MODE = "COMFORT_PRESENCE"
TOKENS_PER_WORD = 1.3

# Never-Fills ceilings in approximate tokens and sentences.
FILL_TOKEN_LIMITS = {8: 60, 13: 50, 21: 40}
FILL_SENTENCE_LIMITS = {8: 3, 13: 3, 21: 2}

INVARIANT_ORDER = [
	"NEVER_ABANDONS",
	"ALWAYS_CALIBRATES",
	"NEVER_JUDGES",
	"NEVER_FILLS",
	"NEVER_NARRATES",
]
DEFAULT_MAX_REGENERATIONS = 2

# Checkpoint targets in milliseconds from utterance end.
CHECKPOINT_TARGETS_MS = {
	"A": 300,
	"B": 700,
	"C": 1200,
}

# Pathway conductance dynamics.
REINFORCEMENT_RATE = 0.15
MAX_CONDUCTANCE = 1.0
MIN_CONDUCTANCE = 0.0
DECAY_RATE_PER_DAY = 0.02
VISIBILITY_THRESHOLD = MIN_CONDUCTANCE + 0.01
MEDIUM_CONDUCTANCE = 0.5
HIGH_CONDUCTANCE = 0.8
MAX_PATHWAYS_PER_USER = 50
PRUNE_THRESHOLD = 0.05
STALE_AGE_DAYS = 90
SEED_CONDUCTANCE = {21: 0.3, 13: 0.2}
DEFAULT_SEED_CONDUCTANCE = 0.1
TIER_MULTIPLIERS = {21: 2.0, 13: 1.5, 8: 1.2}
COVENANT_DEPTH_BONUS = 0.1
DEEP_DEPTH_BONUS = 0.05

PROMPT_MAX_PATHWAYS = 5
PROMPT_MIN_CONDUCTANCE = 0.1
