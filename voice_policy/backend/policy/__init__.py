from voice_policy.backend.policy.classifier import classify
from voice_policy.backend.policy.prompt_assembler import assemble
from voice_policy.backend.policy.timing import TimingController, TimingReport
from voice_policy.backend.policy.types import Classification, ConstraintBundle, Message, PathwayLandscape

__all__ = [
	"Classification",
	"ConstraintBundle",
	"Message",
	"PathwayLandscape",
	"TimingController",
	"TimingReport",
	"assemble",
	"classify",
]
