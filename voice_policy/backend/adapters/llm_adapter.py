from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Protocol

from voice_policy.backend.config import EngineSettings
from voice_policy.backend.errors import ProviderError
from voice_policy.backend.logging_config import get_logger
from voice_policy.backend.policy.types import ConstraintBundle


logger = get_logger("llm")

# The Responses API rejects max_output_tokens below 16.
_MIN_OUTPUT_TOKENS = 16

_ACTION_CUE_RE = re.compile(r"\[[^\]]*\]|\*[^*]+\*")
_LIST_MARKER_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+", re.MULTILINE)
_WHITESPACE_RE = re.compile(r"\s+")

_LOCAL_REPLIES: Dict[str, str] = {
	"DRIFT_OPPORTUNITY": "Hey. Good to hear you. What's been on your mind lately?",
	"ENGAGED_CURIOSITY": "Oh yeah? How did that go for you?",
	"GENTLE_REFLECTION": "That sounds like a lot to carry. I'm listening.",
	"SOMATIC_PRESENCE": "Your body is carrying a lot right now. I'm here with you.",
	"WITNESS": "Oh. That's a lot to hold.",
	"COVENANT": "I'm here.",
	"BOUNDARY_HONOR": "Okay. We don't have to go there.",
	"COMFORT_PRESENCE": "I'm right here. Rest for a moment.",
}
_LOCAL_RETRY_REPLY = "I'm here."


class ResponseGenerator(Protocol):
	provider: str

	def generate(self, bundle: ConstraintBundle, utterance: str) -> str:
		...


def clean_for_speech(text: str) -> str:
	"""Strip written-only artifacts (action cues, list markers) before synthesis."""
	cleaned = _ACTION_CUE_RE.sub(" ", text or "")
	cleaned = _LIST_MARKER_RE.sub("", cleaned)
	return _WHITESPACE_RE.sub(" ", cleaned).strip()


class LocalResponseGenerator:
	"""Deterministic replies keyed by response mode. Used offline and in tests."""

	provider = "local"

	def __init__(self, replies: Optional[Dict[str, str]] = None):
		self._replies = dict(_LOCAL_REPLIES)
		if replies:
			self._replies.update(replies)

	def generate(self, bundle: ConstraintBundle, utterance: str) -> str:
		if bundle.is_retry:
			return _LOCAL_RETRY_REPLY
		mode = _bundle_mode(bundle)
		return self._replies.get(mode, _LOCAL_RETRY_REPLY)


def _bundle_mode(bundle: ConstraintBundle) -> str:
	length = bundle.section("length") or ""
	match = re.match(r"LENGTH \(([A-Z_]+)\)", length)
	return match.group(1) if match else ""


def _build_openai_client(*, api_key: str, timeout_s: float):
	try:
		from openai import OpenAI
	except ImportError as exc:
		raise ProviderError(
			status_code=503,
			code="provider_unconfigured",
			message="OpenAI SDK not installed. Add 'openai' dependency.",
		) from exc
	return OpenAI(api_key=api_key, timeout=timeout_s)


def _extract_response_text(response: Any) -> str:
	output_text = getattr(response, "output_text", None)
	if isinstance(output_text, str) and output_text.strip():
		return output_text.strip()

	output = getattr(response, "output", None)
	if not isinstance(output, list):
		return ""
	parts: List[str] = []
	for item in output:
		content = getattr(item, "content", None)
		if content is None and isinstance(item, dict):
			content = item.get("content")
		if not isinstance(content, list):
			continue
		for chunk in content:
			text = getattr(chunk, "text", None)
			if text is None and isinstance(chunk, dict):
				text = chunk.get("text")
			if isinstance(text, str) and text.strip():
				parts.append(text.strip())
	return "\n".join(parts).strip()


def _openai_error(exc: Exception) -> ProviderError:
	name = exc.__class__.__name__
	if isinstance(exc, TimeoutError) or name == "APITimeoutError":
		return ProviderError(
			status_code=504,
			code="provider_timeout",
			message="Text generation provider timed out.",
		)
	return ProviderError(
		status_code=502,
		code="provider_error",
		message="Text generation provider request failed.",
	)


class OpenAIResponseGenerator:
	provider = "openai"

	def __init__(self, *, api_key: str, model: str, timeout_s: float, client: Any = None):
		if not api_key and client is None:
			raise ProviderError(
				status_code=503,
				code="provider_unconfigured",
				message="OpenAI API key not configured. Set OPENAI_API_KEY.",
			)
		self.model = model
		self._client = client or _build_openai_client(api_key=api_key, timeout_s=timeout_s)

	def _input(self, bundle: ConstraintBundle, utterance: str) -> List[Dict[str, Any]]:
		return [
			{
				"role": "system",
				"content": [{"type": "input_text", "text": bundle.render()}],
			},
			{
				"role": "user",
				"content": [{"type": "input_text", "text": utterance}],
			},
		]

	def generate(self, bundle: ConstraintBundle, utterance: str) -> str:
		try:
			response = self._client.responses.create(
				model=self.model,
				input=self._input(bundle, utterance),
				max_output_tokens=max(_MIN_OUTPUT_TOKENS, bundle.max_tokens),
			)
		except Exception as exc:
			logger.error("OpenAI generation failed: %s", exc.__class__.__name__)
			raise _openai_error(exc) from exc

		text = _extract_response_text(response)
		if not text:
			raise ProviderError(
				status_code=502,
				code="provider_error",
				message="Text generation provider returned an empty response.",
			)
		return text


def build_generator(settings: EngineSettings) -> ResponseGenerator:
	mode = settings.effective_provider_mode
	if mode == "openai":
		return OpenAIResponseGenerator(
			api_key=settings.openai_api_key or "",
			model=settings.openai_model,
			timeout_s=settings.openai_timeout_s,
		)
	return LocalResponseGenerator()
