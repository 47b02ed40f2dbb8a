from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


_MAX_UTTERANCE_CHARS = 4000


class ApiError(BaseModel):
	model_config = ConfigDict(extra="forbid")

	code: str
	message: str
	evidence: List[str] = Field(default_factory=list)


class ApiEnvelope(BaseModel):
	model_config = ConfigDict(extra="allow")

	ok: bool
	generated_at: str
	request_id: Optional[str] = None
	data: Optional[Dict[str, Any]] = None
	error: Optional[ApiError] = None


class HistoryMessage(BaseModel):
	model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

	role: Literal["user", "assistant"]
	content: str = Field(..., max_length=_MAX_UTTERANCE_CHARS)


class ClassifyRequest(BaseModel):
	model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

	utterance: str = Field(..., max_length=_MAX_UTTERANCE_CHARS, description="Transcribed user utterance; may be empty.")
	history: List[HistoryMessage] = Field(default_factory=list, description="Recent turns, oldest first.")


class GateRequest(BaseModel):
	model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

	response_text: str = Field(..., max_length=_MAX_UTTERANCE_CHARS, description="Candidate response to validate.")
	utterance: str = Field(..., max_length=_MAX_UTTERANCE_CHARS, description="Utterance the response answers.")


class PromptRequest(BaseModel):
	model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

	utterance: str = Field(..., max_length=_MAX_UTTERANCE_CHARS)
	user_id: Optional[str] = Field(default=None, description="Include this user's pathway landscape.")
	regeneration_hints: Optional[str] = Field(default=None, description="Corrective hints from a failed gate.")


class ConversationOpenRequest(BaseModel):
	model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

	user_id: str = Field(..., min_length=1, max_length=200)


class TurnRequest(BaseModel):
	model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

	utterance: str = Field(..., max_length=_MAX_UTTERANCE_CHARS)
