from __future__ import annotations

from fastapi import APIRouter, Request

from voice_policy.backend.errors import PolicyError
from voice_policy.backend.invariants.engine import evaluate
from voice_policy.backend.policy.backchannel import select_backchannel
from voice_policy.backend.policy.classifier import classify
from voice_policy.backend.policy.logline import build_logline
from voice_policy.backend.policy.prompt_assembler import assemble
from voice_policy.backend.policy.types import Message
from voice_policy.backend.response import http_exception_for, success_response
from voice_policy.backend.schemas import ApiEnvelope, ClassifyRequest, GateRequest, PromptRequest


router = APIRouter(prefix="/api/policy", tags=["policy"])


def _strict(request: Request) -> bool:
	return request.app.state.engine.settings.strict_tiers


@router.post("/classify", response_model=ApiEnvelope)
def classify_utterance(request: Request, payload: ClassifyRequest):
	history = [Message(role=item.role, content=item.content) for item in payload.history]
	try:
		classification = classify(payload.utterance, history, strict=_strict(request))
	except PolicyError as exc:
		raise http_exception_for(exc) from exc
	return success_response(
		request=request,
		data={
			"classification": classification.as_dict(),
			"logline": build_logline(classification),
			"backchannel": select_backchannel(classification).as_dict(),
		},
	)


@router.post("/gate", response_model=ApiEnvelope)
def gate_response(request: Request, payload: GateRequest):
	try:
		classification = classify(payload.utterance, strict=_strict(request))
	except PolicyError as exc:
		raise http_exception_for(exc) from exc
	result = evaluate(payload.response_text, classification)
	return success_response(
		request=request,
		data={"gate": result.as_dict(), "tier": classification.tier},
	)


@router.post("/prompt", response_model=ApiEnvelope)
def build_prompt(request: Request, payload: PromptRequest):
	engine = request.app.state.engine
	try:
		classification = classify(payload.utterance, strict=_strict(request))
	except PolicyError as exc:
		raise http_exception_for(exc) from exc
	landscape = engine.accumulator.load_landscape(payload.user_id) if payload.user_id else None
	bundle = assemble(classification, landscape, payload.regeneration_hints)
	return success_response(
		request=request,
		data={"bundle": bundle.as_dict(), "tier": classification.tier},
	)
