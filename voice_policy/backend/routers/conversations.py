from __future__ import annotations

from fastapi import APIRouter, Request

from voice_policy.backend.errors import PolicyError
from voice_policy.backend.response import http_exception_for, success_response
from voice_policy.backend.schemas import ApiEnvelope, ConversationOpenRequest, TurnRequest


router = APIRouter(prefix="/api/conversations", tags=["conversations"])


@router.post("", response_model=ApiEnvelope)
def open_conversation(request: Request, payload: ConversationOpenRequest):
	context = request.app.state.engine.registry.open(payload.user_id)
	return success_response(
		request=request,
		data=context.as_dict(),
	)


@router.post("/{conversation_id}/turns", response_model=ApiEnvelope)
def run_turn(request: Request, conversation_id: str, payload: TurnRequest):
	try:
		result = request.app.state.engine.pipeline.run_turn(conversation_id, payload.utterance)
	except PolicyError as exc:
		raise http_exception_for(exc) from exc
	return success_response(
		request=request,
		data=result,
	)


@router.delete("/{conversation_id}", response_model=ApiEnvelope)
def close_conversation(request: Request, conversation_id: str):
	try:
		summary = request.app.state.engine.registry.close(conversation_id)
	except PolicyError as exc:
		raise http_exception_for(exc) from exc
	return success_response(
		request=request,
		data=summary,
	)
