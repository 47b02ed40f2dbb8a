from __future__ import annotations

from fastapi import APIRouter, Request

from voice_policy.backend.response import success_response
from voice_policy.backend.schemas import ApiEnvelope
from voice_policy.backend.services import health_service


router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("/summary", response_model=ApiEnvelope)
def get_summary(request: Request):
	data = health_service.get_summary(request.app.state.engine)
	return success_response(
		request=request,
		data=data,
	)
