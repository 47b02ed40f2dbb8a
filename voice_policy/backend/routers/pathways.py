from __future__ import annotations

from fastapi import APIRouter, Request

from voice_policy.backend.response import success_response
from voice_policy.backend.schemas import ApiEnvelope


router = APIRouter(prefix="/api/pathways", tags=["pathways"])


@router.get("/{user_id}/landscape", response_model=ApiEnvelope)
def get_landscape(request: Request, user_id: str):
	landscape = request.app.state.engine.accumulator.load_landscape(user_id)
	return success_response(
		request=request,
		data={"user_id": user_id, "landscape": landscape.as_dict()},
	)
