from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from voice_policy.backend.errors import PolicyError, ProviderError


def now_iso() -> str:
	return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _request_id(request: Optional[Request]) -> Optional[str]:
	if request is None:
		return None
	return getattr(request.state, "request_id", None)


def success_response(
	*,
	request: Optional[Request] = None,
	data: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
	payload: Dict[str, Any] = {
		"ok": True,
		"generated_at": now_iso(),
	}
	request_id = _request_id(request)
	if request_id:
		payload["request_id"] = request_id
	if data is not None:
		payload["data"] = data
	return payload


def error_response(
	*,
	code: str,
	message: str,
	request: Optional[Request] = None,
	evidence: Optional[List[str]] = None,
) -> Dict[str, Any]:
	payload: Dict[str, Any] = {
		"ok": False,
		"generated_at": now_iso(),
		"error": {
			"code": code,
			"message": message,
			"evidence": evidence or [],
		},
	}
	request_id = _request_id(request)
	if request_id:
		payload["request_id"] = request_id
	return payload


def error_json(
	request: Optional[Request],
	status_code: int,
	*,
	code: str,
	message: str,
	evidence: Optional[List[str]] = None,
) -> JSONResponse:
	payload = error_response(code=code, message=message, request=request, evidence=evidence)
	return JSONResponse(status_code=status_code, content=payload)


_ERROR_STATUS = {
	"ConversationNotFoundError": (404, "conversation_not_found"),
	"ConversationBusyError": (409, "conversation_busy"),
	"TurnCancelledError": (409, "turn_cancelled"),
	"InvalidTierError": (500, "invalid_tier"),
}


def http_exception_for(exc: PolicyError) -> HTTPException:
	if isinstance(exc, ProviderError):
		return HTTPException(status_code=exc.status_code, detail={"code": exc.code, "message": exc.message})
	status_code, code = _ERROR_STATUS.get(type(exc).__name__, (500, "policy_error"))
	return HTTPException(status_code=status_code, detail={"code": code, "message": str(exc)})
