from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, List, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.trustedhost import TrustedHostMiddleware

from voice_policy.backend import constants
from voice_policy.backend.config import EngineSettings, load_settings
from voice_policy.backend.errors import PolicyError
from voice_policy.backend.logging_config import configure_logging, get_logger
from voice_policy.backend.middleware import RequestContextMiddleware
from voice_policy.backend.response import error_json, http_exception_for
from voice_policy.backend.routers import conversations, health, pathways, policy
from voice_policy.backend.services.engine_service import PolicyEngine, build_engine


logger = get_logger("app")


def create_app(settings: Optional[EngineSettings] = None, engine: Optional[PolicyEngine] = None) -> FastAPI:
	"""Build the HTTP app. Without an explicit engine one is built on startup."""
	resolved = engine.settings if engine is not None else (settings or load_settings())
	configure_logging(resolved)

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		owned = getattr(app.state, "engine", None) is None
		if owned:
			app.state.engine = build_engine(resolved)
		try:
			yield
		finally:
			if owned:
				app.state.engine.shutdown()

	app = FastAPI(
		title=constants.APP_NAME,
		version=constants.APP_VERSION,
		lifespan=lifespan,
	)
	if engine is not None:
		app.state.engine = engine
	_register_middleware(app)
	_register_handlers(app)
	_register_routers(app)
	return app


def _register_middleware(app: FastAPI) -> None:
	app.add_middleware(RequestContextMiddleware)
	app.add_middleware(GZipMiddleware, minimum_size=1024)
	app.add_middleware(
		CORSMiddleware,
		allow_origins=constants.DEFAULT_CORS_ALLOW_ORIGINS,
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)
	app.add_middleware(
		TrustedHostMiddleware,
		allowed_hosts=constants.DEFAULT_TRUSTED_HOSTS,
	)


def _register_routers(app: FastAPI) -> None:
	for module in (policy, conversations, pathways, health):
		app.include_router(module.router)


def _detail_parts(status_code: int, detail: Any) -> Tuple[str, str, Optional[List[str]]]:
	"""(code, message, evidence) from an HTTPException detail, which may be a dict."""
	if not isinstance(detail, dict):
		return f"http_{status_code}", _exc_message(detail), None
	code = detail.get("code")
	message = detail.get("message")
	evidence = detail.get("evidence")
	return (
		code.strip() if isinstance(code, str) and code.strip() else f"http_{status_code}",
		message.strip() if isinstance(message, str) and message.strip() else _exc_message(detail),
		[str(item) for item in evidence] if isinstance(evidence, list) else None,
	)


def _validation_evidence(exc: RequestValidationError) -> List[str]:
	evidence: List[str] = []
	for issue in exc.errors():
		loc = ".".join(str(part) for part in issue.get("loc", []))
		msg = issue.get("msg", "Invalid request.")
		evidence.append(f"{loc}: {msg}" if loc else msg)
	return evidence


def _register_handlers(app: FastAPI) -> None:
	# FastAPI's HTTPException subclasses Starlette's, so one handler covers both.
	@app.exception_handler(StarletteHTTPException)
	async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
		code, message, evidence = _detail_parts(exc.status_code, exc.detail)
		return error_json(request, exc.status_code, code=code, message=message, evidence=evidence)

	@app.exception_handler(RequestValidationError)
	async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
		return error_json(
			request,
			422,
			code="validation_error",
			message="Request validation failed.",
			evidence=_validation_evidence(exc),
		)

	@app.exception_handler(PolicyError)
	async def handle_policy_error(request: Request, exc: PolicyError) -> JSONResponse:
		mapped = http_exception_for(exc)
		return error_json(request, mapped.status_code, code=mapped.detail["code"], message=mapped.detail["message"])

	@app.exception_handler(Exception)
	async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
		logger.exception("Unhandled error on %s %s", request.method, request.url.path)
		return error_json(request, 500, code="internal_error", message="Internal server error.")


def _exc_message(detail: Any) -> str:
	if isinstance(detail, str):
		return detail
	if detail is None:
		return "Request failed."
	return str(detail)


app = create_app()
