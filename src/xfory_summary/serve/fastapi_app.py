"""FastAPI boundary for the summary service.

Endpoints:
- POST *         { "app": "...", "niche": "...", "wants_quip": true }
- OPTIONS *      CORS preflight, 204 with headers only
- * /debug       backend availability and bound resource names, any verb
Other verbs on any path answer 405 "Use POST".
"""
from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from xfory_summary.backend.client import ChatCompletionsBackend, GenerativeBackend
from xfory_summary.common.errors import InputValidationError, RateLimitedError, SummaryServiceError
from xfory_summary.common.logging_setup import setup_logging
from xfory_summary.common.schema import FinalResult, GenerationRequest
from xfory_summary.common.settings import Settings
from xfory_summary.common.templates import SYS_TAG, USER_TAG, load_template
from xfory_summary.pipeline.orchestrator import generate_summary
from xfory_summary.ratelimit.limiter import RateLimiter, client_identity
from xfory_summary.ratelimit.store import CounterStore, InMemoryCounterStore, RedisCounterStore

LOGGER = logging.getLogger("xfory.serve.app")


def cors_headers(request: Request, allowed_origins: tuple[str, ...]) -> dict[str, str]:
    """Allow-listed origin (else the first allowed one), reflecting requested method/headers."""
    origin = request.headers.get("origin", "")
    allow_origin = origin if origin in allowed_origins else (allowed_origins[0] if allowed_origins else "")
    req_headers = request.headers.get("access-control-request-headers") or "content-type"
    req_method = request.headers.get("access-control-request-method") or "POST"
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Methods": f"{req_method}, OPTIONS",
        "Access-Control-Allow-Headers": req_headers,
        "Access-Control-Max-Age": "86400",
        "Vary": "Origin, Access-Control-Request-Headers, Access-Control-Request-Method",
    }


def _default_store(settings: Settings) -> CounterStore:
    if settings.redis_url:
        return RedisCounterStore(settings.redis_url)
    LOGGER.warning("XFORY_REDIS_URL not set; rate limits are per-process and reset on restart")
    return InMemoryCounterStore()


def create_app(
    settings: Settings | None = None,
    backend: GenerativeBackend | None = None,
    store: CounterStore | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    backend = backend or ChatCompletionsBackend(settings.backend_url, settings.backend_api_key)
    store = store or _default_store(settings)
    limiter = RateLimiter(
        store,
        limit=settings.rate_limit,
        window_seconds=settings.window_seconds,
        expire_after_seconds=settings.window_expiry_seconds,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        template = load_template()
        if not (SYS_TAG in template and USER_TAG in template):
            LOGGER.warning("Prompt template missing system/user tags")
        yield
        if isinstance(store, RedisCounterStore):
            await store.close()

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.backend = backend
    app.state.limiter = limiter

    def _json(request: Request, data: dict, status_code: int = 200) -> JSONResponse:
        return JSONResponse(data, status_code=status_code, headers=cors_headers(request, settings.allowed_origins))

    @app.exception_handler(SummaryServiceError)
    async def _service_error(request: Request, exc: SummaryServiceError) -> JSONResponse:
        return _json(request, {"error": exc.message}, exc.status_code)

    @app.api_route("/debug", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
    async def debug(request: Request) -> JSONResponse:
        # Names and availability only: no headers, no stack traces.
        return _json(request, {
            "status": "debug",
            "ai_available": bool(settings.backend_url and settings.model_id),
            "model": settings.model_id,
            "bindings": ["backend", "counter_store"],
            "runtime": "fastapi",
        })

    @app.options("/{path:path}")
    async def preflight(request: Request, path: str) -> Response:
        return Response(status_code=204, headers=cors_headers(request, settings.allowed_origins))

    @app.api_route("/{path:path}", methods=["GET", "PUT", "PATCH", "DELETE", "HEAD"])
    async def wrong_method(request: Request, path: str) -> PlainTextResponse:
        return PlainTextResponse(
            "Use POST", status_code=405, headers=cors_headers(request, settings.allowed_origins)
        )

    @app.post("/{path:path}")
    async def generate(request: Request, path: str) -> JSONResponse:
        identity = client_identity(request.headers, request.client.host if request.client else None)
        try:
            admitted = await limiter.admit(identity)
        except Exception as e:
            LOGGER.exception("Counter store error for %s", identity)
            raise SummaryServiceError(str(e)) from e
        if not admitted:
            raise RateLimitedError()

        try:
            payload = await request.json()
        except (ValueError, RecursionError) as e:
            raise InputValidationError(f"Invalid JSON body: {type(e).__name__}") from e

        try:
            body = GenerationRequest.from_payload(payload)
            result: FinalResult = await generate_summary(body, backend, settings)
        except SummaryServiceError:
            raise
        except Exception as e:
            LOGGER.exception("Unexpected error handling request from %s", identity)
            raise SummaryServiceError(str(e) or type(e).__name__) from e
        return _json(request, result.model_dump())

    return app


setup_logging()
app = create_app()
