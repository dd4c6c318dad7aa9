"""Sequence one generation request: validate, prompt, call, extract, fall back."""
from __future__ import annotations
import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from xfory_summary.backend.client import GenerativeBackend
from xfory_summary.common.errors import BackendFailure, BackendTimeout, InputValidationError
from xfory_summary.common.schema import FinalResult, GenerationRequest
from xfory_summary.common.settings import Settings
from xfory_summary.common.templates import build_messages
from xfory_summary.pipeline.extractor import extract
from xfory_summary.pipeline.fallback import fallback_quip, fallback_summary

LOGGER = logging.getLogger("xfory.pipeline")


def _clean(value: Any) -> str:
    return str(value or "").strip()


def raw_text(result: Any) -> str:
    """Textual payload of a backend result: ``result["response"]`` or ``str(result)``."""
    if isinstance(result, Mapping) and "response" in result:
        return str(result["response"] or "")
    return str(result or "")


def fallback_result(request: GenerationRequest) -> FinalResult:
    return FinalResult(
        summary=fallback_summary(request.app, request.niche),
        quip=fallback_quip(request.app, request.niche) if request.wants_quip else "",
    )


def finalize(parsed: Mapping[str, Any], request: GenerationRequest) -> FinalResult:
    """Clean extracted fields, fill gaps with fallbacks and apply the quip switch."""
    summary = _clean(parsed.get("summary"))
    quip = _clean(parsed.get("quip"))
    if not summary:
        summary = fallback_summary(request.app, request.niche)
    if request.wants_quip and not quip:
        quip = fallback_quip(request.app, request.niche)
    if not request.wants_quip:
        quip = ""
    return FinalResult(summary=summary, quip=quip)


async def generate_summary(
    request: GenerationRequest,
    backend: GenerativeBackend,
    settings: Settings,
) -> FinalResult:
    """
    Produce a FinalResult for a normalized request.

    Raises:
        InputValidationError: app or niche empty; the backend is not called.
        BackendFailure: the backend failed for a reason other than a timeout.
    """
    if not request.is_complete():
        raise InputValidationError("Missing 'app' or 'niche'.")

    messages = build_messages(request.app, request.niche)
    try:
        result = await asyncio.wait_for(
            backend.run(
                settings.model_id,
                messages,
                temperature=settings.temperature,
                max_tokens=settings.max_tokens,
            ),
            timeout=settings.timeout_seconds,
        )
    except (asyncio.TimeoutError, BackendTimeout):
        LOGGER.info("Backend timed out after %ss; serving fallback for %r", settings.timeout_seconds, request.app)
        return fallback_result(request)
    except Exception as e:
        LOGGER.error("Backend request failed: %s", e)
        raise BackendFailure(str(e) or type(e).__name__) from e

    text = raw_text(result)
    if settings.debug:
        LOGGER.info("RAW_MODEL_OUTPUT: %s", text)

    parsed = extract(text)
    if not parsed:
        LOGGER.info("No structured object in model output; using fallbacks")
    return finalize(parsed, request)
