"""Pydantic models for request/response types."""
from __future__ import annotations
from typing import Any

from pydantic import BaseModel, field_validator

APP_MAX_CHARS = 60
NICHE_MAX_CHARS = 80


def _clip(value: Any, limit: int) -> str:
    if value is None:
        return ""
    return str(value).strip()[:limit]


class GenerationRequest(BaseModel):
    """Inbound request, normalized on construction.

    Strings are coerced, trimmed and clipped; emptiness is checked by the
    orchestrator so the caller gets a 400 rather than a schema error.
    """
    app: str = ""
    niche: str = ""
    wants_quip: bool = False

    @field_validator("app", mode="before")
    @classmethod
    def _normalize_app(cls, v: Any) -> str:
        return _clip(v, APP_MAX_CHARS)

    @field_validator("niche", mode="before")
    @classmethod
    def _normalize_niche(cls, v: Any) -> str:
        return _clip(v, NICHE_MAX_CHARS)

    @field_validator("wants_quip", mode="before")
    @classmethod
    def _truthy(cls, v: Any) -> bool:
        return bool(v)

    @classmethod
    def from_payload(cls, payload: Any) -> "GenerationRequest":
        """Build from a decoded JSON body; non-object bodies become an empty request."""
        if not isinstance(payload, dict):
            payload = {}
        return cls(
            app=payload.get("app"),
            niche=payload.get("niche"),
            wants_quip=payload.get("wants_quip"),
        )

    def is_complete(self) -> bool:
        return bool(self.app and self.niche)


class FinalResult(BaseModel):
    summary: str
    quip: str = ""
