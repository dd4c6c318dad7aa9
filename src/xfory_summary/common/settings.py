"""Runtime configuration from environment variables with an optional YAML overlay."""
from __future__ import annotations
import os
from dataclasses import dataclass, field, fields
from typing import Any

import yaml

DEFAULT_ORIGINS = ("https://xfory.vercel.app", "http://localhost:3000")


def load_cfg(path: str) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() == "true"


@dataclass
class Settings:
    model_id: str = "@cf/meta/llama-2-7b-chat-int8"
    backend_url: str = "http://localhost:8001"
    backend_api_key: str = "not-required"
    timeout_seconds: float = 10.0
    temperature: float = 0.3
    max_tokens: int = 600
    rate_limit: int = 30
    window_seconds: int = 60
    window_expiry_seconds: int = 65
    allowed_origins: tuple[str, ...] = field(default=DEFAULT_ORIGINS)
    redis_url: str | None = None
    debug: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from XFORY_* variables.

        If XFORY_CONFIG names a YAML file, its keys override the environment.
        Unknown keys in the file are ignored.
        """
        origins = os.getenv("XFORY_ALLOWED_ORIGINS")
        values: dict[str, Any] = dict(
            model_id=os.getenv("XFORY_MODEL_ID", cls.model_id),
            backend_url=os.getenv("XFORY_BACKEND_URL", cls.backend_url),
            backend_api_key=os.getenv("XFORY_BACKEND_API_KEY", cls.backend_api_key),
            timeout_seconds=float(os.getenv("XFORY_TIMEOUT_SECONDS", "10")),
            temperature=float(os.getenv("XFORY_TEMPERATURE", "0.3")),
            max_tokens=int(os.getenv("XFORY_MAX_TOKENS", "600")),
            rate_limit=int(os.getenv("XFORY_RATE_LIMIT", "30")),
            allowed_origins=(
                tuple(o.strip() for o in origins.split(",") if o.strip())
                if origins else DEFAULT_ORIGINS
            ),
            redis_url=os.getenv("XFORY_REDIS_URL") or None,
            debug=_env_bool("XFORY_DEBUG"),
        )
        cfg_path = os.getenv("XFORY_CONFIG")
        if cfg_path:
            known = {f.name for f in fields(cls)}
            for key, value in load_cfg(cfg_path).items():
                if key in known:
                    values[key] = tuple(value) if key == "allowed_origins" else value
        return cls(**values)
