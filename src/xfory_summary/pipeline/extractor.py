"""Recover a JSON object from messy model output.

Each strategy maps cleaned text to a dict or None; ``extract`` returns the
first dict produced, or ``{}`` when every strategy fails. Nothing here raises.
"""
from __future__ import annotations
import json
import re
from typing import Any, Callable

Strategy = Callable[[str], "dict[str, Any] | None"]

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"```\Z")
_CURLY_SINGLE = re.compile("[\u2018\u2019]")
_CURLY_DOUBLE = re.compile("[\u201c\u201d]")
_SUMMARY_KEY = re.compile(r"""(?:"summary"|'summary'|summary)\s*:""", re.IGNORECASE)
_QUIP_KEY = re.compile(r"""(?:"quip"|'quip'|quip)\s*:""", re.IGNORECASE)
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def _loads_object(text: str) -> dict[str, Any] | None:
    try:
        value = json.loads(text, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        return None
    return value if isinstance(value, dict) else None


def strip_fences(raw: Any) -> str:
    """Trim and drop a leading ```/```json fence and a trailing ``` fence."""
    text = "" if raw is None else str(raw)
    text = text.strip()
    text = _FENCE_OPEN.sub("", text, count=1)
    text = _FENCE_CLOSE.sub("", text, count=1)
    return text.strip()


def brace_slice(text: str) -> str | None:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def repair(text: str) -> str:
    """Apply the textual repairs in order: quotes, key quoting, trailing commas."""
    text = _CURLY_SINGLE.sub("'", text)
    text = _CURLY_DOUBLE.sub('"', text)
    text = _SUMMARY_KEY.sub('"summary":', text, count=1)
    text = _QUIP_KEY.sub('"quip":', text, count=1)
    return _TRAILING_COMMA.sub(r"\1", text)


def parse_direct(text: str) -> dict[str, Any] | None:
    return _loads_object(text)


def parse_brace_slice(text: str) -> dict[str, Any] | None:
    sliced = brace_slice(text)
    if sliced is None:
        return None
    return _loads_object(sliced)


def parse_repaired(text: str) -> dict[str, Any] | None:
    repaired = repair(text)
    return parse_direct(repaired) or parse_brace_slice(repaired)


STRATEGIES: tuple[Strategy, ...] = (parse_direct, parse_brace_slice, parse_repaired)


def extract(raw: Any, strategies: tuple[Strategy, ...] = STRATEGIES) -> dict[str, Any]:
    """
    Extract the first JSON object recoverable from ``raw``.

    Args:
        raw: Model output. Non-strings are stringified, None becomes "".
        strategies: Parsers tried in order on the fence-stripped text.

    Returns:
        The parsed object, or an empty dict.
    """
    text = strip_fences(raw)
    for strategy in strategies:
        result = strategy(text)
        if result is not None:
            return result
    return {}
