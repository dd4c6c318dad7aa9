"""Run one generation from the command line, without HTTP or rate limiting."""
from __future__ import annotations
import argparse
import asyncio
import json
import logging
import sys
import time

from xfory_summary.backend.client import ChatCompletionsBackend
from xfory_summary.common.errors import SummaryServiceError
from xfory_summary.common.logging_setup import setup_logging
from xfory_summary.common.schema import FinalResult, GenerationRequest
from xfory_summary.common.settings import Settings
from xfory_summary.pipeline.orchestrator import generate_summary

LOGGER = logging.getLogger("xfory.local.run_once")


def run_once(app: str, niche: str, wants_quip: bool, settings: Settings) -> FinalResult:
    """
    Generate a summary for one app/niche pair against the configured backend.

    Args:
        app: Existing product, e.g. "Tinder".
        niche: Target market, e.g. "dog walking".
        wants_quip: Whether to ask for the one-liner.
    """
    request = GenerationRequest(app=app, niche=niche, wants_quip=wants_quip)
    backend = ChatCompletionsBackend(settings.backend_url, settings.backend_api_key)
    return asyncio.run(generate_summary(request, backend, settings))


def main(argv: list[str] | None = None) -> int:
    setup_logging()
    ap = argparse.ArgumentParser(description="Generate an X-for-Y summary once")
    ap.add_argument("--app", required=True, help="Existing app, the X")
    ap.add_argument("--niche", required=True, help="Target niche, the Y")
    ap.add_argument("--quip", action="store_true", help="Also produce a one-liner")
    ap.add_argument("--backend-url", default=None, help="Override XFORY_BACKEND_URL")
    ap.add_argument("--timeout", type=float, default=None, help="Override XFORY_TIMEOUT_SECONDS")
    args = ap.parse_args(argv)

    settings = Settings.from_env()
    if args.backend_url:
        settings.backend_url = args.backend_url
    if args.timeout is not None:
        settings.timeout_seconds = args.timeout

    start = time.time()
    try:
        result = run_once(args.app, args.niche, args.quip, settings)
    except SummaryServiceError as e:
        print(e.message, file=sys.stderr)
        return 1
    LOGGER.info("Latency: %sms", int((time.time() - start) * 1000))
    print(json.dumps(result.model_dump(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
