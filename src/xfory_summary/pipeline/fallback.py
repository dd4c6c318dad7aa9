"""Deterministic stand-ins for generated text.

The summary keeps the shape the model is asked for (executive summary plus a
numbered business model list) so a fallback is indistinguishable by shape.
"""
from __future__ import annotations

_SUMMARY_TEMPLATE = """**Executive Summary:** {combo} delivers a focused solution that adapts a proven interaction model to a new market. The product distills the original playbook into the core job to be done, cutting friction and aligning incentives for early adopters.

**Business Model:**
1. Subscription tiers for power users and teams with usage based limits.
2. Marketplace or transaction fees on paid interactions.
3. Partnerships that bundle onboarding, data, or compliance for enterprise pilots."""


def fallback_summary(app: str, niche: str) -> str:
    return _SUMMARY_TEMPLATE.format(combo=f"{app} for {niche}")


def fallback_quip(app: str, niche: str) -> str:
    return f"{app} for {niche}. What could possibly go wrong."
