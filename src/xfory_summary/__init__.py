"""
X-for-Y summary service package.

Provides:
- Resilient extraction of a {summary, quip} object from free-form model output
- Per-client fixed-window rate limiting over an external counter store
- FastAPI boundary and a local command-line runner
"""
