"""Prompt templating helpers."""
from __future__ import annotations
import re
from pathlib import Path

DEFAULT_TEMPLATE = """<|system|>
You write clear, useful product summaries with dry humor when asked.
<|user|>
You are helping write startup blurbs. Follow all rules.

Rules:
- Be clear and practical. Plain English.
- No emojis. No hashtags. No exclamation marks.
- No em dashes. Use periods or commas.
- Keep the tone confident and realistic.

Task:
For "{{app}} for {{niche}}", produce a STRICT JSON object with keys "summary" and "quip".
1) "summary": 120-160 words of markdown that contains:
   - **Executive Summary:** one short paragraph that sounds novel and feasible.
   - **Business Model:** a numbered list with 2-3 items.
2) "quip": one sarcastic, pithy PG-13 one-liner reacting to the combo, 6-12 words, dry and cutting wit.

Return only JSON like:
{"summary":"...markdown...","quip":"...one liner..."}
"""

DEFAULT_SYSTEM = "You write clear, useful product summaries with dry humor when asked."

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")
SYS_TAG, USER_TAG = "<|system|>", "<|user|>"


def load_template(path: str | None = None) -> str:
    """
    Load a prompt template file.

    Args:
        path: Path to template. The built-in template is used when omitted.
    """
    if path is None:
        return DEFAULT_TEMPLATE
    return Path(path).read_text(encoding="utf-8")


def render_prompt(template: str, **values: str) -> str:
    """
    Render values into the template in a single pass.

    Args:
        template: Template content containing {{name}} placeholders.
        values: Replacement strings. Unknown placeholders are left as-is.

    Returns:
        Rendered prompt.
    """
    return _PLACEHOLDER.sub(lambda m: values.get(m.group(1), m.group(0)), template)


def split_template(template: str) -> tuple[str, str]:
    """Split a rendered template into (system, user) at the <|system|>/<|user|> tags.

    Falls back to the default system prompt and the whole text as the user
    turn if the tags are missing.
    """
    if SYS_TAG in template and USER_TAG in template:
        start = template.index(SYS_TAG) + len(SYS_TAG)
        end = template.find(USER_TAG, start)
        if end != -1:
            user = template[end + len(USER_TAG):]
            return template[start:end].strip(), user.strip()
    return DEFAULT_SYSTEM, template.strip()


def build_messages(app: str, niche: str, template: str | None = None) -> list[dict[str, str]]:
    """Chat messages for one generation request."""
    rendered = render_prompt(template or DEFAULT_TEMPLATE, app=app, niche=niche)
    system_prompt, user_prompt = split_template(rendered)
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]
