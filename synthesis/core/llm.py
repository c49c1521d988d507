"""Completion-service utilities: template filling, the Anthropic call, and line parsing."""

import re

from anthropic import AsyncAnthropic

from synthesis.core.config import Settings

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")
BULLET_PATTERN = re.compile(r"^[-•*]\s*")
NUMBERING_PATTERN = re.compile(r"^\d+[.)]\s*")


def fill_template(template: str, context: dict[str, str]) -> str:
    """
    Substitute ``{{name}}`` placeholders with context values.

    Every occurrence is replaced. Placeholders without a context value are
    left untouched so a customized template never loses text.

    Args:
        template: Prompt template
        context: Interpolation values keyed by placeholder name

    Returns:
        Filled prompt
    """

    def _sub(match: re.Match) -> str:
        value = context.get(match.group(1))
        return match.group(0) if value is None else value

    return PLACEHOLDER_PATTERN.sub(_sub, template)


def parse_suggestion_lines(raw_output: str) -> list[str]:
    """
    Parse free-text completion output into an ordered list of candidates.

    Splits on line breaks, trims whitespace, drops empty lines, strips a
    leading bullet and/or numbering marker, and drops duplicates (first
    occurrence wins).

    Args:
        raw_output: Raw string from the completion service

    Returns:
        Ordered, de-duplicated candidate strings (possibly empty)
    """
    seen: set[str] = set()
    suggestions = []
    for line in raw_output.splitlines():
        cleaned = line.strip()
        if not cleaned:
            continue
        cleaned = BULLET_PATTERN.sub("", cleaned)
        cleaned = NUMBERING_PATTERN.sub("", cleaned).strip()
        if not cleaned or cleaned in seen:
            continue
        seen.add(cleaned)
        suggestions.append(cleaned)
    return suggestions


def get_anthropic(settings: Settings) -> AsyncAnthropic:
    """
    Get an async Anthropic client.

    Raises:
        ValueError: If no API key is configured
    """
    if not settings.ANTHROPIC_API_KEY:
        raise ValueError("ANTHROPIC_API_KEY not configured")
    return AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY)


async def complete_text(client: AsyncAnthropic, prompt: str, settings: Settings) -> str:
    """Send a single user prompt and return the first text block (empty if none)."""
    response = await client.messages.create(
        model=settings.SUGGESTIONS_MODEL,
        max_tokens=settings.SUGGESTIONS_MAX_TOKENS,
        messages=[{"role": "user", "content": prompt}],
    )
    for block in response.content or []:
        text = getattr(block, "text", None)
        if text is not None:
            return text
    return ""
