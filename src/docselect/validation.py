"""Length checks for formatted context against AI provider limits."""

from __future__ import annotations

import logging

from pydantic import BaseModel

logger = logging.getLogger("docselect.validation")

TRUNCATION_NOTICE = "\n\n[Content truncated due to length limits]"

# Character limits per provider; conservative where the provider is unknown
_PROVIDER_LIMITS: dict[str, tuple[str, int]] = {
    "google": ("google", 25000),
    "gemini": ("google", 25000),
    "openai": ("openai", 120000),
    "gpt": ("openai", 120000),
}
_DEFAULT_LIMIT = ("default", 25000)


class ContextLimits(BaseModel):
    max_length: int
    provider: str


class ContextValidationResult(BaseModel):
    """Outcome of a length check; truncation fields are set only when over limit."""

    is_valid: bool
    original_length: int
    truncated_content: str | None = None
    truncated_length: int | None = None
    warning: str | None = None


def get_context_limits(provider: str = "google") -> ContextLimits:
    """Get the context length limit for an AI provider."""
    name, limit = _PROVIDER_LIMITS.get(provider.lower(), _DEFAULT_LIMIT)
    return ContextLimits(max_length=limit, provider=name)


def validate_and_truncate_context(
    content: str,
    provider: str = "google",
    custom_limit: int | None = None,
) -> ContextValidationResult:
    """Check ``content`` against the provider limit and truncate it if needed.

    Truncated text keeps the first ``limit - 100`` characters followed by a
    notice.
    """
    limits = get_context_limits(provider)
    max_length = custom_limit or limits.max_length
    original_length = len(content)

    if original_length <= max_length:
        return ContextValidationResult(is_valid=True, original_length=original_length)

    truncated = content[: max(0, max_length - 100)] + TRUNCATION_NOTICE
    warning = (
        f"Context too long ({original_length} chars), truncated to "
        f"{len(truncated)} chars for {provider} API"
    )
    logger.warning(warning)

    return ContextValidationResult(
        is_valid=False,
        original_length=original_length,
        truncated_content=truncated,
        truncated_length=len(truncated),
        warning=warning,
    )
