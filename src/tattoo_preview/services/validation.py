"""Input validation applied before prompts reach the orchestrator."""

EDIT_PROMPT_MIN_LENGTH = 3
EDIT_PROMPT_MAX_LENGTH = 200


class PromptRejectedError(ValueError):
    """Raised when a prompt fails validation at the input boundary."""


def normalize_edit_prompt(text: str) -> str | None:
    """Return the trimmed edit prompt, or None when its length is out of range."""
    trimmed = text.strip()
    if not EDIT_PROMPT_MIN_LENGTH <= len(trimmed) <= EDIT_PROMPT_MAX_LENGTH:
        return None
    return trimmed


def normalize_custom_prompt(text: str) -> str | None:
    """Return the trimmed custom idea, or None when it is blank."""
    trimmed = text.strip()
    return trimmed or None
