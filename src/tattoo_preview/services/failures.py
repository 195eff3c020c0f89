"""Translation of action failures into user-facing messages."""

NETWORK_ERROR_MESSAGE = (
    "Network error. Please check your internet connection and try again."
)
GENERIC_ERROR_MESSAGE = "An unexpected error occurred."

_NETWORK_KEYWORDS = ("network", "fetch", "timeout", "connection", "offline")


def is_network_error(exc: BaseException) -> bool:
    """Return true when the error message reads like a connectivity problem."""
    message = str(exc).lower()
    return any(keyword in message for keyword in _NETWORK_KEYWORDS)


def describe_failure(exc: BaseException, fallback: str = GENERIC_ERROR_MESSAGE) -> str:
    """Map an exception to the message stored on the session."""
    if is_network_error(exc):
        return NETWORK_ERROR_MESSAGE
    message = str(exc).strip()
    return message or fallback
