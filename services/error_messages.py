"""
User-facing explanations for failed backend calls.

The backend reports auth and validation failures only through message text,
so the cause is recovered by matching known phrases.  Order matters: the
role check runs before the generic "access denied" token check because the
backend's role message also starts with "Access denied".

Public API:
    classify_error(message) → ErrorKind
    explain_error(message) → str
"""

from enum import Enum


class ErrorKind(str, Enum):
    NOT_LOGGED_IN = "not_logged_in"
    SESSION_EXPIRED = "session_expired"
    INSUFFICIENT_ROLE = "insufficient_role"
    ACCOUNT_INACTIVE = "account_inactive"
    VALIDATION = "validation"
    NETWORK = "network"
    UNKNOWN = "unknown"


# (kind, phrases): the first kind with a phrase found in the lowercased message wins
_PHRASES: list[tuple[ErrorKind, tuple[str, ...]]] = [
    (ErrorKind.INSUFFICIENT_ROLE, (
        "insufficient permissions", "insufficient role", "forbidden",
        "admin access required", "not authorized",
    )),
    (ErrorKind.SESSION_EXPIRED, (
        "invalid token", "jwt expired", "token expired", "expired token",
        "jwt malformed",
    )),
    (ErrorKind.NOT_LOGGED_IN, (
        "no token provided", "authentication required", "not logged in",
        "access denied",
    )),
    (ErrorKind.ACCOUNT_INACTIVE, ("account is not active",)),
    (ErrorKind.VALIDATION, ("validation", "is required", "must be", "invalid value")),
    (ErrorKind.NETWORK, ("network error", "failed to fetch", "timed out", "connection")),
]

_EXPLANATIONS: dict[ErrorKind, str] = {
    ErrorKind.NOT_LOGGED_IN: (
        "You are not logged in. Please log in as an admin and try again."
    ),
    ErrorKind.SESSION_EXPIRED: (
        "Your session has expired. Please log out, log back in and try again."
    ),
    ErrorKind.INSUFFICIENT_ROLE: (
        "Your account does not have permission for this action. "
        "Only admins can import or update products."
    ),
    ErrorKind.ACCOUNT_INACTIVE: (
        "Your account is not active. Contact an administrator."
    ),
    ErrorKind.VALIDATION: (
        "The server rejected the data: {message}"
    ),
    ErrorKind.NETWORK: (
        "The server could not be reached. Check your connection and try again."
    ),
    ErrorKind.UNKNOWN: "{message}",
}


def classify_error(message: str | None) -> ErrorKind:
    """Map an error message to the kind of failure it describes."""
    text = (message or "").lower()
    for kind, phrases in _PHRASES:
        if any(phrase in text for phrase in phrases):
            return kind
    return ErrorKind.UNKNOWN


def explain_error(message: str | None) -> str:
    """Return the user-facing explanation for an error message."""
    kind = classify_error(message)
    return _EXPLANATIONS[kind].format(message=message or "Unknown error")
