"""Password policy."""

import re
from typing import Final

from zxcvbn import zxcvbn

MIN_PASSWORD_LENGTH: Final[int] = 8
MAX_PASSWORD_LENGTH: Final[int] = 128
# zxcvbn score (0-4 scale): 3 = "safely unguessable"
MIN_PASSWORD_SCORE: Final[int] = 3

_COMPOSITION_RULES: Final[list[tuple[re.Pattern[str], str]]] = [
    (re.compile(r"[a-z]"), "one lowercase letter"),
    (re.compile(r"[A-Z]"), "one uppercase letter"),
    (re.compile(r"\d"), "one number"),
    (re.compile(r"[^A-Za-z0-9]"), "one special character"),
]


def validate_password_strength(password: str, user_inputs: list[str] | None = None) -> str:
    """Check composition rules and zxcvbn entropy.

    Args:
        password: Candidate password.
        user_inputs: Values zxcvbn should treat as guessable (email, username, names).

    Raises:
        ValueError: with a human readable reason.
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if len(password) > MAX_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_LENGTH} characters long")

    missing = [label for pattern, label in _COMPOSITION_RULES if not pattern.search(password)]
    if missing:
        raise ValueError("Password must contain at least " + ", ".join(missing))

    result = zxcvbn(password, user_inputs=user_inputs or [])
    if result["score"] < MIN_PASSWORD_SCORE:
        feedback = result.get("feedback", {})
        warning = feedback.get("warning", "")
        suggestions = feedback.get("suggestions", [])
        if warning:
            raise ValueError(f"Weak password: {warning}")
        if suggestions:
            raise ValueError(f"Weak password: {suggestions[0]}")
        raise ValueError("Password is too weak. Use a longer password with a mix of characters.")

    return password
