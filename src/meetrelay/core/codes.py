"""Meeting code generation."""

from __future__ import annotations

import secrets
import string

DIGITS = string.digits
ALPHANUMERIC = string.ascii_uppercase + string.digits

ALPHABETS = {
    "digits": DIGITS,
    "alphanumeric": ALPHANUMERIC,
}


def resolve_alphabet(name: str) -> str:
    """Map a configured alphabet name to its characters."""

    try:
        return ALPHABETS[name]
    except KeyError:
        raise ValueError(f"Unsupported meeting code alphabet: {name}") from None


def generate_meeting_code(length: int = 6, alphabet: str = DIGITS) -> str:
    """Return a random shareable code.

    Numeric codes never start with 0, so a 6-digit code always reads as a
    6-digit number.
    """

    if length < 1:
        raise ValueError("Meeting code length must be positive")
    if alphabet == DIGITS:
        first = secrets.choice(DIGITS[1:])
        return first + "".join(secrets.choice(DIGITS) for _ in range(length - 1))
    return "".join(secrets.choice(alphabet) for _ in range(length))
