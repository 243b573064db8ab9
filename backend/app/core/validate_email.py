"""Email Validation — pure syntactic check for <localpart>@<domain>.<tld>.

Invariants:
    - Pure: no IO, no exceptions, never touches the store or network
    - Whole-string match, case-insensitive, ASCII letters only, tld alphabetic with >= 2 characters
"""

import re

_EMAIL_PATTERN = re.compile(
    r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE | re.ASCII,
)


def is_valid_email(text: str) -> bool:
    """True iff text is email-shaped."""
    if not isinstance(text, str):
        return False
    return _EMAIL_PATTERN.fullmatch(text) is not None


class EmailValidationService:
    """ValidationService implementation backed by is_valid_email."""

    def is_valid(self, text: str) -> bool:
        return is_valid_email(text)
