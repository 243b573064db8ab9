"""Email Validation — <localpart>@<domain>.<tld>, case-insensitive, tld >= 2 letters."""

import pytest

from app.core.validate_email import EmailValidationService, is_valid_email


@pytest.mark.parametrize(
    "text",
    [
        "a@x.com",
        "Sincere@april.biz",
        "first.last+tag@sub.domain.org",
        "UPPER@EXAMPLE.IO",
        "under_score%@x-y.co",
    ],
)
def test_accepts_email_shaped_strings(text):
    assert is_valid_email(text)


@pytest.mark.parametrize(
    "text",
    [
        "",
        "not-an-email",
        "a@x",
        "a@x.c",
        "@x.com",
        "a@.com",
        "a@@x.com",
        "a b@x.com",
        "a@x.com ",
        " a@x.com",
        "a@x.c0m",
        "a@x.\u212a\u212a",
        "\u017f@x.com",
        "josé@x.com",
    ],
)
def test_rejects_everything_else(text):
    assert not is_valid_email(text)


def test_non_string_input_is_invalid():
    assert is_valid_email(None) is False


def test_service_delegates_to_pure_check():
    service = EmailValidationService()
    assert service.is_valid("a@x.com")
    assert not service.is_valid("a@x")
