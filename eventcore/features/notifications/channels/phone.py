"""
E.164 validation for SMS recipients.

Accepted: '+', a leading digit 1-9, then 6 to 14 more digits. Whitespace,
dashes, dots and parentheses are tolerated and stripped. A missing '+'
(e.g. a 00 international prefix) is rejected.
"""

import re

_SEPARATORS = re.compile(r"[\s\-().]")
_E164 = re.compile(r"^\+[1-9]\d{6,14}$")


class InvalidPhoneNumberError(ValueError):
    def __init__(self, phone: str | None):
        super().__init__("Invalid phone number format (expected E.164, e.g. +14165551234)")
        self.phone = phone


def normalize_e164(phone: str | None) -> str | None:
    """Return the compact +<digits> form, or None if the number is not E.164."""
    if not phone:
        return None
    compact = _SEPARATORS.sub("", phone)
    if not _E164.match(compact):
        return None
    return compact


def is_valid_e164(phone: str | None) -> bool:
    return normalize_e164(phone) is not None


def require_e164(phone: str | None) -> str:
    normalized = normalize_e164(phone)
    if normalized is None:
        raise InvalidPhoneNumberError(phone)
    return normalized
