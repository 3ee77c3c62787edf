import pytest

from eventcore.features.notifications.channels.phone import (
    InvalidPhoneNumberError,
    is_valid_e164,
    normalize_e164,
    require_e164,
)


@pytest.mark.parametrize(
    "phone",
    ["+14165551234", "+32475123456", "+1234567", "+1 (416) 555-1234", " +44 20 7946 0958 "],
)
def test_accepts_e164_numbers(phone):
    assert is_valid_e164(phone)


@pytest.mark.parametrize(
    "phone",
    ["+141655", "0014165551234", "14165551234", "+04165551234", "+1416555123456789", "", None],
)
def test_rejects_malformed_numbers(phone):
    assert not is_valid_e164(phone)


def test_normalize_strips_formatting():
    assert normalize_e164("+1 (416) 555-1234") == "+14165551234"


def test_require_raises_for_invalid_number():
    with pytest.raises(InvalidPhoneNumberError):
        require_e164("0014165551234")
