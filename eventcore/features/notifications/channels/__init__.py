"""
Per-channel senders. Each returns a DeliveryOutcome and never raises.
"""

from .email import EmailSender
from .in_app import InAppSender
from .phone import InvalidPhoneNumberError, is_valid_e164, normalize_e164, require_e164
from .sms import SmsSender

__all__ = [
    "EmailSender",
    "InAppSender",
    "SmsSender",
    "InvalidPhoneNumberError",
    "is_valid_e164",
    "normalize_e164",
    "require_e164",
]
