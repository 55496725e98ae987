"""
Phone number normalization for WhatsApp recipients
"""
import re

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(raw: str | None, country_code: str = "91") -> str:
    """
    Normalize a phone number to international digits without "+".

    Steps: strip non-digits, strip a single leading zero, prepend the
    country code when exactly ten digits remain.

    Example:
        >>> normalize_phone("09876543210")
        '919876543210'
        >>> normalize_phone("+91 98765 43210")
        '919876543210'
        >>> normalize_phone("447700900123")
        '447700900123'
    """
    digits = _NON_DIGITS.sub("", raw or "")
    if digits.startswith("0"):
        digits = digits[1:]
    if len(digits) == 10:
        digits = country_code + digits
    return digits


def to_chat_id(phone: str, suffix: str = "@c.us") -> str:
    """WhatsApp chat id for an already normalized number"""
    return f"{phone}{suffix}"
