"""Custom validators and sanitizers"""

import re
from typing import Optional

from sahal.core.config import settings

# International format after normalization
INTERNATIONAL_PHONE_PATTERN = re.compile(r"^\+\d{7,15}$")

# Local subscriber numbers without the country code
LOCAL_PHONE_PATTERN = re.compile(r"^\d{9}$")

def normalize_phone(phone: Optional[str], country_code: Optional[str] = None) -> str:
    """
    Normalize a phone number to +<country><subscriber>

    Accepts "+252612345678", "252612345678", "612345678" and the trunk
    prefixed "0612345678". Anything else must already be in international
    form.

    Raises:
        ValueError: If the number cannot be normalized
    """
    if not phone or not phone.strip():
        raise ValueError("Please provide a valid phone number")

    country_code = country_code or settings.PHONE_COUNTRY_CODE

    # Remove all non-digit characters except +
    phone = re.sub(r"[^\d+]", "", phone)

    if phone.startswith(f"+{country_code}"):
        normalized = phone
    elif phone.startswith(country_code) and len(phone) > len(country_code) + 6:
        normalized = f"+{phone}"
    elif LOCAL_PHONE_PATTERN.match(phone):
        normalized = f"+{country_code}{phone}"
    elif phone.startswith("0") and LOCAL_PHONE_PATTERN.match(phone[1:]):
        normalized = f"+{country_code}{phone[1:]}"
    else:
        normalized = phone

    if not INTERNATIONAL_PHONE_PATTERN.match(normalized):
        raise ValueError("Please provide a valid phone number")

    return normalized

def normalize_text(text: str) -> str:
    """Normalize text input"""
    # Remove extra whitespace
    text = " ".join(text.split())

    # Remove zero-width characters
    text = re.sub(r'[\u200b\u200c\u200d\ufeff]', '', text)

    return text.strip()

def validate_months_purchased(months: int) -> int:
    """Check the purchased duration is within the allowed range"""
    if months < settings.MIN_MONTHS_PURCHASED or months > settings.MAX_MONTHS_PURCHASED:
        raise ValueError(
            f"Months purchased must be between {settings.MIN_MONTHS_PURCHASED} "
            f"and {settings.MAX_MONTHS_PURCHASED}"
        )
    return months
