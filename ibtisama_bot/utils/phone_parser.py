import re
from typing import Optional

# Arabic-Indic (U+0660..U+0669) and Extended/Persian (U+06F0..U+06F9) digits
_DIGIT_TRANSLATION = str.maketrans(
    "٠١٢٣٤٥٦٧٨٩۰۱۲۳۴۵۶۷۸۹",
    "01234567890123456789",
)

DEFAULT_PHONE_PATTERN = r"^07[0-9]{8}$"


def fold_digits(text: str) -> str:
    """Replace Arabic-Indic and Persian digits with ASCII digits, keeping everything else."""
    return (text or "").translate(_DIGIT_TRANSLATION)


def normalize_digits(text: str) -> str:
    """Fold Arabic-Indic digits to ASCII and strip everything that is not a digit.

    Examples:
        "٠٧٩١٢٣٤٥٦٧" → "0791234567"
        "079 123 4567" → "0791234567"
        "+962-79-1234567" → "962791234567"
    """
    if not text:
        return ""
    return re.sub(r"[^0-9]", "", fold_digits(text))


def is_valid_local_phone(phone: str, pattern: str = DEFAULT_PHONE_PATTERN) -> bool:
    """Check a normalized phone against the locale pattern (default: 07XXXXXXXX)."""
    if not phone:
        return False
    return re.fullmatch(pattern, phone, re.ASCII) is not None


def mask_phone(phone: str) -> str:
    """Hide the middle of a phone number for logging."""
    if not phone or len(phone) < 6:
        return phone or ""
    return f"{phone[:3]}****{phone[-3:]}"
