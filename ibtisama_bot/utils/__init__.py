"""Utils module for helper functions"""

from .language_detector import detect_language
from .phone_parser import fold_digits, normalize_digits, is_valid_local_phone, mask_phone

__all__ = [
    'detect_language',
    'fold_digits',
    'normalize_digits',
    'is_valid_local_phone',
    'mask_phone',
]
