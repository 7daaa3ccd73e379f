"""
Language Detection
==================

Decides whether a message should be answered in Arabic or English.

Replies default to Arabic: a message is treated as English only when it
carries no Arabic characters at all, which is how the clinic's customers mix
Latin digits and English service names into otherwise Arabic messages.
"""

import re
from typing import Literal
from dataclasses import dataclass


Language = Literal["ar", "en"]


@dataclass
class LanguageMetrics:
    """
    Character counts for one message.

    Attributes:
        arabic_char_count: Number of Arabic Unicode characters detected
        english_char_count: Number of Latin alphabet characters detected
    """
    arabic_char_count: int
    english_char_count: int


class LanguageDetector:
    """Unicode character analysis for Arabic and English text."""

    # Unicode ranges for comprehensive Arabic detection
    ARABIC_PATTERN = r'[\u0600-\u06FF\u0750-\u077F\u08A0-\u08FF\uFB50-\uFDFF\uFE70-\uFEFF]'
    ENGLISH_PATTERN = r'[a-zA-Z]'

    @classmethod
    def analyze_text(cls, text: str) -> LanguageMetrics:
        if not text or not text.strip():
            return LanguageMetrics(0, 0)
        return LanguageMetrics(
            arabic_char_count=len(re.findall(cls.ARABIC_PATTERN, text)),
            english_char_count=len(re.findall(cls.ENGLISH_PATTERN, text)),
        )

    @classmethod
    def detect_language(cls, text: str) -> Language:
        """
        Detect the reply language for a message.

        Args:
            text: The user's message

        Returns:
            "ar" if the message contains any Arabic character, otherwise "en"

        Example:
            >>> LanguageDetector.detect_language("ابي احجز at 6")
            'ar'
            >>> LanguageDetector.detect_language("Hello")
            'en'
        """
        metrics = cls.analyze_text(text)
        return "ar" if metrics.arabic_char_count > 0 else "en"


def detect_language(text: str) -> Language:
    return LanguageDetector.detect_language(text or "")
