"""
Content Filter
==============
Detects abusive language so the bot can answer with a fixed warning instead of
continuing the conversation.

Arabic entries match as whole words that may carry a conjunction or article
prefix and a pronoun suffix ("والكلب", "يلعنك"); plain substring matching would
flag ordinary clinic vocabulary such as "خراج" (abscess).
"""
import re
from typing import Iterable, Optional

from .intent_classifier import normalize_text


BANNED_ARABIC = [
    "كلب",
    "حمار",
    "زفت",
    "تافه",
    "حقير",
    "وسخ",
    "انقلع",
    "يلعن",
    "خرا",
]

BANNED_WORDS = [
    "fuck",
    "fucking",
    "shit",
    "bitch",
    "bastard",
    "asshole",
    "idiot",
    "stupid",
]

ARABIC_PREFIX = r"(?:و|ف|ب|يا|ال|وال|بال|هال)?"
ARABIC_SUFFIX = r"(?:ة|ه|ها|ك|كم|هم|ين|ات)?"


def _alternatives(words: Iterable[str]) -> str:
    return "|".join(re.escape(w) for w in sorted(words, key=len, reverse=True))


class ContentFilter:
    """Banned-word detection with an optional site-specific extension list"""

    def __init__(self, extra_words: Optional[Iterable[str]] = None):
        arabic = list(BANNED_ARABIC)
        words = list(BANNED_WORDS)
        for word in extra_words or []:
            word = normalize_text(word)
            if not word:
                continue
            (words if re.fullmatch(r"[a-z0-9 ]+", word) else arabic).append(word)
        self._word_pattern = re.compile(rf"(?<!\w)(?:{_alternatives(words)})(?!\w)", re.IGNORECASE)
        self._arabic_pattern = re.compile(
            rf"(?<!\w){ARABIC_PREFIX}(?:{_alternatives(arabic)}){ARABIC_SUFFIX}(?!\w)"
        )

    def contains_banned_words(self, text: Optional[str]) -> bool:
        normalized = normalize_text(text)
        if not normalized:
            return False
        return bool(self._arabic_pattern.search(normalized) or self._word_pattern.search(normalized))
