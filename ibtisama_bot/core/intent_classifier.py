"""
Keyword Intent Classifier
=========================
Maps raw message text to the set of categories it mentions.

Every category is an independent keyword test, so a message can match more
than one; the router decides which one wins. Arabic keywords are matched as
fragments because Arabic glues prefixes (ال / و / ب) onto words. Latin
keywords and Arabic interrogatives are matched as whole words so that
"Andrew" is not a doctors request and "هلا" is not a question.
"""

import re
from typing import Dict, Iterable, List, Optional, Pattern, Set, Tuple
from loguru import logger

from ..models.conversation import Intent


TATWEEL = "\u0640"

GREETING_FRAGMENTS = ["هلا", "مرحبا", "السلام", "اهلا", "أهلاً", "أهلا", "اهلين", "هاي", "شلونك", "صباح", "مساء"]
GREETING_WORDS = ["hi", "hello", "hey", "morning", "evening", "good", "welcome"]

LOCATION_FRAGMENTS = ["موقع", "مكان", "عنوان", "وين", "فين", "أين", "وينكم", "فينكم"]
LOCATION_WORDS = ["location", "where", "address", "maps"]

OFFERS_FRAGMENTS = ["عروض", "عرض", "خصم", "خصومات", "تخفيض", "باقات", "باكيج", "بكج"]
OFFERS_WORDS = ["offer", "offers", "discount", "discounts", "deal", "deals"]

OFFERS_CONFIRMATION_FRAGMENTS = ["ارسل", "رسل", "ابي", "ابغى", "نعم", "ايه", "ايوه"]
OFFERS_CONFIRMATION_WORDS = ["yes", "ok", "okay", "send", "show"]

DOCTORS_FRAGMENTS = ["الأطباء", "اطباء", "أطباء", "الدكاترة", "دكاترة", "دكتور", "طبيب", "طاقم طبي", "فريق طبي"]
DOCTORS_WORDS = ["doctor", "doctors", "dr"]

BOOKING_FRAGMENTS = ["حجز", "احجز", "موعد"]
BOOKING_WORDS = ["book", "booking", "appointment", "appointments", "reserve"]

CANCEL_FRAGMENTS = [
    "الغاء",
    "إلغاء",
    "الغي",
    "ألغي",
    "كنسل",
    "ما بدي الموعد",
    "غيرت رأيي",
    "غيرت رايي",
]
CANCEL_WORDS = ["cancel", "cancel booking", "cancel appointment"]

RESET_FRAGMENTS = ["ابدأ من جديد", "ابدا من جديد", "من البداية", "القائمة الرئيسية", "إعادة تعيين"]
RESET_WORDS = ["reset", "restart", "start over", "main menu"]

QUESTION_ARABIC_WORDS = ["كم", "ليش", "هل", "شو", "متى", "كيف", "وش", "ايش", "إيش", "ماذا", "لماذا"]
QUESTION_WORDS = ["price", "how", "why", "when", "what", "who", "where"]
QUESTION_MARKS = ("?", "؟")


def normalize_text(text: Optional[str]) -> str:
    """Lowercase, drop tatweel and collapse whitespace"""
    if not text:
        return ""
    return re.sub(r"\s+", " ", str(text).replace(TATWEEL, "")).strip().lower()


def _word_pattern(words: Iterable[str], arabic_prefixes: str = "") -> Pattern:
    alternatives = "|".join(re.escape(w) for w in sorted(words, key=len, reverse=True))
    prefix = f"[{arabic_prefixes}]?" if arabic_prefixes else ""
    return re.compile(rf"(?<!\w){prefix}(?:{alternatives})(?!\w)", re.IGNORECASE)


def includes_any(fragments: Iterable[str], text: str) -> bool:
    return any(fragment in text for fragment in fragments)


class KeywordIntentClassifier:
    """
    Rule-based intent classification over fixed Arabic/English keyword lists.

    No state is kept between calls.
    """

    def __init__(self):
        self._rules: Dict[Intent, Tuple[List[str], Pattern]] = {
            Intent.GREETING: (GREETING_FRAGMENTS, _word_pattern(GREETING_WORDS)),
            Intent.LOCATION: (LOCATION_FRAGMENTS, _word_pattern(LOCATION_WORDS)),
            Intent.OFFERS: (OFFERS_FRAGMENTS, _word_pattern(OFFERS_WORDS)),
            Intent.DOCTORS: (DOCTORS_FRAGMENTS, _word_pattern(DOCTORS_WORDS)),
            Intent.BOOKING_START: (BOOKING_FRAGMENTS, _word_pattern(BOOKING_WORDS)),
            Intent.CANCEL_START: (CANCEL_FRAGMENTS, _word_pattern(CANCEL_WORDS)),
            Intent.RESET: (RESET_FRAGMENTS, _word_pattern(RESET_WORDS)),
        }
        self._confirmation_words = _word_pattern(OFFERS_CONFIRMATION_WORDS)
        self._question_words = _word_pattern(QUESTION_WORDS)
        self._question_arabic = _word_pattern(QUESTION_ARABIC_WORDS, arabic_prefixes="وف")

    def classify(self, text: Optional[str]) -> Set[Intent]:
        """
        Classify a message.

        Args:
            text: Raw message text (may be empty or None)

        Returns:
            Set of matched intents; empty when nothing matches
        """
        normalized = normalize_text(text)
        if not normalized:
            return set()

        matched = {
            intent
            for intent, (fragments, words) in self._rules.items()
            if includes_any(fragments, normalized) or words.search(normalized)
        }

        if self.is_offers_confirmation(normalized):
            matched.add(Intent.OFFERS_CONFIRMATION)
        if self.is_question(normalized):
            matched.add(Intent.QUESTION)

        logger.debug(f"🏷️ Classified '{normalized[:40]}' → {sorted(i.value for i in matched)}")
        return matched

    def is_offers_confirmation(self, text: Optional[str]) -> bool:
        cleaned = re.sub(r"[^\u0600-\u06FFa-zA-Z0-9 ]", "", normalize_text(text))
        return includes_any(OFFERS_CONFIRMATION_FRAGMENTS, cleaned) or bool(self._confirmation_words.search(cleaned))

    def is_question(self, text: Optional[str]) -> bool:
        """Side-question heuristic: ends with a question mark or has an interrogative word"""
        normalized = normalize_text(text)
        if not normalized:
            return False
        return (
            normalized.endswith(QUESTION_MARKS)
            or bool(self._question_words.search(normalized))
            or bool(self._question_arabic.search(normalized))
        )


# Global instance
_classifier = None


def get_intent_classifier() -> KeywordIntentClassifier:
    """Get or create global intent classifier"""
    global _classifier
    if _classifier is None:
        _classifier = KeywordIntentClassifier()
    return _classifier


def classify_intent(text: Optional[str]) -> Set[Intent]:
    """Convenient function to classify a message"""
    return get_intent_classifier().classify(text)
