"""Tests for phone parsing, service matching, content filtering and language detection."""

import pytest

from ibtisama_bot.core.content_filter import ContentFilter
from ibtisama_bot.core.service_matcher import SERVICE_LIST_SECTIONS, detect_service
from ibtisama_bot.utils.language_detector import detect_language
from ibtisama_bot.utils.phone_parser import fold_digits, is_valid_local_phone, mask_phone, normalize_digits


class TestPhoneParser:

    def test_arabic_indic_digits(self):
        assert normalize_digits("٠٧٩١٢٣٤٥٦٧") == "0791234567"

    def test_persian_digits_and_separators(self):
        assert normalize_digits("۰۷۹ ۱۲۳-۴۵۶۷") == "0791234567"

    def test_fold_keeps_other_characters(self):
        assert fold_digits("الساعة ٦") == "الساعة 6"

    @pytest.mark.parametrize("phone, valid", [("0791234567", True), ("791234567", False), ("07912345678", False), ("", False)])
    def test_local_pattern(self, phone, valid):
        assert is_valid_local_phone(phone) is valid

    def test_other_script_digits_are_not_phone_digits(self):
        devanagari = "\u0966\u096d\u096f\u0967\u0968\u0969\u096a\u096b\u096c\u096d"
        assert normalize_digits(devanagari) == ""
        assert not is_valid_local_phone(devanagari)
        assert not is_valid_local_phone(devanagari, r"^\d{10}$")

    def test_custom_pattern(self):
        assert is_valid_local_phone("0501234567", r"^05\d{8}$")

    def test_mask(self):
        assert mask_phone("962791234567") == "962****567"
        assert mask_phone("123") == "123"


class TestServiceMatcher:

    @pytest.mark.parametrize(
        "text, service",
        [
            ("بدي تنظيف", "تنظيف الأسنان"),
            ("teeth whitening please", "تبييض الأسنان"),
            ("عندي حشوة طايرة", "حشو الأسنان"),
            ("تقويم", "تقويم الأسنان"),
            ("فحص عام", "فحص عام"),
            ("وجع عصب", "علاج الجذور"),
            ("root canal", "علاج الجذور"),
            ("تركيبات", "تركيب التركيبات"),
            ("Hollywood smile", "ابتسامة هوليود"),
            ("زراعةالأسنان", "زراعة الأسنان"),
        ],
    )
    def test_detects(self, text, service):
        assert detect_service(text) == service

    def test_unknown(self):
        assert detect_service("ما بعرف") is None
        assert detect_service("") is None
        assert detect_service("!!!") is None

    def test_list_rows_map_to_catalog_names(self):
        for _, rows in SERVICE_LIST_SECTIONS:
            for row_id, _ in rows:
                name = row_id[len("service_"):]
                assert detect_service(name) == name


class TestContentFilter:

    def test_arabic_fragment(self):
        assert ContentFilter().contains_banned_words("يا حمار")

    def test_latin_word_boundaries(self):
        content_filter = ContentFilter()
        assert content_filter.contains_banned_words("you IDIOT")
        assert not content_filter.contains_banned_words("Scunthorpe shitake mushrooms")

    def test_extra_words(self):
        content_filter = ContentFilter(["spam", "سخيف"])
        assert content_filter.contains_banned_words("this is spam")
        assert content_filter.contains_banned_words("كلام سخيف")
        assert not content_filter.contains_banned_words("spammer")

    @pytest.mark.parametrize("text", ["عندي خراج", "السن خراب", "الخراج بوجعني"])
    def test_dental_words_are_not_abuse(self, text):
        assert not ContentFilter().contains_banned_words(text)

    @pytest.mark.parametrize("text", ["والكلب", "يلعنك", "شو هالزفت", "خرا عليك"])
    def test_arabic_prefixes_and_suffixes(self, text):
        assert ContentFilter().contains_banned_words(text)

    def test_clean_text(self):
        assert not ContentFilter().contains_banned_words("بدي احجز موعد")
        assert not ContentFilter().contains_banned_words(None)


class TestLanguage:

    def test_any_arabic_means_arabic(self):
        assert detect_language("ابي احجز at 6") == "ar"

    def test_latin_only(self):
        assert detect_language("Hello") == "en"
        assert detect_language("") == "en"
