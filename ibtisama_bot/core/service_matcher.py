"""
Service Matcher
===============
Resolves free text ("بدي تنظيف", "whitening please") to a canonical clinic
service name.
"""
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class ServiceEntry:
    name: str
    keywords: Tuple[str, ...]


# Order matters: the first entry with a matching keyword wins
SERVICE_CATALOG: List[ServiceEntry] = [
    ServiceEntry("تنظيف الأسنان", ("تنظيف", "clean")),
    ServiceEntry("تبييض الأسنان", ("تبييض", "whitening")),
    ServiceEntry("حشو الأسنان", ("حشو", "حشوة", "filling")),
    ServiceEntry("تقويم الأسنان", ("تقويم", "braces")),
    ServiceEntry("خلع الأسنان", ("خلع", "extraction")),
    ServiceEntry("زراعة الأسنان", ("زراعة", "implant")),
    ServiceEntry("ابتسامة هوليود", ("ابتسامة", "هوليود", "smile")),
    ServiceEntry("فحص عام", ("فحص", "checkup", "check-up", "examination")),
    ServiceEntry("علاج الجذور", ("جذور", "عصب", "root canal")),
    ServiceEntry("تركيب التركيبات", ("تركيبات", "تركيب", "crown", "bridge")),
]

# Rows of the interactive service list: (section title, [(row id, row title)])
SERVICE_LIST_SECTIONS = [
    (
        "الخدمات الأساسية",
        [
            ("service_فحص عام", "فحص عام"),
            ("service_تنظيف الأسنان", "تنظيف الأسنان"),
            ("service_تبييض الأسنان", "تبييض الأسنان"),
            ("service_حشو الأسنان", "حشو الأسنان"),
        ],
    ),
    (
        "الخدمات المتقدمة",
        [
            ("service_علاج الجذور", "علاج الجذور"),
            ("service_تركيب التركيبات", "التركيبات"),
            ("service_تقويم الأسنان", "تقويم الأسنان"),
            ("service_خلع الأسنان", "خلع الأسنان"),
        ],
    ),
]


def _normalize(text: str) -> str:
    return re.sub(r"[^\u0600-\u06FFa-zA-Z0-9\s-]", "", text or "").lower()


def detect_service(text: str) -> Optional[str]:
    """
    Return the canonical service named in `text`, or None.

    A service matches when any of its keywords appears in the text, or when
    the text contains the full service name with spaces removed.
    """
    normalized = _normalize(text)
    if not normalized.strip():
        return None
    compact = normalized.replace(" ", "")
    for entry in SERVICE_CATALOG:
        if any(keyword in normalized for keyword in entry.keywords):
            return entry.name
        if entry.name.replace(" ", "") in compact:
            return entry.name
    return None
