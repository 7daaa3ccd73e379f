"""
Reply Templates
===============
Fixed reply texts used by the conversation flow, kept in one place so the
flow handlers only deal with state.
"""
import random
from typing import Dict, List, Optional


ENGLISH_GREETINGS: List[str] = [
    "👋 Hello! Welcome to *Ibtisama Clinic*! How can I assist you today?",
    "Hi there! 😊 How can I help you book an appointment or learn more about our services?",
    "Welcome to *Ibtisama Medical Clinic*! How can I support you today?",
    "Hey! 👋 Glad to see you at *Ibtisama Clinic*! What can I do for you today?",
    "✨ Hello and welcome to *Ibtisama Clinic*! Are you interested in our offers or booking a visit?",
    "Good day! 💚 How can I assist you with your dental needs today?",
    "😊 Hi! You've reached *Ibtisama Clinic*, your smile is our priority!",
    "👋 Hello there! Would you like to see our latest offers or book an appointment?",
    "Welcome! 🌸 How can I help you take care of your smile today?",
    "💬 Hi! How can I help you find the right service or offer at *Ibtisama Clinic*?",
]

ARABIC_GREETINGS: List[str] = [
    "👋 أهلاً وسهلاً في *عيادة ابتسامة الطبية*! كيف يمكنني مساعدتك اليوم؟",
    "مرحباً بك في عيادتنا 💚 هل ترغب بحجز موعد أو الاستفسار عن خدمة؟",
    "أهلاً بك 👋 يسعدنا تواصلك مع *عيادة ابتسامة*، كيف نقدر نخدمك اليوم؟",
    "🌸 حيّاك الله! وش أكثر خدمة حاب تستفسر عنها اليوم؟",
    "✨ أهلاً وسهلاً! هل ترغب بالتعرف على عروضنا أو حجز موعد؟",
    "💚 يسعدنا تواصلك مع *عيادة ابتسامة*! كيف ممكن نساعدك اليوم؟",
    "😊 مرحباً بك! تقدر تسأل عن أي خدمة أو عرض متوفر حالياً.",
    "👋 أهلين وسهلين فيك! وش الخدمة اللي حاب تعرف عنها أكثر؟",
    "🌷 يا مرحبا! كيف نقدر نساعدك اليوم في *عيادة ابتسامة*؟",
    "💬 أهلاً بك! هل ترغب بحجز موعد أو الاطلاع على عروضنا الحالية؟",
]

BANNED_CONTENT_REPLY: Dict[str, str] = {
    "ar": "⚠️ نرجو الالتزام بأسلوب محترم في المحادثة. نحن هنا لخدمتك 🌸",
    "en": "⚠️ Please keep the conversation respectful. We're here to help 🌸",
}

# Booking flow
SLOT_PROMPT = "📅 اختر الموعد المناسب لك:"
SLOT_PROMPT_VOICE = "اختر موعدك: الساعة 3 مساءً، 6 مساءً، أو 9 مساءً. أرسل الوقت المناسب لك."
SLOT_CHOSEN = "👍 تم اختيار الموعد! الآن أرسل اسمك:"

NAME_TOO_SHORT = "🌸 اكتب اسمك الكامل لو سمحت:"
NAME_INVALID = "🙂 الاسم غير واضح. مثال: أحمد خالد، سارة محمد"
NAME_RESUME = "نكمّل الحجز 😊 أرسل اسمك:"

PHONE_PROMPT = "📱 تمام! الآن أرسل رقم الجوال:"
PHONE_INVALID = "⚠️ رقم الجوال غير صحيح.\nمثال: 07XXXXXXXX"
PHONE_RESUME = "نكمّل الحجز 📱 أرسل رقم الجوال:"

SERVICE_PROMPT = "💊 اختر الخدمة من القائمة 👇"
SERVICE_UNKNOWN = "❓ لم أفهم الخدمة المطلوبة.\nاختر من القائمة 👇"
SERVICE_RESUME = "نكمّل الحجز 💊 اختر الخدمة:"
SERVICE_LIST_HEADER = "💊 اختر الخدمة المطلوبة"
SERVICE_LIST_BODY = "اختر نوع الخدمة من القائمة:"
SERVICE_LIST_BUTTON = "عرض الخدمات"
SERVICE_LIST_VOICE = "اختر الخدمة المطلوبة: فحص عام، تنظيف الأسنان، تبييض الأسنان، حشو الأسنان، علاج الجذور، التركيبات، تقويم الأسنان، أو خلع الأسنان."

SERVICE_NEEDS_BOOKING = "⚠️ يجب بدء الحجز أولاً قبل اختيار الخدمة."
SERVICE_NEEDS_PHONE = "⚠️ يرجى إدخال رقم الجوال قبل اختيار الخدمة."

GENERIC_ERROR = "⚠️ حدث خطأ أثناء حفظ الحجز. حاول لاحقًا."
GENERIC_ERROR_VOICE = "عذراً، حدث خطأ. حاول مرة أخرى."
AI_UNAVAILABLE = "⚠️ عذراً، لم أتمكن من الإجابة الآن. حاول مرة أخرى بعد قليل."
GENERIC_APOLOGY = "⚠️ عذراً، حدث خطأ. حاول مرة أخرى لاحقًا."

# Cancellation
CANCEL_PHONE_PROMPT = "📌 أرسل رقم الجوال المستخدم بالحجز لإلغاء الموعد."
CANCEL_PHONE_INVALID = "⚠️ رقم الجوال غير صحيح. حاول مرة أخرى:"
CANCEL_NOT_FOUND = "❌ لا يوجد حجز مرتبط بهذا الرقم."
CANCEL_ERROR = "⚠️ حدث خطأ أثناء الإلغاء. حاول لاحقًا."

TRANSCRIPT_MISSING = "لم أفهم، حاول مرة أخرى."

# Media flows
LOCATION_TEXT: Dict[str, str] = {
    "ar": "📍 موقع {clinic}:\n{address}\n\n🗺️ افتح الخريطة: {maps_url}",
    "en": "📍 {clinic} location:\n{address}\n\n🗺️ Open in maps: {maps_url}",
}
OFFERS_TEASER: Dict[str, str] = {
    "ar": "🎁 عروضنا الحالية سارية لفترة محدودة!\nهل ترغب أن نرسل لك تفاصيل العروض؟ 😊",
    "en": "🎁 Our current offers are valid for a limited time!\nWould you like us to send you the offer details? 😊",
}
OFFERS_INTRO: Dict[str, str] = {
    "ar": "💊 هذه عروضنا وخدماتنا الحالية:",
    "en": "💊 Here are our current offers and services:",
}
DOCTORS_INTRO: Dict[str, str] = {
    "ar": "👨‍⚕️ تعرف على فريقنا الطبي المتخصص:",
    "en": "👨‍⚕️ Meet our professional medical team:",
}
BOOKING_BUTTON_BODY: Dict[str, str] = {
    "ar": "📅 جاهز لحجز موعدك؟ اضغط على الزر بالأسفل للبدء!",
    "en": "📅 Ready to book your appointment? Click the button below to start!",
}
BOOKING_BUTTON_TITLE: Dict[str, str] = {"ar": "بدء الحجز", "en": "Start Booking"}
BOOKING_BUTTON_FALLBACK: Dict[str, str] = {
    "ar": "📅 جاهز لحجز موعدك؟ اكتب \"حجز\" لنبدأ!",
    "en": "📅 Ready to book your appointment? Type \"book\" to start!",
}
QUICK_BOOKING_BODY: Dict[str, str] = {
    "ar": "💫 تحتاج لحجز موعد بسرعة؟ اضغط بالأسفل للبدء!",
    "en": "💫 Need to book an appointment quickly? Click below to start!",
}
QUICK_BOOKING_TITLE: Dict[str, str] = {"ar": "احجز الآن", "en": "Book Now"}

# Website notifications
CANDY_NOTIFICATION = "📢 عميل جديد من الموقع:\n👤 الاسم: {name}\n📞 الهاتف: {phone}\n💊 الخدمة: {service}"
CUSTOMER_FOLLOW_UP = "📞 للحجز أو الاستفسار، تواصل معنا الآن عبر واتساب!"


def random_greeting(language: str, rng: Optional[random.Random] = None) -> str:
    """Pick one greeting in the given language ("en" or anything else for Arabic)"""
    choices = ENGLISH_GREETINGS if language == "en" else ARABIC_GREETINGS
    return (rng or random).choice(choices)


def banned_content_reply(language: str) -> str:
    return BANNED_CONTENT_REPLY.get(language, BANNED_CONTENT_REPLY["ar"])


def booking_confirmation(name: str, phone: str, service: str, appointment: Optional[str]) -> str:
    return f"✅ تم تأكيد حجزك بنجاح 🎉\n👤 {name}\n📱 {phone}\n💊 {service}\n📅 {appointment}"


def booking_confirmation_voice(name: str, service: str, appointment: Optional[str]) -> str:
    return f"تم تأكيد حجزك بنجاح يا {name}. الخدمة: {service}، الموعد: {appointment or 'غير محدد'}."


def cancellation_summary(name: str, service: str, appointment: Optional[str]) -> str:
    return f"🟣 تم إلغاء الحجز:\n👤 {name}\n💊 {service}\n📅 {appointment}"


def cancellation_summary_voice(name: str, service: str, appointment: Optional[str]) -> str:
    return f"تم إلغاء الحجز بنجاح. {name}، {service}، بتاريخ {appointment}"


def customer_booking_notice(
    name: str,
    clinic_name: str,
    service: Optional[str] = None,
    appointment: Optional[str] = None,
) -> str:
    """Notice sent to a customer who booked through the website"""
    return f"👋 مرحبًا {name}!\nتم حجز موعدك لخدمة {service or '-'} في {clinic_name} 🦷\n📅 {appointment or '-'}"
