from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from medistock.ai.providers.base import Locale


@dataclass(frozen=True)
class PharmacyContext:
    """Metrics snapshot supplied by the caller. Embedded verbatim, never recomputed."""

    pharmacy_name: str | None = None
    daily_revenue: float | None = None
    total_due: float | None = None
    low_stock_count: int | None = None
    total_customers: int | None = None
    user_id: str | None = None


SYSTEM_PROMPTS: dict[Locale, str] = {
    "en": (
        "You are MediBot, an expert AI assistant specializing in Bangladesh pharmacy operations. "
        "Provide practical, actionable advice while being friendly and professional. "
        "Always respond in English."
    ),
    "bn": (
        "You are MediBot, একজন বিশেষজ্ঞ AI সহায়ক যিনি বাংলাদেশের ফার্মেসি পরিচালনায় বিশেষজ্ঞ। "
        "ব্যবহারিক, কার্যকর পরামর্শ প্রদান করুন এবং বন্ধুত্বপূর্ণ ও পেশাদার থাকুন। "
        "সবসময় বাংলায় উত্তর দিন।"
    ),
}


def _amount(value: float | int | None) -> str:
    if value is None:
        return "0"
    return f"{value:g}" if isinstance(value, float) else str(value)


def build_context_prompt(
    user_message: str,
    context: PharmacyContext | None,
    locale: Locale = "en",
    *,
    today: date | None = None,
) -> str:
    today = today or date.today()
    lines: list[str] = []
    if context is not None:
        if locale == "bn":
            lines += [
                "ফার্মেসি তথ্য:",
                f"- নাম: {context.pharmacy_name or 'আপনার ফার্মেসি'}",
                f"- আজকের আয়: ৳{_amount(context.daily_revenue)}",
                f"- মোট বাকি: ৳{_amount(context.total_due)}",
                f"- কম স্টক পণ্য: {_amount(context.low_stock_count)}",
                f"- মোট গ্রাহক: {_amount(context.total_customers)}",
                f"- আজকের তারিখ: {today.isoformat()}",
                "",
            ]
        else:
            lines += [
                "Pharmacy Context:",
                f"- Name: {context.pharmacy_name or 'Your Pharmacy'}",
                f"- Daily Revenue: ৳{_amount(context.daily_revenue)}",
                f"- Total Due: ৳{_amount(context.total_due)}",
                f"- Low Stock Items: {_amount(context.low_stock_count)}",
                f"- Total Customers: {_amount(context.total_customers)}",
                f"- Current Date: {today.strftime('%a %b %d %Y')}",
                "",
            ]

    if locale == "bn":
        lines += [
            f'ব্যবহারকারীর প্রশ্ন: "{user_message}"',
            "",
            "MediBot হিসেবে, এই বাংলাদেশি ফার্মেসির জন্য সহায়ক পরামর্শ প্রদান করুন। মনোযোগ দিন:",
            "- ব্যবহারিক ব্যবসায়িক সমাধান",
            "- গ্রাহক সেবার উৎকর্ষতা",
            "- ইনভেন্টরি অপ্টিমাইজেশন",
            "- নিয়ন্ত্রক সম্মতি",
            "- বৃদ্ধির কৌশল",
            "- ওষুধের নিরাপত্তা (চিকিৎসা পরামর্শের জন্য সর্বদা স্বাস্থ্যসেবা পেশাদারদের পরামর্শ নিতে বলুন)",
            "",
            "উত্তর সংক্ষিপ্ত কিন্তু তথ্যবহুল রাখুন (বিস্তারিত ব্যাখ্যার অনুরোধ না থাকলে ২০০ শব্দের মধ্যে)।",
        ]
    else:
        lines += [
            f'User Question: "{user_message}"',
            "",
            "As MediBot, provide helpful advice for this Bangladesh pharmacy. Focus on:",
            "- Practical business solutions",
            "- Customer service excellence",
            "- Inventory optimization",
            "- Regulatory compliance",
            "- Growth strategies",
            "- Medicine safety (always recommend consulting healthcare professionals for medical advice)",
            "",
            "Keep responses concise but informative (under 200 words unless detailed explanation requested).",
        ]
    return "\n".join(lines)


_KB_LABELS: dict[Locale, dict[str, str]] = {
    "en": {
        "header": "**Knowledge Base Answer:**",
        "sources": "**Sources:**",
        "note": "*This answer comes from our specialized pharmacy knowledge base.*",
    },
    "bn": {
        "header": "**জ্ঞানভাণ্ডার থেকে উত্তর:**",
        "sources": "**উৎসগুলি:**",
        "note": "*এই উত্তরটি আমাদের বিশেষায়িত ফার্মেসি জ্ঞানভাণ্ডার থেকে এসেছে।*",
    },
}


def format_knowledge_base_answer(answer: str, sources: Iterable[str] = (), locale: Locale = "en") -> str:
    labels = _KB_LABELS[locale]
    parts = [f"{labels['header']}\n\n{answer}"]
    source_list = [s for s in sources if s]
    if source_list:
        parts.append(labels["sources"] + "\n" + "\n".join(f"• {s}" for s in source_list))
    parts.append(labels["note"])
    return "\n\n".join(parts)


# --------------------
# Canned responses
# --------------------

_RATE_LIMITED: dict[Locale, str] = {
    "en": (
        "**AI Service Temporarily Busy**\n\n"
        "Our AI service is experiencing high usage right now. Please wait a moment before trying again.\n\n"
        "**Still Available:**\n"
        "- Basic medicine safety guidelines\n"
        "- Inventory management tips\n"
        "- Business optimization advice\n"
        "- Pharmacy best practices\n\n"
        "**For Medical Questions:** Please consult healthcare professionals or reliable medical references.\n\n"
        "**Try Again:** Wait 2-3 minutes and try again. The service should be available shortly."
    ),
    "bn": (
        "**AI সার্ভিস সাময়িক ব্যস্ত**\n\n"
        "আমাদের AI সেবা এখন অনেক বেশি ব্যবহার হচ্ছে। অনুগ্রহ করে কিছুক্ষণ অপেক্ষা করুন।\n\n"
        "**এখনও সাহায্য করতে পারি:**\n"
        "- মৌলিক ওষুধ নিরাপত্তা গাইড\n"
        "- ইনভেন্টরি ব্যবস্থাপনা টিপস\n"
        "- ব্যবসায়িক অপ্টিমাইজেশন পরামর্শ\n"
        "- ফার্মেসি সর্বোত্তম অনুশীলন\n\n"
        "**চিকিৎসা প্রশ্নের জন্য:** স্বাস্থ্যসেবা পেশাদার বা নির্ভরযোগ্য চিকিৎসা রেফারেন্স পরামর্শ নিন।\n\n"
        "**আবার চেষ্টা করুন:** ২-৩ মিনিট পর আবার চেষ্টা করুন!"
    ),
}

_GREETING: dict[Locale, str] = {
    "en": (
        "Hello! I'm MediBot, your AI pharmacy assistant.\n\n"
        "I can help you with:\n"
        "- Medicine information & interactions\n"
        "- Business analytics & insights\n"
        "- Inventory management\n"
        "- Sales optimization\n"
        "- Customer service\n"
        "- Growth strategies\n\n"
        "What would you like to discuss today?"
    ),
    "bn": (
        "নমস্কার! আমি MediBot, আপনার AI ফার্মেসি সহায়ক।\n\n"
        "আমি সাহায্য করতে পারি:\n"
        "- ওষুধের তথ্য ও মিথস্ক্রিয়া\n"
        "- ব্যবসায়িক বিশ্লেষণ\n"
        "- ইনভেন্টরি ব্যবস্থাপনা\n"
        "- বিক্রয় অপ্টিমাইজেশন\n\n"
        "আজ কী নিয়ে আলোচনা করতে চান?"
    ),
}

_INVENTORY: dict[Locale, str] = {
    "en": (
        "**Inventory Management Tips:**\n\n"
        "- Monitor low stock alerts ({low_stock} items need attention)\n"
        "- Set up automatic reorder points\n"
        "- Track fast vs slow-moving medicines\n"
        "- Regular stock audits prevent losses\n"
        "- Consider seasonal demand patterns\n"
        "- Use ABC analysis for prioritization\n\n"
        "Need help with specific inventory challenges? Just ask!"
    ),
    "bn": (
        "**ইনভেন্টরি ব্যবস্থাপনা টিপস:**\n\n"
        "- কম স্টক সতর্কতা দেখুন ({low_stock}টি পণ্যে মনোযোগ প্রয়োজন)\n"
        "- স্বয়ংক্রিয় পুনঃঅর্ডার পয়েন্ট নির্ধারণ করুন\n"
        "- দ্রুত ও ধীরে বিক্রি হওয়া ওষুধ আলাদা করে ট্র্যাক করুন\n"
        "- নিয়মিত স্টক অডিট ক্ষতি কমায়\n"
        "- মৌসুমি চাহিদার ধরন বিবেচনা করুন\n"
        "- অগ্রাধিকারের জন্য ABC বিশ্লেষণ ব্যবহার করুন\n\n"
        "নির্দিষ্ট ইনভেন্টরি সমস্যায় সাহায্য লাগলে জিজ্ঞাসা করুন!"
    ),
}

_SEVERAL: dict[Locale, str] = {"en": "several", "bn": "কয়েক"}

_PARACETAMOL: dict[Locale, str] = {
    "en": (
        "**Paracetamol (Napa) - Basic Information**\n\n"
        "**Uses:**\n- Fever reduction\n- Mild to moderate pain relief\n- Headache, body ache\n\n"
        "**Safe Dosage:**\n- Adults: 500mg-1000mg every 4-6 hours\n- Maximum: 4000mg per day\n"
        "- Children: 10-15mg/kg per dose\n\n"
        "**Precautions:**\n- Avoid with liver disease\n- Don't exceed daily maximum\n"
        "- Check other medicines for paracetamol content\n\n"
        "**Important:** This is basic information only. Always consult healthcare professionals for proper "
        "medical advice. AI services are temporarily unavailable for detailed analysis."
    ),
    "bn": (
        "**প্যারাসিটামল (নাপা) - মৌলিক তথ্য**\n\n"
        "**ব্যবহার:**\n- জ্বর কমানো\n- হালকা থেকে মাঝারি ব্যথা উপশম\n- মাথাব্যথা, শরীর ব্যথা\n\n"
        "**নিরাপদ মাত্রা:**\n- প্রাপ্তবয়স্ক: প্রতি ৪-৬ ঘণ্টায় 500mg-1000mg\n- সর্বোচ্চ: দিনে 4000mg\n"
        "- শিশু: প্রতি ডোজে 10-15mg/kg\n\n"
        "**সতর্কতা:**\n- লিভারের রোগে এড়িয়ে চলুন\n- দৈনিক সর্বোচ্চ মাত্রা অতিক্রম করবেন না\n"
        "- অন্য ওষুধে প্যারাসিটামল আছে কিনা দেখুন\n\n"
        "**গুরুত্বপূর্ণ:** এটি শুধু মৌলিক তথ্য। সঠিক চিকিৎসা পরামর্শের জন্য সর্বদা স্বাস্থ্যসেবা পেশাদারের "
        "পরামর্শ নিন। বিস্তারিত বিশ্লেষণের জন্য AI সেবা সাময়িকভাবে অনুপলব্ধ।"
    ),
}

_MEDICAL: dict[Locale, str] = {
    "en": (
        "**Medical Information Request**\n\n"
        "**AI services temporarily unavailable**\n\n"
        "For medical questions, please:\n"
        "- Consult qualified healthcare professionals\n"
        "- Refer to official medicine guides\n"
        "- Contact your local pharmacist\n"
        "- Use reliable medical references\n\n"
        "**Basic Safety Reminders:**\n"
        "- Always check medicine expiry dates\n"
        "- Follow prescribed dosages exactly\n"
        "- Be aware of drug interactions\n"
        "- Report adverse reactions immediately\n\n"
        "**For business questions, I can still help with inventory, sales optimization, and pharmacy management!**"
    ),
    "bn": (
        "**চিকিৎসা তথ্যের অনুরোধ**\n\n"
        "**AI সেবা সাময়িকভাবে অনুপলব্ধ**\n\n"
        "চিকিৎসা প্রশ্নের জন্য অনুগ্রহ করে:\n"
        "- যোগ্য স্বাস্থ্যসেবা পেশাদারের পরামর্শ নিন\n"
        "- সরকারি ওষুধ নির্দেশিকা দেখুন\n"
        "- আপনার স্থানীয় ফার্মাসিস্টের সাথে যোগাযোগ করুন\n"
        "- নির্ভরযোগ্য চিকিৎসা রেফারেন্স ব্যবহার করুন\n\n"
        "**মৌলিক নিরাপত্তা মনে রাখুন:**\n"
        "- ওষুধের মেয়াদ সবসময় যাচাই করুন\n"
        "- নির্ধারিত মাত্রা ঠিকমতো মেনে চলুন\n"
        "- ওষুধের মিথস্ক্রিয়া সম্পর্কে সচেতন থাকুন\n"
        "- পার্শ্বপ্রতিক্রিয়া হলে দ্রুত জানান\n\n"
        "**ব্যবসায়িক প্রশ্নে, ইনভেন্টরি, বিক্রয় ও ফার্মেসি ব্যবস্থাপনায় এখনও সাহায্য করতে পারি!**"
    ),
}

_UNAVAILABLE: dict[Locale, str] = {
    "en": (
        "**AI Services Temporarily Unavailable**\n\n"
        "I'm experiencing connection issues, but I'm still here to help!\n\n"
        "**Available Options:**\n"
        "- Basic medicine safety guidelines\n"
        "- Inventory management tips\n"
        "- Business optimization advice\n"
        "- Pharmacy best practices\n\n"
        "**For Medical Questions:**\nPlease consult healthcare professionals or reliable medical references.\n\n"
        "**Try Again:** The connection should be restored shortly. Feel free to ask again!"
    ),
    "bn": (
        "**AI সেবা সাময়িকভাবে অনুপলব্ধ**\n\n"
        "সংযোগে সমস্যা হচ্ছে, তবে আমি এখনও সাহায্য করতে পারি!\n\n"
        "**উপলব্ধ বিকল্প:**\n"
        "- মৌলিক ওষুধ নিরাপত্তা গাইড\n"
        "- ইনভেন্টরি ব্যবস্থাপনা টিপস\n"
        "- ব্যবসায়িক অপ্টিমাইজেশন পরামর্শ\n\n"
        "**চিকিৎসা প্রশ্নের জন্য:** স্বাস্থ্যসেবা পেশাদারের পরামর্শ নিন।\n\n"
        "**আবার চেষ্টা করুন:** কিছুক্ষণ পর আবার জিজ্ঞাসা করুন।"
    ),
}


_GREETING_WORDS = {"hello", "hi", "hey", "start"}
_BN_GREETINGS = ("নমস্কার", "হ্যালো", "আসসালামু আলাইকুম")
_INVENTORY_PHRASES = ("stock", "inventory", "স্টক", "ইনভেন্টরি", "মজুদ")
_PARACETAMOL_PHRASES = ("paracetamol", "napa", "প্যারাসিটামল", "নাপা")
_MEDICAL_PHRASES = ("medicine", "drug", "dosage", "side effect", "ওষুধ", "মাত্রা", "পার্শ্বপ্রতিক্রিয়া")


def fallback_response(
    user_message: str,
    context: PharmacyContext | None = None,
    locale: Locale = "en",
    *,
    rate_limited: bool = False,
) -> str:
    if rate_limited:
        return _RATE_LIMITED[locale]

    low = (user_message or "").lower()
    tokens = set(re.findall(r"\w+", low))
    if tokens & _GREETING_WORDS or any(g in user_message for g in _BN_GREETINGS):
        return _GREETING[locale]
    if any(phrase in low for phrase in _INVENTORY_PHRASES):
        low_stock = context.low_stock_count if context and context.low_stock_count is not None else _SEVERAL[locale]
        return _INVENTORY[locale].format(low_stock=low_stock)
    if any(phrase in low for phrase in _PARACETAMOL_PHRASES):
        return _PARACETAMOL[locale]
    if any(phrase in low for phrase in _MEDICAL_PHRASES):
        return _MEDICAL[locale]
    return _UNAVAILABLE[locale]
