"""
Rule-based intent detection for the booking flow.

Keyword sets cover English and Indonesian phrasing. Everything here is a pure
function of the message text; RuleBasedClassifier bundles them behind a single
classify() call so the engine can be given a different rule set.
"""
import re
from dataclasses import dataclass
from typing import Optional

CANCEL_KEYWORDS = (
    "cancel", "stop", "reset", "exit", "quit", "start over",
    "batal", "batalkan", "keluar", "ulang", "mulai lagi",
)

BOOKING_KEYWORDS = (
    "hotel", "stay", "staycation", "lodging", "accommodation", "resort", "villa",
    "guesthouse", "homestay", "hostel", "apartment", "booking",
    "check in", "checkin", "check-in",
    "menginap", "nginep", "inap", "bermalam", "penginapan", "akomodasi", "apartemen",
    "pesan hotel", "cari hotel",
)

TRAVEL_VERBS = (
    "want", "need", "looking for", "find", "search", "book",
    "ingin", "mau", "butuh", "cari", "carikan", "perlu",
)

GENERAL_PATTERNS = [
    re.compile(r"^(what|who|when|where|why|how|which)\b"),
    re.compile(r"^(siapa|apa|kapan|dimana|di mana|kenapa|mengapa|bagaimana|berapa)\b"),
    re.compile(r"\b(you|kamu)\s+(who|what|can|do|have|know|siapa|apa|bisa|ada|punya|tau|tahu|ngapain)\b"),
    re.compile(r"\bapa itu\b"),
    re.compile(r"\b(help|tolong|bantuan)\b"),
    re.compile(r"\b(hi|hello|hey|halo|hai|hei)\b"),
    re.compile(r"\b(thanks|thank you|terima kasih|makasih)\b"),
]

CAPABILITY_PHRASES = (
    "what can you do", "what do you do", "who are you",
    "bisa apa", "bisa ngapain", "bisa bantu apa", "fungsi", "kegunaan", "manfaat",
)

PREPOSITIONS = r"in|to|at|near|around|area|city|region|di|ke|daerah|kota|wilayah|sekitar"

# lookahead so overlapping matches are all seen: "want to stay in Bali"
LOCATION_PATTERN = re.compile(rf"(?=\b(?:{PREPOSITIONS})\s+([a-zA-Z][a-zA-Z\s\-']*))", re.IGNORECASE)

# a travel verb alone is not enough: "I need to write an email to my boss"
TRIGGER_PREPOSITIONS = r"in|at|near|around|area|city|region|di|ke|daerah|kota|wilayah|sekitar"
HAS_LOCATION_PATTERN = re.compile(rf"\b(?:{TRIGGER_PREPOSITIONS})\s+[a-zA-Z]", re.IGNORECASE)
PLACE_NOUN_PATTERN = re.compile(r"\b(place|room|rooms|somewhere|bed|tempat|kamar)\b", re.IGNORECASE)

LEADING_SKIP = {
    "a", "an", "the", "stay", "staying", "find", "book", "go", "going", "visit", "visiting",
    "hotel", "hotels", "area", "city", "region", "daerah", "kota", "wilayah", "sekitar",
    "menginap", "nginep", "cari", "carikan",
}

PHRASE_STOP = {
    "for", "with", "under", "below", "budget", "from", "on", "at", "near", "around", "in", "to",
    "and", "max", "maximum", "please", "tomorrow", "today", "next", "this", "tonight",
    "untuk", "dengan", "dibawah", "maksimal", "maks", "mulai", "tanggal", "dan", "besok",
    "hari", "lusa", "budgetnya",
}

FALLBACK_STOP = {
    "hotel", "hotels", "menginap", "nginep", "booking", "book", "pesan", "cari", "carikan",
    "di", "ke", "saya", "mau", "ingin", "bisa", "i", "want", "need", "a", "an", "the",
    "stay", "room", "rooms", "find", "please", "me", "to", "in", "for", "some", "looking",
}

MAX_LOCATION_WORDS = 4

THOUSANDS_PATTERN = re.compile(r"(\d+)\s*(ribu|rb|k)\b")
MILLIONS_PATTERN = re.compile(r"(\d+(?:[.,]\d+)?)\s*(juta|jt|million|mio|m)\b")
DIRECT_PATTERN = re.compile(r"(\d{1,3}(?:[.,]\d{3})+|\d{5,})")

MIN_DIRECT_BUDGET = 50_000

AFFIRMATIVE = {"ya", "yes", "iya", "betul", "benar", "y", "yeah", "yep", "sure", "ok", "okay", "correct"}
NEGATIVE = {"tidak", "no", "bukan", "nope", "n", "nah", "nggak", "gak", "salah"}
SKIP = {"skip", "lewati"}


def _normalize(text: str) -> str:
    return (text or "").strip().lower()


def _reply_token(text: str) -> str:
    """Lowercased reply with surrounding punctuation removed: 'Yes!' -> 'yes'."""
    return re.sub(r"[^\w\s-]", "", _normalize(text)).strip()


def is_cancel_intent(text: str) -> bool:
    low = _normalize(text)
    return any(k in low for k in CANCEL_KEYWORDS)


def is_general_question(text: str) -> bool:
    low = _normalize(text)
    if any(p.search(low) for p in GENERAL_PATTERNS):
        return True
    return any(q in low for q in CAPABILITY_PHRASES)


def is_booking_trigger(text: str) -> bool:
    low = _normalize(text)
    if any(k in low for k in BOOKING_KEYWORDS):
        return True
    return (
        bool(HAS_LOCATION_PATTERN.search(text or ""))
        and bool(PLACE_NOUN_PATTERN.search(low))
        and any(v in low for v in TRAVEL_VERBS)
    )


def extract_budget(text: str) -> Optional[int]:
    """
    Budget per night in IDR from free text.

    "500rb"/"500k" -> 500000, "1.5jt"/"1,5 juta" -> 1500000, "750000" -> 750000.
    Plain numbers below 50,000 are ignored so short numbers are not mistaken
    for money.
    """
    low = _normalize(text)

    m = THOUSANDS_PATTERN.search(low)
    if m:
        return int(m.group(1)) * 1000

    m = MILLIONS_PATTERN.search(low)
    if m:
        return int(round(float(m.group(1).replace(",", ".")) * 1_000_000))

    m = DIRECT_PATTERN.search(low)
    if m:
        amount = int(re.sub(r"[.,]", "", m.group(1)))
        if amount >= MIN_DIRECT_BUDGET:
            return amount
    return None


def _pick_phrase(raw: str) -> Optional[str]:
    tokens = re.findall(r"[A-Za-z][A-Za-z\-']*", raw)
    picked: list[str] = []
    for t in tokens:
        tl = t.lower()
        if not picked and tl in LEADING_SKIP:
            continue
        if tl in PHRASE_STOP:
            break
        picked.append(t)
        if len(picked) >= MAX_LOCATION_WORDS:
            break
    return " ".join(picked) or None


def extract_location_phrase(text: str) -> Optional[str]:
    for m in LOCATION_PATTERN.finditer(text or ""):
        phrase = _pick_phrase(m.group(1))
        if phrase:
            return phrase

    words = [w for w in re.findall(r"[A-Za-z][A-Za-z\-']*", text or "") if w.lower() not in FALLBACK_STOP]
    return words[-1] if words else None


def is_affirmative(text: str) -> bool:
    return _reply_token(text) in AFFIRMATIVE


def is_negative(text: str) -> bool:
    return _reply_token(text) in NEGATIVE


def is_skip(text: str) -> bool:
    token = _reply_token(text)
    return token in SKIP or token in NEGATIVE


@dataclass(frozen=True)
class IntentSignal:
    cancel: bool = False
    general_question: bool = False
    booking_trigger: bool = False
    affirmative: bool = False
    negative: bool = False
    skip: bool = False
    budget: Optional[int] = None
    location_phrase: Optional[str] = None


class RuleBasedClassifier:
    def classify(self, text: str) -> IntentSignal:
        return IntentSignal(
            cancel=is_cancel_intent(text),
            general_question=is_general_question(text),
            booking_trigger=is_booking_trigger(text),
            affirmative=is_affirmative(text),
            negative=is_negative(text),
            skip=is_skip(text),
            budget=extract_budget(text),
            location_phrase=extract_location_phrase(text),
        )
