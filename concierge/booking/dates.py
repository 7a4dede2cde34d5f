"""
Free-text date parsing for check-in / check-out answers.

Accepted: DD-MM-YYYY, DD/MM/YYYY, "16 november" / "16 nov 2025",
"November 16, 2025", and today / tomorrow / day after tomorrow
(hari ini / besok / lusa).
"""
import re
from datetime import date, datetime, timedelta
from typing import Optional

from dateutil import parser as dtparser

NUMERIC_DATE = re.compile(r"(\d{1,2})[-/](\d{1,2})[-/](\d{4})")
DAY_MONTH = re.compile(r"(\d{1,2})\s+([a-z]+)(?:\s+(\d{4}))?")

MONTHS = {
    "januari": 1, "februari": 2, "maret": 3, "april": 4, "mei": 5, "juni": 6,
    "juli": 7, "agustus": 8, "september": 9, "oktober": 10, "november": 11, "desember": 12,
    "january": 1, "february": 2, "march": 3, "may": 5, "june": 6, "july": 7,
    "august": 8, "october": 10, "december": 12,
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "jun": 6, "jul": 7, "aug": 8, "agu": 8,
    "sep": 9, "sept": 9, "oct": 10, "okt": 10, "nov": 11, "dec": 12, "des": 12,
}

ENGLISH_MONTH = re.compile(
    r"\b(jan(uary)?|feb(ruary)?|mar(ch)?|apr(il)?|june?|july?|aug(ust)?|sept?(ember)?|oct(ober)?|nov(ember)?|dec(ember)?)\b"
)
# "may" is also a verb: only a month when a day number sits next to it
MAY_WITH_DAY = re.compile(r"\bmay\s+\d{1,2}\b|\b\d{1,2}(st|nd|rd|th)?\s+may\b")


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date(text: str, today: Optional[date] = None) -> Optional[date]:
    today = today or date.today()
    low = (text or "").strip().lower()
    if not low:
        return None

    if "lusa" in low or "day after" in low:
        return today + timedelta(days=2)
    if "besok" in low or "tomorrow" in low:
        return today + timedelta(days=1)
    if "hari ini" in low or "today" in low:
        return today

    m = NUMERIC_DATE.search(low)
    if m:
        return _safe_date(int(m.group(3)), int(m.group(2)), int(m.group(1)))

    m = DAY_MONTH.search(low)
    if m and m.group(2) in MONTHS:
        year = int(m.group(3)) if m.group(3) else today.year
        return _safe_date(year, MONTHS[m.group(2)], int(m.group(1)))

    # "November 16, 2025" and friends; require a month name and a day number
    # so bare numbers like a guest count never parse as a date
    if not MAY_WITH_DAY.search(low):
        low = re.sub(r"\bmay\b", " ", low)
    if (ENGLISH_MONTH.search(low) or MAY_WITH_DAY.search(low)) and re.search(r"\d", low):
        try:
            return dtparser.parse(low, fuzzy=True, dayfirst=True,
                                  default=datetime(today.year, today.month, 1)).date()
        except (ValueError, OverflowError):
            return None
    return None


def format_date(d: date) -> str:
    return d.strftime("%d %b %Y")
