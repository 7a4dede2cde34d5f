import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///concierge.db"

    # how many past turns are handed to the LLM per scope
    chat_history_limit: int = 10

    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4.1-mini"
    llm_max_tokens: int = 500
    llm_temperature: float = 0.7

    hotel_api_base: str = "https://api.masterdiskon.com/v1"
    http_timeout: float = 15.0

    booking_ttl_seconds: int = 300
    rate_limit_seconds: float = 2.0

    support_phone: Optional[str] = None
    support_email: Optional[str] = None

    api_port: int = 3000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            chat_history_limit=_int_env("CHAT_HISTORY_LIMIT", cls.chat_history_limit),
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("OPENAI_MODEL", cls.openai_model),
            llm_max_tokens=_int_env("LLM_MAX_TOKENS", cls.llm_max_tokens),
            llm_temperature=_float_env("LLM_TEMPERATURE", cls.llm_temperature),
            hotel_api_base=os.getenv("HOTEL_API_BASE", cls.hotel_api_base),
            http_timeout=_float_env("HTTP_TIMEOUT", cls.http_timeout),
            booking_ttl_seconds=_int_env("BOOKING_TTL_SECONDS", cls.booking_ttl_seconds),
            rate_limit_seconds=_float_env("RATE_LIMIT_SECONDS", cls.rate_limit_seconds),
            support_phone=os.getenv("SUPPORT_PHONE") or None,
            support_email=os.getenv("SUPPORT_EMAIL") or None,
            api_port=_int_env("API_PORT", cls.api_port),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )
