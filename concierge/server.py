import logging
import re
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from concierge.booking.engine import BookingFlowEngine
from concierge.booking.store import ConversationStateStore
from concierge.chat import ChatService
from concierge.config import Settings
from concierge.db import init_db, make_engine, make_session_factory
from concierge.graph.graph import build_graph
from concierge.llm.responder import LLMResponder
from concierge.markup import convert_markup_to_html
from concierge.memory.repository import SqlTurnRepository
from concierge.memory.window import ContextWindowManager
from concierge.providers.masterdiskon import MasterdiskonProvider
from concierge.scope import Direct, Grouped, scope_for

logger = logging.getLogger(__name__)

MAX_HISTORY = 1000
MENTION_TOKENS = ("@bot", "@assistant")
MENTION_PATTERN = re.compile(r"@(\d+|bot|assistant)\b", re.IGNORECASE)


class RateLimiter:
    """Minimum interval between two messages from the same sender."""

    def __init__(self, interval_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._last: dict[str, float] = {}
        self._lock = threading.Lock()

    def is_limited(self, sender: str) -> bool:
        if self.interval_seconds <= 0:
            return False
        now = self._clock()
        with self._lock:
            last = self._last.get(sender)
            if last is not None and now - last < self.interval_seconds:
                return True
            # drop stamps older than the interval
            self._last = {k: t for k, t in self._last.items() if now - t < self.interval_seconds}
            self._last[sender] = now
            return False

    def __len__(self) -> int:
        with self._lock:
            return len(self._last)


def is_addressed(text: str, mentioned: bool = False) -> bool:
    if mentioned:
        return True
    low = (text or "").lower()
    return any(tok in low for tok in MENTION_TOKENS)


def strip_mentions(text: str) -> str:
    return re.sub(r"\s{2,}", " ", MENTION_PATTERN.sub("", text or "")).strip()


def build_service(settings: Settings) -> ChatService:
    engine_db = make_engine(settings.database_url)
    init_db(engine_db)
    memory = ContextWindowManager(
        SqlTurnRepository(make_session_factory(engine_db)),
        default_limit=settings.chat_history_limit,
    )
    booking = BookingFlowEngine(
        store=ConversationStateStore(ttl_seconds=settings.booking_ttl_seconds),
        provider=MasterdiskonProvider(settings.hotel_api_base, timeout=settings.http_timeout),
        support_phone=settings.support_phone,
        support_email=settings.support_email,
    )
    graph = build_graph(booking, memory, LLMResponder(settings))
    return ChatService(graph, booking, memory)


def _error(message: str, status: int):
    return jsonify({"success": False, "error": message}), status


def _required_str(body: dict, *names: str) -> Optional[str]:
    for name in names:
        value = body.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _optional_str(body: dict, name: str) -> Optional[str]:
    value = body.get(name)
    return value.strip() if isinstance(value, str) and value.strip() else None


def _reply_payload(user_message: str, reply) -> dict:
    data = {
        "user_message": user_message,
        "bot_response": reply.text,
        "bot_response_html": convert_markup_to_html(reply.text),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if reply.structured_result is not None:
        data["api_response"] = reply.structured_result
    return data


def create_app(settings: Optional[Settings] = None, service: Optional[ChatService] = None,
               rate_limiter: Optional[RateLimiter] = None) -> Flask:
    settings = settings or Settings.from_env()
    service = service or build_service(settings)
    limiter = rate_limiter or RateLimiter(settings.rate_limit_seconds)

    app = Flask(__name__)

    @app.get("/api/health")
    def health():
        return jsonify({
            "success": True,
            "message": "Chat API is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    @app.post("/api/chat/send")
    def chat_send():
        body = request.get_json(silent=True) or {}
        user_id = _required_str(body, "user_id", "email")
        if not user_id:
            return _error("user_id is required", 400)
        message = _required_str(body, "message")
        if not message:
            return _error("message is required and must be a non-empty string", 400)

        user_id = user_id.lower()
        scope = Direct(user_id)
        if limiter.is_limited(scope.key):
            return _error("Too many messages, please slow down", 429)

        name = _optional_str(body, "name")
        reply = service.handle_message(scope, name or user_id, message)
        return jsonify({"success": True, "data": _reply_payload(message, reply)})

    @app.post("/api/group/send")
    def group_send():
        body = request.get_json(silent=True) or {}
        group_id = _required_str(body, "group_id")
        user_id = _required_str(body, "user_id")
        message = _required_str(body, "message")
        if not group_id or not user_id:
            return _error("group_id and user_id are required", 400)
        if not message:
            return _error("message is required and must be a non-empty string", 400)

        if not is_addressed(message, bool(body.get("mentioned"))):
            return jsonify({"success": True, "data": {"ignored": True}})

        scope = Grouped(group_id=group_id, user_id=user_id)
        if limiter.is_limited(scope.key):
            return _error("Too many messages, please slow down", 429)

        clean = strip_mentions(message)
        if not clean:
            return _error("message is empty after removing mentions", 400)

        reply = service.handle_message(
            scope,
            _optional_str(body, "name") or user_id,
            clean,
            group_name=_optional_str(body, "group_name"),
        )
        data = _reply_payload(clean, reply)
        data["ignored"] = False
        return jsonify({"success": True, "data": data})

    @app.get("/api/chat/history")
    def chat_history():
        user_id = _required_str(request.args, "user_id", "email")
        if not user_id:
            return _error("user_id is required as query parameter", 400)
        try:
            limit = min(int(request.args.get("limit", MAX_HISTORY)), MAX_HISTORY)
        except ValueError:
            return _error("limit must be an integer", 400)
        if limit < 1:
            return _error("limit must be at least 1", 400)

        group_id = _required_str(request.args, "group_id")
        scope = scope_for(user_id if group_id else user_id.lower(), group_id)
        turns = service.history(scope, limit)
        return jsonify({
            "success": True,
            "data": {
                "user_id": scope.user_id,
                "group_id": group_id,
                "history": [
                    {
                        "role": t.role,
                        "message": t.text,
                        "message_html": convert_markup_to_html(t.text),
                        "created_at": t.occurred_at.isoformat() if t.occurred_at else None,
                    }
                    for t in turns
                ],
                "total": len(turns),
            },
        })

    @app.post("/api/chat/reset")
    def chat_reset():
        body = request.get_json(silent=True) or {}
        user_id = _required_str(body, "user_id", "email")
        if not user_id:
            return _error("user_id is required", 400)
        group_id = _required_str(body, "group_id")
        scope = scope_for(user_id if group_id else user_id.lower(), group_id)
        service.reset(scope)
        return jsonify({"success": True, "message": f"Conversation state cleared for {scope.key}"})

    @app.errorhandler(404)
    def not_found(_e):
        return _error("Endpoint not found", 404)

    @app.errorhandler(Exception)
    def unhandled(e):
        if isinstance(e, HTTPException):
            return _error(e.description or e.name, e.code)
        logger.exception("Unhandled error")
        return _error("Internal server error", 500)

    return app


if __name__ == "__main__":
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app(settings)
    app.run(host="0.0.0.0", port=settings.api_port)
