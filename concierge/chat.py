import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from concierge.booking.engine import BookingFlowEngine
from concierge.memory.window import ContextWindowManager
from concierge.scope import ConversationScope, Grouped

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatReply:
    text: str
    structured_result: Optional[dict] = None
    handled_by_booking: bool = False


class ScopeLocks:
    """
    One lock per scope key: same-scope messages run one at a time, others in parallel.

    An entry lives only while some thread holds or waits on it.
    """

    def __init__(self):
        self._guard = threading.Lock()
        # key -> [lock, holders and waiters]
        self._locks: dict[str, list] = {}

    @contextmanager
    def hold(self, scope: ConversationScope):
        with self._guard:
            entry = self._locks.setdefault(scope.key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[scope.key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class ChatService:
    def __init__(self, graph, engine: BookingFlowEngine, memory: ContextWindowManager):
        self.graph = graph
        self.engine = engine
        self.memory = memory
        self.locks = ScopeLocks()

    def _register(self, scope: ConversationScope, display_name: Optional[str], group_name: Optional[str]):
        try:
            self.memory.repository.touch_user(scope.user_id, display_name)
            if isinstance(scope, Grouped):
                self.memory.repository.touch_group(scope.group_id, group_name)
        except SQLAlchemyError:
            logger.warning("Could not update participant registry for %s", scope.key, exc_info=True)

    def handle_message(self, scope: ConversationScope, display_name: Optional[str], text: str,
                       group_name: Optional[str] = None) -> ChatReply:
        with self.locks.hold(scope):
            self._register(scope, display_name, group_name)
            out = self.graph.invoke({
                "scope": scope,
                "display_name": display_name,
                "group_name": group_name,
                "user_input": text,
            })
            logger.info(
                "Replied to %s (booking flow: %s)", scope.key, bool(out.get("handled_by_booking"))
            )
            return ChatReply(
                text=out.get("reply", "") or "",
                structured_result=out.get("structured_result"),
                handled_by_booking=bool(out.get("handled_by_booking")),
            )

    def history(self, scope: ConversationScope, limit: Optional[int] = None):
        return self.memory.get_history(scope, limit)

    def reset(self, scope: ConversationScope) -> None:
        with self.locks.hold(scope):
            self.engine.store.clear(scope)
            logger.info("Booking state cleared for %s", scope.key)
