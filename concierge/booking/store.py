import logging
import threading
import time
from typing import Callable, Dict, Optional

from concierge.booking.state import BookingSlots, BookingStep, DialogueState
from concierge.scope import ConversationScope

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60


class ConversationStateStore:
    """
    In-memory booking state keyed by conversation scope.

    Entries idle for longer than ``ttl_seconds`` are dropped the next time they
    are read; there is no background sweeper.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._states: Dict[str, DialogueState] = {}
        self._lock = threading.Lock()

    def _get_locked(self, key: str) -> Optional[DialogueState]:
        state = self._states.get(key)
        if state is None:
            return None
        if self._clock() - state.last_updated_at > self.ttl_seconds:
            del self._states[key]
            logger.info("Booking state expired for %s", key)
            return None
        return state

    def get(self, scope: ConversationScope) -> Optional[DialogueState]:
        with self._lock:
            return self._get_locked(scope.key)

    def set(self, scope: ConversationScope, step: BookingStep, slots: BookingSlots) -> DialogueState:
        with self._lock:
            state = DialogueState(step=step, slots=slots, last_updated_at=self._clock())
            self._states[scope.key] = state
            return state

    def merge(self, scope: ConversationScope, partial_slots: dict) -> Optional[DialogueState]:
        with self._lock:
            state = self._get_locked(scope.key)
            if state is None:
                return None
            merged = DialogueState(
                step=state.step,
                slots=state.slots.with_values(**partial_slots),
                last_updated_at=self._clock(),
            )
            self._states[scope.key] = merged
            return merged

    def clear(self, scope: ConversationScope) -> None:
        with self._lock:
            self._states.pop(scope.key, None)

    def is_active(self, scope: ConversationScope) -> bool:
        return self.get(scope) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)
