import logging
from typing import Optional

from concierge.memory.repository import ROLES, ConversationTurn, TurnRepository
from concierge.scope import ConversationScope

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 10


class ContextWindowManager:
    """
    Short-term memory for the LLM.

    Every turn is kept in the repository for audit; get_window() only reads the
    most recent few so prompt size stays bounded.
    """

    def __init__(self, repository: TurnRepository, default_limit: int = DEFAULT_WINDOW):
        if default_limit < 1:
            raise ValueError("default_limit must be at least 1")
        self.repository = repository
        self.default_limit = default_limit

    def append_turn(self, scope: ConversationScope, role: str, text: str,
                    meta: Optional[dict] = None) -> ConversationTurn:
        if role not in ROLES:
            raise ValueError(f"role must be one of {ROLES}, got {role!r}")
        turn = self.repository.append(scope, role, text, meta)
        logger.debug("Saved %s turn for %s: %.30s", role, scope.key, text)
        return turn

    def get_window(self, scope: ConversationScope, limit: Optional[int] = None) -> list[ConversationTurn]:
        limit = self.default_limit if limit is None else limit
        if limit < 1:
            raise ValueError("limit must be at least 1")
        return self.repository.last_n(scope, limit)[-limit:]

    def get_history(self, scope: ConversationScope, limit: Optional[int] = None) -> list[ConversationTurn]:
        if limit is None:
            return self.repository.all(scope)
        if limit < 1:
            raise ValueError("limit must be at least 1")
        return self.repository.last_n(scope, limit)
