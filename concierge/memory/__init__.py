from concierge.memory.repository import ConversationTurn, SqlTurnRepository, TurnRepository
from concierge.memory.window import ContextWindowManager

__all__ = ["ContextWindowManager", "ConversationTurn", "SqlTurnRepository", "TurnRepository"]
