from typing import Any, Optional, TypedDict

from concierge.memory.repository import ConversationTurn
from concierge.scope import ConversationScope


class ChatState(TypedDict, total=False):
    scope: ConversationScope
    display_name: Optional[str]
    group_name: Optional[str]
    user_input: str

    # set by the booking node
    handled_by_booking: bool

    # short-term memory for the LLM node
    window: list[ConversationTurn]

    # outputs
    reply: str
    structured_result: Optional[dict[str, Any]]
    trace: list[dict]
