"""
Conversation scopes.

A scope is the isolation key for both booking state and chat memory. A user's
private chat and each group they talk in are separate lanes.
"""
from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import quote


def _part(value: str) -> str:
    # ids come from callers; escape ":" and "%" so the joined key is unambiguous
    return quote(value, safe="")


@dataclass(frozen=True)
class Direct:
    user_id: str

    kind = "direct"

    @property
    def group_id(self) -> Optional[str]:
        return None

    @property
    def key(self) -> str:
        return f"direct:{_part(self.user_id)}"


@dataclass(frozen=True)
class Grouped:
    group_id: str
    user_id: str

    kind = "group"

    @property
    def key(self) -> str:
        return f"group:{_part(self.group_id)}:{_part(self.user_id)}"


ConversationScope = Union[Direct, Grouped]


def scope_for(user_id: str, group_id: Optional[str] = None) -> ConversationScope:
    if group_id:
        return Grouped(group_id=group_id, user_id=user_id)
    return Direct(user_id=user_id)
