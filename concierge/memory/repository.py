from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from concierge.models import ChatGroup, ChatTurn, ChatUser
from concierge.scope import ConversationScope

ROLES = ("user", "assistant")


@dataclass(frozen=True)
class ConversationTurn:
    role: str
    text: str
    occurred_at: datetime
    meta: dict = field(default_factory=dict)


def _to_turn(row: ChatTurn) -> ConversationTurn:
    return ConversationTurn(role=row.role, text=row.content, occurred_at=row.created_at, meta=dict(row.meta or {}))


class TurnRepository(ABC):
    @abstractmethod
    def append(self, scope: ConversationScope, role: str, text: str, meta: Optional[dict] = None) -> ConversationTurn:
        ...

    @abstractmethod
    def last_n(self, scope: ConversationScope, n: int) -> list[ConversationTurn]:
        """Most recent ``n`` turns, oldest first."""

    @abstractmethod
    def all(self, scope: ConversationScope) -> list[ConversationTurn]:
        ...

    @abstractmethod
    def touch_user(self, user_id: str, display_name: Optional[str] = None) -> None:
        ...

    @abstractmethod
    def touch_group(self, group_id: str, name: Optional[str] = None) -> None:
        ...


class SqlTurnRepository(TurnRepository):
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def append(self, scope, role, text, meta=None):
        db = self._session_factory()
        try:
            row = ChatTurn(
                scope_key=scope.key,
                scope_kind=scope.kind,
                group_id=scope.group_id,
                user_id=scope.user_id,
                role=role,
                content=text,
                meta=meta or {},
                created_at=datetime.now(timezone.utc),
            )
            db.add(row)
            db.commit()
            return _to_turn(row)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def last_n(self, scope, n):
        db = self._session_factory()
        try:
            rows = db.scalars(
                select(ChatTurn)
                .where(ChatTurn.scope_key == scope.key)
                .order_by(ChatTurn.id.desc())
                .limit(n)
            ).all()
            return [_to_turn(r) for r in reversed(rows)]
        finally:
            db.close()

    def all(self, scope):
        db = self._session_factory()
        try:
            rows = db.scalars(
                select(ChatTurn).where(ChatTurn.scope_key == scope.key).order_by(ChatTurn.id.asc())
            ).all()
            return [_to_turn(r) for r in rows]
        finally:
            db.close()

    def touch_user(self, user_id, display_name=None):
        db = self._session_factory()
        try:
            user = db.get(ChatUser, user_id)
            if not user:
                user = ChatUser(user_id=user_id)
                db.add(user)
            if display_name:
                user.display_name = display_name
            user.last_interaction_at = datetime.now(timezone.utc)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def touch_group(self, group_id, name=None):
        db = self._session_factory()
        try:
            group = db.get(ChatGroup, group_id)
            if not group:
                group = ChatGroup(group_id=group_id)
                db.add(group)
            if name:
                group.name = name
            group.last_active_at = datetime.now(timezone.utc)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
