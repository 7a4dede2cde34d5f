from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class ChatTurn(Base):
    __tablename__ = "chat_turns"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # "direct:<user>" or "group:<group>:<user>"; every read filters on it
    scope_key: Mapped[str] = mapped_column(String(1024))
    scope_kind: Mapped[str] = mapped_column(String(16))  # "direct" | "group"
    group_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    user_id: Mapped[str] = mapped_column(String(128))

    role: Mapped[str] = mapped_column(String(16))  # "user" | "assistant"
    content: Mapped[str] = mapped_column(Text)
    meta: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("ix_chat_turns_scope_id", "scope_key", "id"),)


class ChatUser(Base):
    __tablename__ = "chat_users"
    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_interaction_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class ChatGroup(Base):
    __tablename__ = "chat_groups"
    group_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_active_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
