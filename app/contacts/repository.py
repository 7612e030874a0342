"""Data store access for contact deletion."""
from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Optional, Protocol, cast

from sqlalchemy import Engine, delete, select
from sqlalchemy.engine import CursorResult
from sqlalchemy.sql.dml import Delete

from app.models import (
    Lead,
    UserRole,
    WhatsAppConversation,
    WhatsAppConversationRead,
    WhatsAppMessage,
)

from .models import ConversationTarget


class ContactStore(Protocol):
    """Operations the deletion pipeline issues against the data store.

    Every delete returns the exact number of affected rows.
    """

    def find_role(self, subject: str, roles: Iterable[str]) -> Optional[str]: ...

    def fetch_conversation(self, conversation_id: str) -> Optional[ConversationTarget]: ...

    def delete_messages(self, conversation_id: str) -> int: ...

    def delete_reads(self, conversation_id: str) -> int: ...

    def delete_conversation(self, conversation_id: str) -> int: ...

    def delete_lead(self, lead_id: str) -> int: ...


class SqlAlchemyContactStore:
    """SQLAlchemy implementation of :class:`ContactStore`.

    Each delete runs in its own transaction and is committed before the method
    returns; the store never wraps several deletes in one unit of work.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine

    # Reads -------------------------------------------------------------------
    def find_role(self, subject: str, roles: Iterable[str]) -> Optional[str]:
        stmt = (
            select(UserRole.role)
            .where(UserRole.user_id == subject)
            .where(UserRole.role.in_(sorted(roles)))
            .limit(1)
        )
        with self._engine.connect() as conn:
            return conn.execute(stmt).scalar_one_or_none()

    def fetch_conversation(self, conversation_id: str) -> Optional[ConversationTarget]:
        stmt = select(
            WhatsAppConversation.id,
            WhatsAppConversation.lead_id,
            WhatsAppConversation.phone,
            WhatsAppConversation.whatsapp_id,
        ).where(WhatsAppConversation.id == conversation_id)
        with self._engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        if row is None:
            return None
        return ConversationTarget(**row)

    # Deletes -----------------------------------------------------------------
    def delete_messages(self, conversation_id: str) -> int:
        return self._delete(
            delete(WhatsAppMessage).where(WhatsAppMessage.conversation_id == conversation_id)
        )

    def delete_reads(self, conversation_id: str) -> int:
        return self._delete(
            delete(WhatsAppConversationRead).where(
                WhatsAppConversationRead.conversation_id == conversation_id
            )
        )

    def delete_conversation(self, conversation_id: str) -> int:
        return self._delete(
            delete(WhatsAppConversation).where(WhatsAppConversation.id == conversation_id)
        )

    def delete_lead(self, lead_id: str) -> int:
        return self._delete(delete(Lead).where(Lead.id == lead_id))

    # Helpers -----------------------------------------------------------------
    def _delete(self, stmt: Delete) -> int:
        with self._engine.begin() as conn:
            result = cast(CursorResult[Any], conn.execute(stmt))
            return int(result.rowcount or 0)
