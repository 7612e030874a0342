"""WhatsApp inbox models.

Messages and read markers reference their conversation without ``ON DELETE``
actions, so they have to be removed before the conversation row. The
conversation's link to a lead is nulled if the lead disappears first.
"""

from __future__ import annotations

import datetime as dt

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from . import Base, new_id, utcnow


class WhatsAppConversation(Base):
    """A WhatsApp thread with one external contact.

    Attributes:
        id: Opaque identifier.
        lead_id: Optional link to the CRM lead for this contact.
        phone: Contact phone number, kept for diagnostics.
        whatsapp_id: Identifier of the contact on the WhatsApp side.
    """

    __tablename__ = "whatsapp_conversations"
    __table_args__ = (Index("ix_whatsapp_conversations_lead_id", "lead_id"),)

    id: Mapped[str] = mapped_column(String(length=64), primary_key=True, default=new_id)
    lead_id: Mapped[str | None] = mapped_column(
        String(length=64),
        ForeignKey("leads.id", ondelete="SET NULL"),
        nullable=True,
    )
    phone: Mapped[str | None] = mapped_column(String(length=32), nullable=True)
    whatsapp_id: Mapped[str | None] = mapped_column(String(length=64), nullable=True)
    contact_name: Mapped[str | None] = mapped_column(String(length=255), nullable=True)
    last_message_at: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class WhatsAppMessage(Base):
    """A single inbound or outbound message of a conversation."""

    __tablename__ = "whatsapp_messages"
    __table_args__ = (
        Index("ix_whatsapp_messages_conversation_id", "conversation_id"),
    )

    id: Mapped[str] = mapped_column(String(length=64), primary_key=True, default=new_id)
    conversation_id: Mapped[str] = mapped_column(
        String(length=64),
        ForeignKey("whatsapp_conversations.id"),
        nullable=False,
    )
    direction: Mapped[str] = mapped_column(String(length=16), nullable=False, default="inbound")
    body: Mapped[str | None] = mapped_column(Text(), nullable=True)
    sent_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class WhatsAppConversationRead(Base):
    """Read cursor of one user within a conversation."""

    __tablename__ = "whatsapp_conversation_reads"
    __table_args__ = (
        Index(
            "ix_whatsapp_conversation_reads_unique",
            "conversation_id",
            "user_id",
            unique=True,
        ),
    )

    id: Mapped[str] = mapped_column(String(length=64), primary_key=True, default=new_id)
    conversation_id: Mapped[str] = mapped_column(
        String(length=64),
        ForeignKey("whatsapp_conversations.id"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String(length=64), nullable=False)
    last_read_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
