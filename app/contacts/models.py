"""Domain models used by the contact deletion service."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ConversationTarget:
    """Minimal projection of the conversation being deleted.

    ``phone`` and ``whatsapp_id`` are only used for the audit log entry.
    """

    id: str
    lead_id: str | None = None
    phone: str | None = None
    whatsapp_id: str | None = None


@dataclass(frozen=True)
class DeletionResult:
    messages_deleted: int = 0
    reads_deleted: int = 0
    conversations_deleted: int = 0
    lead_deleted: int = 0
