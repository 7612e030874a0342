"""SQLAlchemy declarative base and the tables touched by contact deletion.

The service owns none of these tables; they belong to the CRM data store and
are mapped here so queries can be written against typed columns and so tests
and local tooling can create the schema with ``Base.metadata.create_all``.
"""

from __future__ import annotations

import datetime as dt
import uuid

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy declarative models."""


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def new_id() -> str:
    """Default primary key: a random UUID rendered as text."""

    return str(uuid.uuid4())


# Re-export the models so callers can write ``from app.models import Lead``.
from .crm import Lead, UserRole
from .whatsapp import WhatsAppConversation, WhatsAppConversationRead, WhatsAppMessage


__all__ = [
    "Base",
    "Lead",
    "UserRole",
    "WhatsAppConversation",
    "WhatsAppConversationRead",
    "WhatsAppMessage",
    "new_id",
    "utcnow",
]
