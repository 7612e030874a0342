"""CRM models: leads and role assignments."""

from __future__ import annotations

import datetime as dt

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from . import Base, new_id, utcnow


class Lead(Base):
    """A contact/lead, optionally referenced by a WhatsApp conversation.

    Attributes:
        id: Opaque identifier.
        name: Display name captured by the CRM.
        phone: Phone number in E.164 format when known.
        email: Contact e-mail when known.
    """

    __tablename__ = "leads"

    id: Mapped[str] = mapped_column(String(length=64), primary_key=True, default=new_id)
    name: Mapped[str | None] = mapped_column(String(length=255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(length=32), nullable=True)
    email: Mapped[str | None] = mapped_column(String(length=320), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class UserRole(Base):
    """Grant of a named role (``admin``, ``broker``, ``attendant``...) to a user."""

    __tablename__ = "user_roles"
    __table_args__ = (
        Index("ix_user_roles_user_role_unique", "user_id", "role", unique=True),
    )

    id: Mapped[str] = mapped_column(String(length=64), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(length=64), nullable=False)
    role: Mapped[str] = mapped_column(String(length=32), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
