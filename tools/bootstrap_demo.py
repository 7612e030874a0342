"""Utility CLI to create the schema, grant a role and seed a demo conversation."""

from __future__ import annotations

import argparse
import logging
import os

from dotenv import load_dotenv
from sqlalchemy import select
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session

from app.contacts.service import DELETION_ROLES
from app.models import (
    Base,
    Lead,
    UserRole,
    WhatsAppConversation,
    WhatsAppConversationRead,
    WhatsAppMessage,
)
from app.models.session import get_engine, session_scope

logger = logging.getLogger("tools.bootstrap_demo")

DEFAULT_USER_ID = "demo-admin"
DEFAULT_ROLE = "admin"
DEFAULT_CONVERSATION_ID = "demo-conversation"
DEFAULT_LEAD_ID = "demo-lead"


def _as_sqlalchemy_url(db_url: str) -> str:
    """Return a SQLAlchemy URL that uses the ``psycopg`` driver."""

    if db_url.startswith("postgresql+psycopg://"):
        return db_url
    if db_url.startswith("postgresql://"):
        return db_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return db_url


def _safe_url(db_url: str) -> str:
    """Return ``db_url`` with any password redacted for logging."""

    try:
        parsed = make_url(db_url)
    except Exception:  # pragma: no cover - defensive fallback
        return db_url
    if parsed.password is None:
        return db_url
    return parsed.set(password="***").render_as_string(hide_password=False)


def ensure_role(session: Session, user_id: str, role: str = DEFAULT_ROLE) -> bool:
    """Grant ``role`` to ``user_id`` unless already granted.

    Returns:
        ``True`` when a new assignment was created.
    """

    if role not in DELETION_ROLES:
        logger.warning("Role %s does not allow deleting contacts", role)
    existing = session.execute(
        select(UserRole).where(UserRole.user_id == user_id, UserRole.role == role)
    ).scalar_one_or_none()
    if existing is not None:
        logger.info("Role %s already granted to %s", role, user_id)
        return False
    session.add(UserRole(user_id=user_id, role=role))
    session.flush()
    logger.info("Granted role %s to %s", role, user_id)
    return True


def seed_conversation(
    session: Session,
    *,
    conversation_id: str = DEFAULT_CONVERSATION_ID,
    lead_id: str | None = DEFAULT_LEAD_ID,
    messages: int = 3,
    reader_id: str | None = DEFAULT_USER_ID,
) -> WhatsAppConversation:
    """Create a conversation with ``messages`` messages, a read marker and a lead.

    Existing conversations are returned untouched.
    """

    conversation = session.get(WhatsAppConversation, conversation_id)
    if conversation is not None:
        logger.info("Conversation %s already exists", conversation_id)
        return conversation

    if lead_id is not None and session.get(Lead, lead_id) is None:
        session.add(Lead(id=lead_id, name="Demo Lead", phone="+5511999990000"))
        session.flush()
    conversation = WhatsAppConversation(
        id=conversation_id,
        lead_id=lead_id,
        phone="+5511999990000",
        whatsapp_id="5511999990000@s.whatsapp.net",
        contact_name="Demo Lead",
    )
    session.add(conversation)
    session.flush()
    for index in range(messages):
        session.add(
            WhatsAppMessage(conversation_id=conversation_id, body=f"Demo message {index + 1}")
        )
    if reader_id is not None:
        session.add(WhatsAppConversationRead(conversation_id=conversation_id, user_id=reader_id))
    session.flush()
    logger.info(
        "Created conversation %s with %d messages (lead=%s)",
        conversation_id,
        messages,
        lead_id,
    )
    return conversation


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--user-id", default=DEFAULT_USER_ID, help="Subject to grant a role to")
    parser.add_argument("--role", default=DEFAULT_ROLE, help="Role to grant")
    parser.add_argument(
        "--no-seed", action="store_true", help="Skip the demo conversation"
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Script entrypoint."""

    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = build_parser().parse_args(argv)

    db_url = os.getenv("DATABASE_URL")
    if not db_url:
        raise RuntimeError("DATABASE_URL environment variable is required")

    logger.info("Ensuring schema on %s", _safe_url(db_url))
    engine = get_engine(_as_sqlalchemy_url(db_url))
    Base.metadata.create_all(engine)

    with session_scope(engine) as session:
        ensure_role(session, args.user_id, args.role)
        if not args.no_seed:
            seed_conversation(session, reader_id=args.user_id)
    engine.dispose()


if __name__ == "__main__":  # pragma: no cover - CLI execution
    main()
