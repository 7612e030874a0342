from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

from app.models import Base, Lead, UserRole, WhatsAppConversationRead, WhatsAppMessage
from app.models.session import get_engine
from tools import bootstrap_demo


def _session_factory() -> sessionmaker:
    engine = get_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False, future=True)


def test_ensure_role_grants_once(caplog):
    factory = _session_factory()
    caplog.set_level(logging.INFO, logger="tools.bootstrap_demo")

    with factory() as session:
        created = bootstrap_demo.ensure_role(session, "demo-admin", "broker")
        session.commit()
    with factory() as session:
        created_again = bootstrap_demo.ensure_role(session, "demo-admin", "broker")
        session.commit()
        roles = session.scalars(select(UserRole.role).where(UserRole.user_id == "demo-admin")).all()

    assert created is True
    assert created_again is False
    assert roles == ["broker"]

    messages = [record.message for record in caplog.records if record.name == "tools.bootstrap_demo"]
    assert any("Granted role broker" in message for message in messages)
    assert any("already granted" in message for message in messages)


def test_ensure_role_warns_for_roles_that_cannot_delete(caplog):
    factory = _session_factory()
    caplog.set_level(logging.INFO, logger="tools.bootstrap_demo")

    with factory() as session:
        assert bootstrap_demo.ensure_role(session, "viewer-1", "viewer") is True
        session.commit()

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert any("does not allow deleting contacts" in r.message for r in warnings)


def test_seed_conversation_creates_dependents():
    factory = _session_factory()

    with factory() as session:
        conversation = bootstrap_demo.seed_conversation(session, messages=4)
        session.commit()

        messages = session.scalar(
            select(func.count()).select_from(WhatsAppMessage).where(
                WhatsAppMessage.conversation_id == conversation.id
            )
        )
        reads = session.scalar(
            select(func.count()).select_from(WhatsAppConversationRead).where(
                WhatsAppConversationRead.conversation_id == conversation.id
            )
        )

    assert conversation.id == bootstrap_demo.DEFAULT_CONVERSATION_ID
    assert conversation.lead_id == bootstrap_demo.DEFAULT_LEAD_ID
    assert messages == 4
    assert reads == 1


def test_seed_conversation_reuses_existing(caplog):
    factory = _session_factory()

    with factory() as session:
        bootstrap_demo.seed_conversation(session, conversation_id="c1", lead_id=None)
        session.commit()

    caplog.set_level(logging.INFO, logger="tools.bootstrap_demo")
    caplog.clear()

    with factory() as session:
        again = bootstrap_demo.seed_conversation(session, conversation_id="c1", messages=9)
        session.commit()
        message_count = session.scalar(select(func.count()).select_from(WhatsAppMessage))
        lead_count = session.scalar(select(func.count()).select_from(Lead))

    assert again.lead_id is None
    assert message_count == 3
    assert lead_count == 0
    messages = [record.message for record in caplog.records if record.name == "tools.bootstrap_demo"]
    assert any("already exists" in message for message in messages)


def test_safe_url_masks_password():
    url = "postgresql://crm:hunter2@db:5432/crm"

    assert "hunter2" not in bootstrap_demo._safe_url(url)
    assert bootstrap_demo._as_sqlalchemy_url(url).startswith("postgresql+psycopg://")
