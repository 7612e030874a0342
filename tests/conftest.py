import os
import pathlib
import sys
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="contact-service-logs-"))
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DELETE_CONTACT_RATE_LIMIT"] = "3/minute"

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from sqlalchemy import Engine, func, select
from sqlalchemy.exc import OperationalError

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from app.app_logging import init_logging
from app.contacts.models import ConversationTarget
from app.contacts.repository import SqlAlchemyContactStore
from app.core.auth import reset_auth_settings_cache
from app.models import (
    Base,
    Lead,
    UserRole,
    WhatsAppConversation,
    WhatsAppConversationRead,
    WhatsAppMessage,
)
from app.models.session import get_engine, session_scope
from app.security import issue_access_token

TOKEN_SECRET = "super-secret-key"
TOKEN_ISSUER = "https://auth.example.test"


@dataclass
class ContactDb:
    engine: Engine
    store: SqlAlchemyContactStore

    def grant(self, user_id: str, *roles: str) -> None:
        with session_scope(self.engine) as session:
            for role in roles:
                session.add(UserRole(user_id=user_id, role=role))

    def add_conversation(
        self,
        conversation_id: str,
        *,
        lead_id: str | None = None,
        messages: int = 0,
        reads: int = 0,
        phone: str | None = "+5511988887777",
        whatsapp_id: str | None = "5511988887777@s.whatsapp.net",
    ) -> None:
        with session_scope(self.engine) as session:
            if lead_id is not None and session.get(Lead, lead_id) is None:
                session.add(Lead(id=lead_id, name=f"Lead {lead_id}"))
                session.flush()
            session.add(
                WhatsAppConversation(
                    id=conversation_id,
                    lead_id=lead_id,
                    phone=phone,
                    whatsapp_id=whatsapp_id,
                )
            )
            session.flush()
            for index in range(messages):
                session.add(
                    WhatsAppMessage(conversation_id=conversation_id, body=f"message {index}")
                )
            for index in range(reads):
                session.add(
                    WhatsAppConversationRead(
                        conversation_id=conversation_id, user_id=f"reader-{index}"
                    )
                )

    def add_lead(self, lead_id: str) -> None:
        with session_scope(self.engine) as session:
            session.add(Lead(id=lead_id, name=f"Lead {lead_id}"))

    def count(self, model: Any, **filters: Any) -> int:
        stmt = select(func.count()).select_from(model)
        for column, value in filters.items():
            stmt = stmt.where(getattr(model, column) == value)
        with self.engine.connect() as conn:
            return int(conn.execute(stmt).scalar_one())


class RecordingStore:
    """Wrap a store, record every call and optionally fail one operation."""

    def __init__(self, inner: Any, *, fail_on: Iterable[str] = ()) -> None:
        self._inner = inner
        self._fail_on = set(fail_on)
        self.calls: list[str] = []

    def __getattr__(self, name: str) -> Any:
        target = getattr(self._inner, name)
        if not callable(target):
            return target

        def _call(*args: Any, **kwargs: Any) -> Any:
            self.calls.append(name)
            if name in self._fail_on:
                raise OperationalError(name, {}, Exception("connection lost"))
            return target(*args, **kwargs)

        return _call


@dataclass
class RacingStore:
    """Store whose conversation is removed by a concurrent request right after the fetch."""

    inner: SqlAlchemyContactStore
    raced: list[str] = field(default_factory=list)

    def __getattr__(self, name: str) -> Any:
        return getattr(self.inner, name)

    def fetch_conversation(self, conversation_id: str) -> ConversationTarget | None:
        target = self.inner.fetch_conversation(conversation_id)
        if target is not None:
            self.inner.delete_messages(conversation_id)
            self.inner.delete_reads(conversation_id)
            self.inner.delete_conversation(conversation_id)
            if target.lead_id:
                self.inner.delete_lead(target.lead_id)
            self.raced.append(conversation_id)
        return target


def bearer(subject: str, **claims: Any) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_access_token(subject, **claims)}"}


@pytest.fixture
def auth_env(monkeypatch: pytest.MonkeyPatch):
    """Configure HMAC token verification for the test run."""

    monkeypatch.setenv("AUTH_TOKEN_SECRET", TOKEN_SECRET)
    monkeypatch.setenv("AUTH_TOKEN_AUDIENCE", "authenticated")
    monkeypatch.setenv("AUTH_TOKEN_ISSUER", TOKEN_ISSUER)
    monkeypatch.setenv("AUTH_TOKEN_ALGORITHM", "HS256")
    monkeypatch.delenv("AUTH_JWKS_URL", raising=False)
    reset_auth_settings_cache()
    yield
    reset_auth_settings_cache()


@pytest.fixture
def contact_db(tmp_path_factory: pytest.TempPathFactory) -> ContactDb:
    db_path = tmp_path_factory.mktemp("contacts") / "contacts.db"
    engine = get_engine(f"sqlite+pysqlite:///{db_path}")
    Base.metadata.create_all(engine)

    yield ContactDb(engine=engine, store=SqlAlchemyContactStore(engine))

    Base.metadata.drop_all(engine)
    engine.dispose()


@dataclass
class ApiContext:
    client: TestClient
    app: FastAPI
    db: ContactDb

    def use_store(self, store: Any) -> None:
        from app.routers.contacts import get_contact_store

        self.app.dependency_overrides[get_contact_store] = lambda: store


@pytest.fixture
def api(auth_env, contact_db: ContactDb) -> ApiContext:
    from app.main import app

    context = ApiContext(client=TestClient(app), app=app, db=contact_db)
    context.use_store(contact_db.store)
    yield context
    app.dependency_overrides.clear()


@pytest.fixture
def app_factory(monkeypatch):
    def _create_app(log_dir: str, log_request_bodies: bool = False):
        """Create a FastAPI app with logging initialised."""
        monkeypatch.setenv("LOG_DIR", str(log_dir))
        if log_request_bodies:
            monkeypatch.setenv("LOG_REQUEST_BODIES", "true")
        app = FastAPI()

        @app.post("/echo")
        async def echo(request: Request):
            return await request.json()

        init_logging(app)
        return app

    return _create_app
