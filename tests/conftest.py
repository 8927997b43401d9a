# tests/conftest.py
from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Generator, Iterator
from datetime import datetime
from types import SimpleNamespace
from typing import Any

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-foundersocials")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="foundersocials-uploads-"))
os.environ["OPENAI_API_KEY"] = ""
os.environ["SENDGRID_API_KEY"] = ""

from foundersocials.core.security import create_access_token, hash_password
from foundersocials.db.session import Base
from foundersocials.db.session import get_db as app_get_session
from foundersocials.main import app as fastapi_app
from foundersocials.models import Community, CommunityMember, Post, User
from foundersocials.models.community import ROLE_ADMIN, ROLE_MEMBER
from foundersocials.models.user import PLAN_FOUNDER, PLAN_FREE, PLAN_STANDARD
from foundersocials.services.billing import (
    PaypalClient,
    StripeGateway,
    SubscriptionIntent,
    get_paypal_client,
    get_stripe_gateway,
)
from foundersocials.services.email import Mailer, get_mailer
from foundersocials.services.external_access import WebhookNotifier, get_webhook_notifier
from foundersocials.services.moderation import CommentModerator, get_comment_moderator

TEST_DB_URL = "sqlite://"
TEST_PASSWORD = "correct-horse-battery"
STRIPE_WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    session.begin_nested()

    @event.listens_for(session, "after_transaction_end")
    def restart_savepoint(sess: Session, trans) -> None:  # pragma: no cover - SQLAlchemy internals
        if trans.nested and not getattr(trans._parent, "nested", False):
            session.begin_nested()

    try:
        yield session
    finally:
        event.remove(session, "after_transaction_end", restart_savepoint)
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


# ---------------------------------------------------------------------------
# Third-party service doubles
# ---------------------------------------------------------------------------


class FakeCompletions:
    """Stands in for ``AsyncOpenAI().chat.completions``.

    Queued dicts are returned as JSON message content; queued exceptions are
    raised. An empty queue raises, which drives the moderator to its fallbacks.
    """

    def __init__(self) -> None:
        self.responses: list[Any] = []
        self.calls: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if not self.responses:
            raise RuntimeError("model unavailable")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        content = item if isinstance(item, str) else json.dumps(item)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeOpenAI:
    def __init__(self) -> None:
        self.completions = FakeCompletions()
        self.chat = SimpleNamespace(completions=self.completions)

    def queue(self, *responses: Any) -> None:
        self.completions.responses.extend(responses)


class RecordingMailer(Mailer):
    """Mailer that records messages instead of calling SendGrid."""

    def __init__(self) -> None:
        super().__init__(api_key="", sender="test@foundersocials.com")
        self.sent: list[dict[str, Any]] = []

    def send(self, to: str | None, subject: str, html_content: str) -> bool:
        if not to:
            return False
        self.sent.append({"to": to, "subject": subject, "html": html_content})
        return True

    def subjects_for(self, email: str) -> list[str]:
        return [message["subject"] for message in self.sent if message["to"] == email]


class FakeStripeGateway(StripeGateway):
    """Real webhook verification; customer/subscription calls are recorded."""

    def __init__(self) -> None:
        super().__init__(
            api_key="sk_test_123",
            webhook_secret=STRIPE_WEBHOOK_SECRET,
            price_id="price_standard",
        )
        self.customers: list[dict[str, str]] = []
        self.subscriptions: list[dict[str, str]] = []
        self.cancelled: list[str] = []
        self.fail_with: Exception | None = None

    async def create_customer(self, *, email: str, name: str) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.customers.append({"email": email, "name": name})
        return f"cus_test_{len(self.customers)}"

    async def create_subscription(self, *, customer_id: str, price_id: str) -> SubscriptionIntent:
        if self.fail_with is not None:
            raise self.fail_with
        self.subscriptions.append({"customer": customer_id, "price": price_id})
        return SubscriptionIntent(
            subscription_id=f"sub_test_{len(self.subscriptions)}",
            client_secret="pi_secret_test",
        )

    async def cancel_subscription(self, subscription_id: str) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.cancelled.append(subscription_id)


@pytest.fixture()
def fake_openai() -> FakeOpenAI:
    return FakeOpenAI()


@pytest.fixture()
def moderator(app: FastAPI, fake_openai: FakeOpenAI) -> Iterator[CommentModerator]:
    """Real moderator wired to a scripted chat client."""
    instance = CommentModerator(client=fake_openai, model="test-model")  # type: ignore[arg-type]
    app.dependency_overrides[get_comment_moderator] = lambda: instance
    try:
        yield instance
    finally:
        app.dependency_overrides.pop(get_comment_moderator, None)


@pytest.fixture(autouse=True)
def mailer(app: FastAPI) -> Iterator[RecordingMailer]:
    instance = RecordingMailer()
    app.dependency_overrides[get_mailer] = lambda: instance
    try:
        yield instance
    finally:
        app.dependency_overrides.pop(get_mailer, None)


@pytest.fixture(autouse=True)
def notifier(app: FastAPI) -> Iterator[WebhookNotifier]:
    """Notifier whose HTTP calls never leave the process."""
    deliveries: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        deliveries.append(request)
        return httpx.Response(200)

    instance = WebhookNotifier(client=httpx.AsyncClient(transport=httpx.MockTransport(_handler)))
    instance.deliveries = deliveries  # type: ignore[attr-defined]
    app.dependency_overrides[get_webhook_notifier] = lambda: instance
    try:
        yield instance
    finally:
        app.dependency_overrides.pop(get_webhook_notifier, None)


@pytest.fixture()
def stripe_gateway(app: FastAPI) -> Iterator[FakeStripeGateway]:
    gateway = FakeStripeGateway()
    app.dependency_overrides[get_stripe_gateway] = lambda: gateway
    try:
        yield gateway
    finally:
        app.dependency_overrides.pop(get_stripe_gateway, None)


@pytest.fixture()
def unconfigured_paypal(app: FastAPI) -> Iterator[PaypalClient]:
    client = PaypalClient(client_id="", client_secret="", base_url="https://paypal.invalid")
    app.dependency_overrides[get_paypal_client] = lambda: client
    try:
        yield client
    finally:
        app.dependency_overrides.pop(get_paypal_client, None)


# ---------------------------------------------------------------------------
# Data fixtures
# ---------------------------------------------------------------------------


def make_user(
    db: Session,
    username: str,
    *,
    plan: str = PLAN_FREE,
    email: str | None = None,
    **fields: Any,
) -> User:
    """Persist a user with a known password."""
    paid = plan != PLAN_FREE
    values: dict[str, Any] = {
        "username": username,
        "email": email if email is not None else f"{username}@example.com",
        "password_hash": hash_password(TEST_PASSWORD),
        "display_name": username.title(),
        "subscription_plan": plan,
        "is_premium": paid,
        "is_active": paid,
        "remaining_prompts": 3,
    }
    values.update(fields)
    user = User(**values)
    db.add(user)
    db.flush()
    db.refresh(user)
    return user


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


def make_community(db: Session, creator: User, name: str = "founders", **fields: Any) -> Community:
    community = Community(
        name=name,
        display_name=fields.pop("display_name", name.title()),
        description=fields.pop("description", "A place for founders to talk shop"),
        creator_id=creator.id,
        member_count=1,
        **fields,
    )
    db.add(community)
    db.flush()
    db.add(CommunityMember(user_id=creator.id, community_id=community.id, role=ROLE_ADMIN))
    db.flush()
    db.refresh(community)
    return community


def add_member(db: Session, community: Community, user: User, role: str = ROLE_MEMBER) -> None:
    db.add(CommunityMember(user_id=user.id, community_id=community.id, role=role))
    community.member_count += 1
    db.flush()


def make_post(
    db: Session,
    author: User,
    community: Community,
    title: str = "Shipping our first MVP",
    *,
    created_at: datetime | None = None,
    **fields: Any,
) -> Post:
    post = Post(
        author_id=author.id,
        community_id=community.id,
        title=title,
        content=fields.pop("content", "Here is what we learned launching in a month."),
        slug=fields.pop("slug", title.lower().replace(" ", "-")),
        **fields,
    )
    if created_at is not None:
        post.created_at = created_at
    db.add(post)
    db.flush()
    db.refresh(post)
    return post


@pytest.fixture()
def test_user(db_session: Session) -> User:
    """Free-plan user."""
    return make_user(db_session, "alice")


@pytest.fixture()
def other_user(db_session: Session) -> User:
    return make_user(db_session, "bob")


@pytest.fixture()
def standard_user(db_session: Session) -> User:
    """Standard-plan user with three AI prompts."""
    return make_user(db_session, "carol", plan=PLAN_STANDARD)


@pytest.fixture()
def founder_user(db_session: Session) -> User:
    return make_user(db_session, "dave", plan=PLAN_FOUNDER, remaining_prompts=0)


@pytest.fixture()
def auth_token(test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return auth_headers(test_user)


@pytest.fixture()
def other_auth_token(other_user: User) -> dict[str, str]:
    return auth_headers(other_user)


@pytest.fixture()
def community(db_session: Session, test_user: User) -> Community:
    """Public community administered by ``test_user``."""
    return make_community(db_session, test_user)


@pytest.fixture()
def test_post(db_session: Session, test_user: User, community: Community) -> Post:
    return make_post(db_session, test_user, community)
