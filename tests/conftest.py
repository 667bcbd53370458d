# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import timedelta
from itertools import count

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-commflock")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")
os.environ["REDIS_URL"] = ""

from commflock.core.security import create_access_token  # noqa: E402
from commflock.db.session import Base  # noqa: E402
from commflock.db.session import get_db as app_get_session  # noqa: E402
from commflock.db.time import utcnow  # noqa: E402
from commflock.main import app as fastapi_app  # noqa: E402
from commflock.models import (  # noqa: E402
    Community,
    CommunityMember,
    Event,
    EventStatus,
    JoinPolicy,
    Poll,
    User,
)
from commflock.schemas.community import CommunityCreate  # noqa: E402
from commflock.schemas.event import EventCreate  # noqa: E402
from commflock.schemas.poll import PollCreate  # noqa: E402
from commflock.schemas.user import SignupRequest  # noqa: E402
from commflock.services import communities as community_service  # noqa: E402
from commflock.services import events as event_service  # noqa: E402
from commflock.services import membership as membership_service  # noqa: E402
from commflock.services import polls as poll_service  # noqa: E402
from commflock.services import users as user_service  # noqa: E402
from commflock.services.rate_limit import get_rate_limiter  # noqa: E402

TEST_DB_URL = "sqlite://"
TEST_PASSWORD = "s3cret-pass"

_USER_COUNTER = count(1)


@pytest.fixture()
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
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(
    app: FastAPI, session_factory: sessionmaker[Session]
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> Iterator[None]:
    limiter = get_rate_limiter()
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def _bearer(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def test_password() -> str:
    return TEST_PASSWORD


@pytest.fixture()
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Return a helper building bearer headers for any user."""
    return _bearer


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Factory creating users through the identity service."""

    def _make_user(username: str | None = None, **fields: str | None) -> User:
        payload = SignupRequest(
            username=username or f"user{next(_USER_COUNTER)}",
            password=fields.pop("password", None) or TEST_PASSWORD,
            **fields,
        )
        return user_service.create_user(db_session, payload)

    return _make_user


@pytest.fixture()
def owner(make_user: Callable[..., User]) -> User:
    return make_user("alice", email="alice@example.com")


@pytest.fixture()
def owner_headers(owner: User) -> dict[str, str]:
    return _bearer(owner)


@pytest.fixture()
def member_user(make_user: Callable[..., User]) -> User:
    return make_user("bob", email="bob@example.com")


@pytest.fixture()
def member_headers(member_user: User) -> dict[str, str]:
    return _bearer(member_user)


@pytest.fixture()
def make_community(db_session: Session, owner: User) -> Callable[..., Community]:
    def _make_community(name: str = "Bitcoin Devs", **fields) -> Community:
        creator = fields.pop("creator", owner)
        return community_service.create_community(
            db_session, CommunityCreate(name=name, **fields), creator
        )

    return _make_community


@pytest.fixture()
def community(make_community: Callable[..., Community]) -> Community:
    """Public auto-join community owned by ``owner``."""
    return make_community("Bitcoin Devs", slug="bitcoin-devs", join_policy=JoinPolicy.AUTO_JOIN)


@pytest.fixture()
def membership(db_session: Session, community: Community, member_user: User) -> CommunityMember:
    """Approved MEMBER row for ``member_user`` in ``community``."""
    return membership_service.request_join(db_session, community, member_user)


@pytest.fixture()
def make_event(db_session: Session, community: Community, owner: User) -> Callable[..., Event]:
    def _make_event(**fields) -> Event:
        starts_at = utcnow() + timedelta(days=7)
        payload = EventCreate(
            title=fields.pop("title", "Lightning Workshop"),
            starts_at=starts_at,
            ends_at=starts_at + timedelta(hours=3),
            capacity=fields.pop("capacity", 10),
            price_sats=fields.pop("price_sats", 100),
            status=fields.pop("status", EventStatus.OPEN),
            **fields,
        )
        return event_service.create_event(db_session, community, payload, owner)

    return _make_event


@pytest.fixture()
def open_event(make_event: Callable[..., Event]) -> Event:
    return make_event()


@pytest.fixture()
def make_poll(db_session: Session, community: Community, owner: User) -> Callable[..., Poll]:
    def _make_poll(**fields) -> Poll:
        payload = PollCreate(
            question=fields.pop("question", "Which topic next?"),
            options=fields.pop(
                "options",
                [{"key": "a", "label": "Channels"}, {"key": "b", "label": "Routing"}],
            ),
            **fields,
        )
        return poll_service.create_poll(db_session, community, payload, owner)

    return _make_poll


@pytest.fixture()
def poll(make_poll: Callable[..., Poll]) -> Poll:
    return make_poll()
