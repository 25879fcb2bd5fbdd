# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-meriter")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from meriter.core.security import create_access_token
from meriter.db.session import Base
from meriter.db.session import get_db as app_get_session
from meriter.main import app as fastapi_app
from meriter.models import Community, Publication, User, UserCommunityRole, Wallet
from meriter.models.user import GLOBAL_ROLE_SUPERADMIN

TEST_DB_URL = "sqlite://"


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


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory creating persisted users."""

    def _make(display_name: str = "Member", global_role: str | None = None) -> User:
        user = User(display_name=display_name, global_role=global_role)
        db_session.add(user)
        db_session.flush()
        return user

    return _make


@pytest.fixture()
def make_community(db_session: Session) -> Callable[..., Community]:
    """Return a factory creating communities; keyword overrides become rule columns."""

    def _make(type_tag: str = "default", name: str | None = None, **overrides: Any) -> Community:
        community = Community(name=name or f"{type_tag} community", type_tag=type_tag, **overrides)
        db_session.add(community)
        db_session.flush()
        return community

    return _make


@pytest.fixture()
def add_member(db_session: Session) -> Callable[[User, Community, str], UserCommunityRole]:
    def _add(user: User, community: Community, role: str) -> UserCommunityRole:
        membership = UserCommunityRole(user_id=user.id, community_id=community.id, role=role)
        db_session.add(membership)
        db_session.flush()
        return membership

    return _add


@pytest.fixture()
def fund_wallet(db_session: Session) -> Callable[[User, Community, float], Wallet]:
    def _fund(user: User, community: Community, balance: float) -> Wallet:
        wallet = db_session.get(Wallet, (user.id, community.id))
        if wallet is None:
            wallet = Wallet(user_id=user.id, community_id=community.id, balance=0.0)
            db_session.add(wallet)
        wallet.balance = balance
        db_session.flush()
        return wallet

    return _fund


@pytest.fixture()
def make_publication(db_session: Session) -> Callable[..., Publication]:
    def _make(community: Community, author: User, **fields: Any) -> Publication:
        fields.setdefault("title", "A post")
        fields.setdefault("body", "Post body")
        publication = Publication(community_id=community.id, author_id=author.id, **fields)
        db_session.add(publication)
        db_session.flush()
        return publication

    return _make


@pytest.fixture()
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Return a helper building authorization headers for a user."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers


@pytest.fixture()
def superadmin(make_user: Callable[..., User]) -> User:
    return make_user("Admin", global_role=GLOBAL_ROLE_SUPERADMIN)
