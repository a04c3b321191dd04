"""Pytest configuration and fixtures"""
from typing import Callable, Generator, Sequence

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

import sleepplanet.models  # noqa: F401  (registers tables on Base.metadata)
from sleepplanet.config import Settings
from sleepplanet.database import Base
from sleepplanet.main import create_app
from sleepplanet.models.role import DEFAULT_ROLES, SUPER_ADMIN
from sleepplanet.services.account_store import AccountStore
from sleepplanet.utils.passwords import PasswordHasher

TEST_DATABASE_URL = "sqlite:///./test.db"
TEST_JWT_SECRET = "test-secret-key"
TEST_TTL = 3600

EDITOR_ROLE = ("editor", "Editor", "Edits content")


def make_settings(**overrides) -> Settings:
    values = dict(
        DATABASE_URL=TEST_DATABASE_URL,
        JWT_SECRET=TEST_JWT_SECRET,
        JWT_EXPIRES_IN=TEST_TTL,
        ARGON2_TIME_COST=1,
        ARGON2_MEMORY_COST=1024,
        ARGON2_PARALLELISM=1,
        RATE_LIMIT_ENABLED=False,
        METRICS_ENABLED=False,
        LOG_LEVEL="WARNING",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture(scope="function")
def app(settings: Settings) -> Generator[FastAPI, None, None]:
    """Application bound to a fresh SQLite database"""
    application = create_app(settings)
    engine = application.state.engine
    Base.metadata.create_all(bind=engine)
    yield application
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(app: FastAPI) -> Generator[Session, None, None]:
    """Session on the application's database, for seeding and assertions"""
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def hasher(app: FastAPI) -> PasswordHasher:
    return app.state.password_hasher


@pytest.fixture
def store(db: Session) -> AccountStore:
    return AccountStore(db)


@pytest.fixture
def roles(store: AccountStore) -> None:
    """Reference roles plus ``editor``"""
    with store.transaction("seed roles"):
        store.ensure_roles(DEFAULT_ROLES + (EDITOR_ROLE,))


@pytest.fixture
def create_account(store: AccountStore, hasher: PasswordHasher, roles) -> Callable[..., int]:
    """Insert an administrator directly through the store and return its id"""

    def _create(
        username: str,
        password: str = "Passw0rd!",
        email: str = None,
        role_names: Sequence[str] = ("editor",),
        phone_number: str = None,
    ) -> int:
        with store.transaction("seed administrator"):
            admin_id = store.create_administrator(
                username,
                email or f"{username}@sleepplanet.cn",
                hasher.hash(password),
                phone_number,
            )
            for name in role_names:
                store.assign_role(admin_id, store.role_id_by_name(name))
        return admin_id

    return _create


@pytest.fixture
def super_admin(create_account) -> int:
    """Active super_admin ``alice`` / ``Secret123``"""
    return create_account("alice", password="Secret123", role_names=(SUPER_ADMIN,))


@pytest.fixture
def editor(create_account) -> int:
    """Active non-privileged administrator ``edward``"""
    return create_account("edward", password="Editor123", role_names=("editor",))


def bearer(app: FastAPI, admin_id: int, username: str, roles: Sequence[str]) -> dict:
    token = app.state.token_service.issue(admin_id, username, roles)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(app: FastAPI, super_admin: int) -> dict:
    """Authorization header for the super_admin"""
    return bearer(app, super_admin, "alice", [SUPER_ADMIN])


@pytest.fixture
def editor_headers(app: FastAPI, editor: int) -> dict:
    return bearer(app, editor, "edward", ["editor"])
