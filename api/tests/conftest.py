"""
Pytest fixtures for API tests.

Runs against an in-memory SQLite database unless TEST_DATABASE_URL points
at PostgreSQL. Redis is replaced by a dict-backed mock.
"""
import os
import pytest
from typing import Generator
from unittest.mock import MagicMock, patch
from uuid import uuid4

# Set test environment before the app reads its settings
os.environ["ENV"] = "local"
os.environ["JWT_SECRET_KEY"] = "test-access-secret-key-for-testing-only-32chars"
os.environ["JWT_REFRESH_SECRET_KEY"] = "test-refresh-secret-key-for-testing-only-32chars"
os.environ["DATABASE_URL"] = os.getenv("TEST_DATABASE_URL", "sqlite://")

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from nexus.main import app
from nexus.db.base import Base
from nexus.db.session import engine_options, get_db
from nexus.models import Board, BoardMember, BoardVisibility, Membership, Role, User, Workspace
from nexus.core.rate_limit import BYPASS_HEADER
from nexus.core.security import hash_password, issue_access_token
from nexus.services.auth import build_access_claims
from nexus.services.boards import create_board


# =============================================================================
# Database Setup
# =============================================================================

TEST_DATABASE_URL = os.environ["DATABASE_URL"]

engine = create_engine(TEST_DATABASE_URL, **engine_options(TEST_DATABASE_URL))
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "TestPassword123!"


def override_get_db() -> Generator[Session, None, None]:
    """Override database dependency for tests."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


# =============================================================================
# Redis
# =============================================================================

def make_fake_redis() -> MagicMock:
    """MagicMock exposing the handful of Redis commands the app uses."""
    store: dict[str, str] = {}
    ttls: dict[str, int] = {}

    def set_(key, value, ex=None, nx=False):
        if nx and key in store:
            return None
        store[key] = value
        if ex is not None:
            ttls[key] = ex
        return True

    def incr(key):
        store[key] = str(int(store.get(key, 0)) + 1)
        return int(store[key])

    def expire(key, seconds):
        ttls[key] = seconds
        return True

    fake = MagicMock()
    fake.store = store
    fake.set.side_effect = set_
    fake.exists.side_effect = lambda *keys: sum(1 for key in keys if key in store)
    fake.incr.side_effect = incr
    fake.expire.side_effect = expire
    fake.ttl.side_effect = lambda key: ttls.get(key, -1)
    fake.ping.return_value = True
    return fake


@pytest.fixture(autouse=True)
def fake_redis() -> Generator[MagicMock, None, None]:
    fake = make_fake_redis()
    with patch("nexus.core.revocation.redis_client", fake), \
            patch("nexus.core.rate_limit.redis_client", fake):
        yield fake


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def setup_database() -> Generator[None, None, None]:
    """Fresh tables for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Get database session."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client() -> TestClient:
    """Test client that skips rate limiting."""
    return TestClient(app, headers={BYPASS_HEADER: "1"})


def make_user(db: Session, name: str = "Test User", verified: bool = True) -> User:
    user = User(
        email=f"{name.lower().replace(' ', '-')}-{uuid4().hex[:8]}@example.com",
        name=name,
        password_hash=hash_password(PASSWORD),
        email_verified=verified,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def headers_for(db: Session, user: User) -> dict:
    """Bearer headers carrying a freshly issued access token."""
    token = issue_access_token(build_access_claims(db, user))
    return {"Authorization": f"Bearer {token}", BYPASS_HEADER: "1"}


def add_member(db: Session, workspace: Workspace, user: User, role: Role) -> Membership:
    membership = Membership(workspace_id=workspace.id, user_id=user.id, role=role.value)
    db.add(membership)
    db.commit()
    db.refresh(membership)
    return membership


@pytest.fixture
def test_user(db: Session) -> User:
    """Verified user who owns test_workspace."""
    return make_user(db, "Owner User")


@pytest.fixture
def auth_headers(db: Session, test_user: User) -> dict:
    return headers_for(db, test_user)


@pytest.fixture
def test_workspace(db: Session, test_user: User) -> Workspace:
    """Workspace with test_user as OWNER."""
    workspace = Workspace(name=f"Workspace {uuid4().hex[:8]}")
    db.add(workspace)
    db.flush()
    db.add(Membership(workspace_id=workspace.id, user_id=test_user.id, role=Role.OWNER.value))
    db.commit()
    db.refresh(workspace)
    return workspace


@pytest.fixture
def owner_membership(db: Session, test_workspace: Workspace, test_user: User) -> Membership:
    return db.query(Membership).filter_by(
        workspace_id=test_workspace.id, user_id=test_user.id
    ).one()


@pytest.fixture
def admin_user(db: Session, test_workspace: Workspace) -> tuple[User, dict]:
    user = make_user(db, "Admin User")
    add_member(db, test_workspace, user, Role.ADMIN)
    return user, headers_for(db, user)


@pytest.fixture
def member_user(db: Session, test_workspace: Workspace) -> tuple[User, dict]:
    user = make_user(db, "Member User")
    add_member(db, test_workspace, user, Role.MEMBER)
    return user, headers_for(db, user)


@pytest.fixture
def outsider(db: Session) -> tuple[User, dict]:
    """Verified user with no membership in test_workspace."""
    user = make_user(db, "Outsider User")
    return user, headers_for(db, user)


@pytest.fixture
def public_board(db: Session, test_workspace: Workspace) -> Board:
    return create_board(db, test_workspace.id, "Public Board", BoardVisibility.PUBLIC)


@pytest.fixture
def private_board(db: Session, test_workspace: Workspace) -> Board:
    return create_board(db, test_workspace.id, "Private Board", BoardVisibility.PRIVATE)


def grant_board(db: Session, board: Board, user: User) -> None:
    db.add(BoardMember(board_id=board.id, user_id=user.id))
    db.commit()


@pytest.fixture
def user_factory(db: Session):
    """Create extra verified (or unverified) users: user_factory("Name", verified=False)."""
    return lambda name="Extra User", verified=True: make_user(db, name, verified)


@pytest.fixture
def token_headers(db: Session):
    """Bearer headers for any user."""
    return lambda user: headers_for(db, user)


@pytest.fixture
def board_grant(db: Session):
    """Give a user an explicit grant on a board."""
    return lambda board, user: grant_board(db, board, user)


@pytest.fixture
def workspace_member(db: Session, test_workspace: Workspace):
    """Add a user to test_workspace: workspace_member(user, Role.ADMIN)."""
    return lambda user, role=Role.MEMBER: add_member(db, test_workspace, user, role)
