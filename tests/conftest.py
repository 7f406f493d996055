import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production")
os.environ["BACKEND"] = "database"

from collections import Counter, defaultdict  # noqa: E402
from typing import Any, AsyncGenerator, Dict, List, Optional  # noqa: E402
from uuid import UUID, uuid4  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from sims.auth.provider import EMAIL_EXISTS_MESSAGE, DatabaseIdentityProvider, IdentityProvider  # noqa: E402
from sims.auth.schemas import AuthUser, LoginResponse  # noqa: E402
from sims.core.exceptions import IdentityError, StoreError  # noqa: E402
from sims.db.session import Base, get_db  # noqa: E402
from sims.db.store import DatabaseRecordStore, RecordStore  # noqa: E402
from sims.main import app  # noqa: E402


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ADMIN_EMAIL = "admin@sekolah.sch.id"
ADMIN_PASSWORD = "AdminPass123"
TEACHER_EMAIL = "guru.lama@sekolah.sch.id"
TEACHER_PASSWORD = "GuruPass123"


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test; overrides the FastAPI get_db dependency."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def create_account(db: AsyncSession, email: str, password: str, role: str) -> AuthUser:
    user = await DatabaseIdentityProvider(db).create_user(email, password, {"nama": email.split("@")[0]})
    await DatabaseRecordStore(db).insert("user_roles", {"user_id": user.id, "role": role})
    return user


async def bearer_headers(db: AsyncSession, email: str, password: str) -> Dict[str, str]:
    session = await DatabaseIdentityProvider(db).sign_in(email, password)
    return {"Authorization": f"Bearer {session.access_token}"}


@pytest.fixture()
async def admin_headers(db_session: AsyncSession) -> Dict[str, str]:
    await create_account(db_session, ADMIN_EMAIL, ADMIN_PASSWORD, "admin")
    return await bearer_headers(db_session, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture()
async def teacher_headers(db_session: AsyncSession) -> Dict[str, str]:
    await create_account(db_session, TEACHER_EMAIL, TEACHER_PASSWORD, "guru")
    return await bearer_headers(db_session, TEACHER_EMAIL, TEACHER_PASSWORD)


# ----- In-memory ports with call counters -----
class FakeIdentityProvider(IdentityProvider):
    def __init__(self) -> None:
        self.tokens: Dict[str, AuthUser] = {}
        self.accounts: Dict[str, AuthUser] = {}
        self.reject: Dict[str, str] = {}  # email -> provider message
        self.calls: Counter = Counter()
        self.created: List[str] = []

    async def get_user(self, token: str) -> Optional[AuthUser]:
        self.calls["get_user"] += 1
        return self.tokens.get(token)

    async def create_user(self, email: str, password: str, user_metadata: Dict[str, Any]) -> AuthUser:
        self.calls["create_user"] += 1
        if email in self.reject:
            raise IdentityError(self.reject[email])
        if email.lower() in self.accounts:
            raise IdentityError(EMAIL_EXISTS_MESSAGE)
        user = AuthUser(id=uuid4(), email=email, user_metadata=user_metadata)
        self.accounts[email.lower()] = user
        self.created.append(email)
        return user

    async def sign_in(self, email: str, password: str) -> LoginResponse:
        raise IdentityError("Invalid login credentials")


class FakeRecordStore(RecordStore):
    def __init__(self) -> None:
        self.roles: Dict[UUID, str] = {}
        self.rows: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.reject: Dict[str, str] = {}  # table -> store message
        self.explode: Dict[str, Exception] = {}  # table -> unexpected exception
        self.calls: Counter = Counter()

    async def get_user_role(self, user_id: UUID) -> Optional[str]:
        self.calls["get_user_role"] += 1
        return self.roles.get(user_id)

    async def insert(self, table: str, values: Dict[str, Any]) -> None:
        self.calls["insert"] += 1
        if table in self.explode:
            raise self.explode[table]
        if table in self.reject:
            raise StoreError(self.reject[table])
        self.rows[table].append(dict(values))
        if table == "user_roles":
            self.roles[values["user_id"]] = values["role"]


ADMIN_TOKEN = "admin-token"
TEACHER_TOKEN = "teacher-token"


@pytest.fixture()
def identity() -> FakeIdentityProvider:
    provider = FakeIdentityProvider()
    provider.tokens[ADMIN_TOKEN] = AuthUser(id=uuid4(), email=ADMIN_EMAIL)
    provider.tokens[TEACHER_TOKEN] = AuthUser(id=uuid4(), email=TEACHER_EMAIL)
    return provider


@pytest.fixture()
def store(identity: FakeIdentityProvider) -> FakeRecordStore:
    records = FakeRecordStore()
    records.roles[identity.tokens[ADMIN_TOKEN].id] = "admin"
    records.roles[identity.tokens[TEACHER_TOKEN].id] = "guru"
    return records
