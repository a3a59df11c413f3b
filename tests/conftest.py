import os

# Settings are read at import time; point them at SQLite before importing the app
os.environ["POSTGRES_DSN"] = "sqlite+aiosqlite:///./test_db.sqlite3"
os.environ["AUTO_CREATE_SCHEMA"] = "false"
os.environ["MIN_PAYOUT_AMOUNT"] = "10.00"
os.environ.pop("ADMIN_DEFAULT_EMAIL", None)
os.environ.pop("ADMIN_DEFAULT_PASSWORD", None)

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from affiliate.models import Base, Product, User  # noqa: E402
from affiliate.services import attribution  # noqa: E402
from api.auth import issue_token  # noqa: E402
from api.main import app  # noqa: E402
from core.db import build_engine, build_session_factory, get_session  # noqa: E402
from core.security import hash_password  # noqa: E402

# One bcrypt hash for every fixture user keeps the suite fast
TEST_PASSWORD = "secret123"
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """A fresh SQLite file database per test."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def test_db_session(test_engine):
    """Session factory: ``async with test_db_session() as session:``."""
    return build_session_factory(test_engine)


@pytest_asyncio.fixture
async def test_session(test_db_session):
    async with test_db_session() as session:
        yield session


@pytest_asyncio.fixture
async def client(test_db_session):
    """HTTP client bound to the app with sessions from the test database."""

    async def _get_test_session():
        async with test_db_session() as session:
            yield session

    app.dependency_overrides[get_session] = _get_test_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def create_user(session, email, name="Marketer", is_admin=False) -> User:
    user = User(name=name, email=email, hashed_password=TEST_PASSWORD_HASH, is_admin=is_admin)
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def create_product(session, name="Premium Marketing Course", commission_type="percentage",
                         commission_value="30.00", **fields) -> Product:
    product = Product(
        name=name,
        commission_type=commission_type,
        commission_value=Decimal(commission_value),
        product_url=fields.pop("product_url", "https://example.com/product"),
        **fields,
    )
    session.add(product)
    await session.commit()
    await session.refresh(product)
    return product


async def earn(session, user_id, product_id, gross):
    """Attribute one sale of ``gross`` to the user through their link."""
    link, _ = await attribution.create_or_get_link(session, user_id, product_id)
    return await attribution.record_conversion(session, link.link_code, Decimal(gross))


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(user)}"}


@pytest_asyncio.fixture
async def marketer(test_session):
    return await create_user(test_session, "marketer@example.com", name="Mia Marketer")


@pytest_asyncio.fixture
async def admin_user(test_session):
    return await create_user(test_session, "admin@example.com", name="Admin", is_admin=True)


@pytest_asyncio.fixture
async def percentage_product(test_session):
    return await create_product(test_session, commission_type="percentage", commission_value="30.00")


@pytest_asyncio.fixture
async def fixed_product(test_session):
    return await create_product(
        test_session,
        name="Affiliate Marketing Guide",
        commission_type="fixed",
        commission_value="15.00",
        price="€39",
        price_value=Decimal("39.00"),
    )
