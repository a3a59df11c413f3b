import pytest

from affiliate.services import users
from core.errors import AuthenticationError, ConflictError, NotFoundError


@pytest.mark.asyncio
async def test_register_and_authenticate(test_session):
    user = await users.register_user(test_session, "Ann", "  Ann@Example.com ", "hunter22")

    assert user.email == "ann@example.com"
    assert user.is_admin is False
    assert user.hashed_password != "hunter22"

    found = await users.authenticate_user(test_session, "ANN@example.com", "hunter22")
    assert found.id == user.id


@pytest.mark.asyncio
async def test_register_duplicate_email(test_session):
    await users.register_user(test_session, "Ann", "ann@example.com", "hunter22")

    with pytest.raises(ConflictError):
        await users.register_user(test_session, "Other Ann", "ANN@example.com", "secret99")


@pytest.mark.asyncio
async def test_authenticate_rejects_bad_credentials(test_session):
    await users.register_user(test_session, "Ann", "ann@example.com", "hunter22")

    with pytest.raises(AuthenticationError):
        await users.authenticate_user(test_session, "ann@example.com", "wrong-password")
    with pytest.raises(AuthenticationError):
        await users.authenticate_user(test_session, "nobody@example.com", "hunter22")


@pytest.mark.asyncio
async def test_get_user_missing(test_session):
    with pytest.raises(NotFoundError):
        await users.get_user(test_session, 42)


@pytest.mark.asyncio
async def test_ensure_admin_creates_then_promotes(test_session):
    admin = await users.ensure_admin(test_session, "root@example.com", "rootpass1", name="Root")
    assert admin.is_admin is True

    again = await users.ensure_admin(test_session, "root@example.com", "other-password")
    assert again.id == admin.id
    # Existing password is kept
    await users.authenticate_user(test_session, "root@example.com", "rootpass1")

    plain = await users.register_user(test_session, "Bob", "bob@example.com", "bobpass1")
    promoted = await users.ensure_admin(test_session, "bob@example.com", "ignored")
    assert promoted.id == plain.id
    assert promoted.is_admin is True
