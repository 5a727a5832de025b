import logging

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.auth import security
from app.auth.schemas import UserUpdate
from app.config import settings
from app.core.exceptions import ValidationFailure
from app.models.user import User
from app.services.user_service import UserService

USERS_URL = f"{settings.API_V1_STR}/users"


def _register_payload(**overrides):
    payload = {
        "username": "lifter",
        "email": "lifter@example.com",
        "password": "password123",
        "bio": "Squats daily",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_register_user_hides_secret(client: AsyncClient, db_session: AsyncSession):
    response = await client.post(USERS_URL, json=_register_payload())
    assert response.status_code == 201
    data = response.json()["data"]
    assert isinstance(data["id"], int)
    assert data["username"] == "lifter"
    assert data["bio"] == "Squats daily"
    assert "password" not in data
    assert "password_hash" not in data
    assert "password123" not in response.text

    user = (await db_session.execute(select(User).where(User.id == data["id"]))).scalar_one()
    assert user.password_hash != "password123"
    assert security.verify_password("password123", user.password_hash)


@pytest.mark.asyncio
async def test_register_bio_is_optional(client: AsyncClient):
    payload = _register_payload()
    del payload["bio"]
    response = await client.post(USERS_URL, json=payload)
    assert response.status_code == 201
    assert response.json()["data"]["bio"] == ""


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"username": ""},
        {"username": "u" * 51},
        {"email": "not-an-email"},
        {"email": ""},
        {"password": ""},
        {"password": "p" * 73},
    ],
)
async def test_register_validation_failures(client: AsyncClient, db_session: AsyncSession, overrides):
    response = await client.post(USERS_URL, json=_register_payload(**overrides))
    assert response.status_code == 400
    assert (await db_session.execute(select(User))).scalars().all() == []


@pytest.mark.asyncio
async def test_register_duplicate_username_or_email(client: AsyncClient):
    assert (await client.post(USERS_URL, json=_register_payload())).status_code == 201

    same_username = await client.post(USERS_URL, json=_register_payload(email="other@example.com"))
    assert same_username.status_code == 400
    assert same_username.json()["detail"] == "A user with this username already exists."

    same_email = await client.post(USERS_URL, json=_register_payload(username="other"))
    assert same_email.status_code == 400
    assert same_email.json()["detail"] == "A user with this email already exists."


@pytest.mark.asyncio
async def test_get_user(client: AsyncClient):
    created = (await client.post(USERS_URL, json=_register_payload())).json()["data"]

    response = await client.get(f"{USERS_URL}/{created['id']}")
    assert response.status_code == 200
    assert response.json()["data"]["email"] == "lifter@example.com"

    assert (await client.get(f"{USERS_URL}/404")).status_code == 404


@pytest.mark.asyncio
async def test_update_user_partial(client: AsyncClient):
    created = (await client.post(USERS_URL, json=_register_payload())).json()["data"]

    response = await client.put(f"{USERS_URL}/{created['id']}", json={"bio": "Deadlifts too"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["bio"] == "Deadlifts too"
    assert data["username"] == "lifter"
    assert data["email"] == "lifter@example.com"


@pytest.mark.asyncio
async def test_update_user_conflicts_and_missing(client: AsyncClient):
    first = (await client.post(USERS_URL, json=_register_payload())).json()["data"]
    await client.post(USERS_URL, json=_register_payload(username="second", email="second@example.com"))

    taken = await client.put(f"{USERS_URL}/{first['id']}", json={"username": "second"})
    assert taken.status_code == 400

    unchanged = await client.put(f"{USERS_URL}/{first['id']}", json={"username": "lifter"})
    assert unchanged.status_code == 200

    missing = await client.put(f"{USERS_URL}/999", json={"bio": "ghost"})
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_update_user_email_taken_by_another(client: AsyncClient):
    first = (await client.post(USERS_URL, json=_register_payload())).json()["data"]
    await client.post(USERS_URL, json=_register_payload(username="second", email="second@example.com"))

    response = await client.put(
        f"{USERS_URL}/{first['id']}",
        json={"username": "lifter", "email": "second@example.com"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "A user with this email already exists."


@pytest.mark.asyncio
async def test_update_user_rejects_blank_username(client: AsyncClient):
    created = (await client.post(USERS_URL, json=_register_payload())).json()["data"]

    response = await client.put(f"{USERS_URL}/{created['id']}", json={"username": "   "})
    assert response.status_code == 400

    fetched = await client.get(f"{USERS_URL}/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["data"]["username"] == "lifter"


@pytest.mark.asyncio
async def test_update_user_strips_username(client: AsyncClient):
    created = (await client.post(USERS_URL, json=_register_payload())).json()["data"]

    response = await client.put(f"{USERS_URL}/{created['id']}", json={"username": "  bencher  "})
    assert response.status_code == 200
    assert response.json()["data"]["username"] == "bencher"


@pytest.mark.asyncio
async def test_create_user_unique_violation_is_validation_failure(db_session: AsyncSession):
    await UserService.create_user(
        db_session, User(username="lifter", email="lifter@example.com", password_hash="x")
    )

    with pytest.raises(ValidationFailure) as exc_info:
        await UserService.create_user(
            db_session, User(username="lifter", email="other@example.com", password_hash="x")
        )
    assert exc_info.value.message == "A user with this username or email already exists."

    users = (await db_session.execute(select(User))).scalars().all()
    assert [user.email for user in users] == ["lifter@example.com"]


@pytest.mark.asyncio
async def test_update_user_unique_violation_is_validation_failure(db_session: AsyncSession):
    await UserService.create_user(
        db_session, User(username="lifter", email="lifter@example.com", password_hash="x")
    )
    second = await UserService.create_user(
        db_session, User(username="second", email="second@example.com", password_hash="x")
    )

    with pytest.raises(ValidationFailure):
        await UserService.update_user(db_session, second.id, UserUpdate(email="lifter@example.com"))


@pytest.mark.asyncio
async def test_validation_errors_never_echo_password(client: AsyncClient, caplog):
    secret = "s3cret-" + "p" * 80
    with caplog.at_level(logging.WARNING, logger="app.core.exceptions"):
        response = await client.post(USERS_URL, json=_register_payload(password=secret))

    assert response.status_code == 400
    assert secret not in response.text
    assert any("password" in record.getMessage() for record in caplog.records)
    assert all(secret not in record.getMessage() for record in caplog.records)
