from typing import Annotated
from fastapi import APIRouter, Depends, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.auth import schemas, security
from app.models.user import User
from app.core.exceptions import NotFound, ValidationFailure
from app.core.responses import StandardResponse
from app.services.user_service import UserService

router = APIRouter()


async def _ensure_unique(
    db: AsyncSession,
    *,
    username: str | None,
    email: str | None,
    exclude_id: int | None = None,
    operation: str = "create_user",
) -> None:
    if username is not None:
        existing = await UserService.get_user_by_username(db, username)
        if existing is not None and existing.id != exclude_id:
            raise ValidationFailure("A user with this username already exists.", operation=operation, entity_id=exclude_id)
    if email is not None:
        existing = await UserService.get_user_by_email(db, email)
        if existing is not None and existing.id != exclude_id:
            raise ValidationFailure("A user with this email already exists.", operation=operation, entity_id=exclude_id)


@router.post("", response_model=StandardResponse[schemas.UserResponse], status_code=status.HTTP_201_CREATED)
async def register_user(
    user_in: schemas.UserCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    await _ensure_unique(db, username=user_in.username, email=user_in.email)

    # bcrypt is CPU bound; keep it off the event loop
    password_hash = await run_in_threadpool(security.get_password_hash, user_in.password)
    user = User(
        username=user_in.username,
        email=user_in.email,
        password_hash=password_hash,
        bio=user_in.bio,
    )
    user = await UserService.create_user(db, user)
    return StandardResponse(data=schemas.UserResponse.model_validate(user), message="User registered successfully")


@router.get("/{user_id}", response_model=StandardResponse[schemas.UserResponse])
async def get_user(
    user_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    user = await UserService.get_user_by_id(db, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found", operation="get_user", entity_id=user_id)
    return StandardResponse(data=schemas.UserResponse.model_validate(user))


@router.put("/{user_id}", response_model=StandardResponse[schemas.UserResponse])
async def update_user(
    user_id: int,
    data: schemas.UserUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Update username, email or bio."""
    if data.username is not None or data.email is not None:
        await _ensure_unique(
            db, username=data.username, email=data.email, exclude_id=user_id, operation="update_user"
        )
    user = await UserService.update_user(db, user_id, data)
    return StandardResponse(data=schemas.UserResponse.model_validate(user), message="User updated successfully")
