import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.schemas import UserUpdate
from app.core.exceptions import NotFound, PersistenceFailure, ValidationFailure
from app.models.user import User

logger = logging.getLogger(__name__)

DUPLICATE_USER_MESSAGE = "A user with this username or email already exists."


class UserService:
    @staticmethod
    async def create_user(db: AsyncSession, user: User) -> User:
        """Insert ``user``; id and timestamps are filled in from storage."""
        username = user.username
        try:
            db.add(user)
            await db.commit()
            await db.refresh(user)
        except IntegrityError as exc:
            # A concurrent insert won the unique constraint after the pre-check.
            await db.rollback()
            raise ValidationFailure(DUPLICATE_USER_MESSAGE, operation="create_user", entity_id=username) from exc
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.exception("create_user failed (username=%r)", username)
            raise PersistenceFailure("failed to create user", operation="create_user") from exc

        logger.info("Created user %s", user.id)
        return user

    @staticmethod
    async def _fetch_one(db: AsyncSession, stmt, *, operation: str, entity_id=None) -> User | None:
        try:
            result = await db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.exception("%s failed (id=%s)", operation, entity_id)
            raise PersistenceFailure("failed to load user", operation=operation, entity_id=entity_id) from exc

    @staticmethod
    async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
        return await UserService._fetch_one(
            db, select(User).where(User.id == user_id), operation="get_user_by_id", entity_id=user_id
        )

    @staticmethod
    async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
        return await UserService._fetch_one(
            db, select(User).where(User.username == username), operation="get_user_by_username", entity_id=username
        )

    @staticmethod
    async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
        return await UserService._fetch_one(
            db, select(User).where(User.email == email), operation="get_user_by_email", entity_id=email
        )

    @staticmethod
    async def update_user(db: AsyncSession, user_id: int, changes: UserUpdate) -> User:
        """Apply the username, email and bio values present in ``changes``."""
        user = await UserService.get_user_by_id(db, user_id)
        if user is None:
            raise NotFound(f"User {user_id} not found", operation="update_user", entity_id=user_id)

        update_data = {key: value for key, value in changes.model_dump(exclude_unset=True).items() if value is not None}
        try:
            for key, value in update_data.items():
                setattr(user, key, value)
            await db.commit()
            await db.refresh(user)
        except IntegrityError as exc:
            await db.rollback()
            raise ValidationFailure(DUPLICATE_USER_MESSAGE, operation="update_user", entity_id=user_id) from exc
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.exception("update_user failed (id=%s)", user_id)
            raise PersistenceFailure("failed to update user", operation="update_user", entity_id=user_id) from exc

        logger.info("Updated user %s (fields=%s)", user_id, sorted(update_data))
        return user
