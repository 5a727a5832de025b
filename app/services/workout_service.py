"""Transactional writes and reads for the workout aggregate.

A workout row and its entries are always persisted in one transaction: any
failure rolls the whole aggregate back, so a partially written workout is
never visible to a later read.
"""
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import NotFound, PersistenceFailure
from app.models.workout import Workout, WorkoutEntry
from app.schemas.workout import WorkoutCreate, WorkoutEntryData, WorkoutUpdate

logger = logging.getLogger(__name__)


def build_entry(data: WorkoutEntryData) -> WorkoutEntry:
    return WorkoutEntry(**data.model_dump())


def build_workout(data: WorkoutCreate) -> Workout:
    return Workout(
        user_id=data.user_id,
        title=data.title,
        description=data.description,
        duration_minutes=data.duration_minutes,
        calories_burned=data.calories_burned,
        entries=[build_entry(entry) for entry in data.entries],
    )


class WorkoutService:
    @staticmethod
    async def create_workout(db: AsyncSession, workout: Workout) -> Workout:
        """Insert ``workout`` and its entries, filling in their generated ids."""
        entries = list(workout.entries)
        title = workout.title
        try:
            # Parent first so every entry can be bound to its id.
            workout.entries = []
            db.add(workout)
            await db.flush()
            for entry in entries:
                entry.workout_id = workout.id
                workout.entries.append(entry)
                await db.flush()
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.exception("create_workout failed (title=%r, entries=%d)", title, len(entries))
            raise PersistenceFailure("failed to create workout", operation="create_workout") from exc

        logger.info("Created workout %s with %d entries", workout.id, len(entries))
        return workout

    @staticmethod
    async def get_workout_by_id(db: AsyncSession, workout_id: int) -> Workout | None:
        stmt = (
            select(Workout)
            .where(Workout.id == workout_id)
            .options(selectinload(Workout.entries))
            .execution_options(populate_existing=True)
        )
        try:
            result = await db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.exception("get_workout_by_id failed (id=%s)", workout_id)
            raise PersistenceFailure(
                "failed to load workout", operation="get_workout_by_id", entity_id=workout_id
            ) from exc

    @staticmethod
    async def list_workouts(
        db: AsyncSession,
        *,
        user_id: int | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Workout]:
        stmt = select(Workout).options(selectinload(Workout.entries)).order_by(Workout.id)
        if user_id is not None:
            stmt = stmt.where(Workout.user_id == user_id)
        stmt = stmt.offset(offset).limit(limit)
        try:
            result = await db.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as exc:
            logger.exception("list_workouts failed (user_id=%s)", user_id)
            raise PersistenceFailure("failed to list workouts", operation="list_workouts") from exc

    @staticmethod
    async def update_workout(db: AsyncSession, workout_id: int, changes: WorkoutUpdate) -> Workout:
        """Merge the fields present in ``changes`` into the stored workout.

        Entries are never merged one by one: a present ``entries`` list, even
        an empty one, supersedes every stored entry.
        """
        workout = await WorkoutService.get_workout_by_id(db, workout_id)
        if workout is None:
            raise NotFound(f"Workout {workout_id} not found", operation="update_workout", entity_id=workout_id)

        present = changes.present_fields()
        changed = sorted(present)
        entries = present.pop("entries", None)
        try:
            for field, value in present.items():
                setattr(workout, field, value)
            if entries is not None:
                workout.entries = [build_entry(entry) for entry in entries]
            await db.flush()
            await db.commit()
            await db.refresh(workout, attribute_names=["entries"])
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.exception("update_workout failed (id=%s)", workout_id)
            raise PersistenceFailure(
                "failed to update workout", operation="update_workout", entity_id=workout_id
            ) from exc

        logger.info("Updated workout %s (fields=%s)", workout_id, changed)
        return workout

    @staticmethod
    async def delete_workout(db: AsyncSession, workout_id: int) -> None:
        """Delete a workout together with its entries."""
        workout = await WorkoutService.get_workout_by_id(db, workout_id)
        if workout is None:
            raise NotFound(f"Workout {workout_id} not found", operation="delete_workout", entity_id=workout_id)

        try:
            await db.delete(workout)
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.exception("delete_workout failed (id=%s)", workout_id)
            raise PersistenceFailure(
                "failed to delete workout", operation="delete_workout", entity_id=workout_id
            ) from exc

        logger.info("Deleted workout %s", workout_id)
