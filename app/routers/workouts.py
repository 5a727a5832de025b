from typing import Annotated, List

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFound
from app.core.responses import StandardResponse
from app.database import get_db
from app.schemas.workout import WorkoutCreate, WorkoutResponse, WorkoutUpdate
from app.services.workout_service import WorkoutService, build_workout

router = APIRouter()


@router.post("", response_model=StandardResponse[WorkoutResponse], status_code=status.HTTP_201_CREATED)
async def create_workout(
    data: WorkoutCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a workout together with its entries."""
    workout = await WorkoutService.create_workout(db, build_workout(data))
    return StandardResponse(data=WorkoutResponse.model_validate(workout), message="Workout created")


@router.get("", response_model=StandardResponse[List[WorkoutResponse]])
async def list_workouts(
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: int | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    workouts = await WorkoutService.list_workouts(db, user_id=user_id, limit=limit, offset=offset)
    return StandardResponse(data=[WorkoutResponse.model_validate(w) for w in workouts])


@router.get("/{workout_id}", response_model=StandardResponse[WorkoutResponse])
async def get_workout(
    workout_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    workout = await WorkoutService.get_workout_by_id(db, workout_id)
    if workout is None:
        raise NotFound(f"Workout {workout_id} not found", operation="get_workout", entity_id=workout_id)
    return StandardResponse(data=WorkoutResponse.model_validate(workout))


@router.put("/{workout_id}", response_model=StandardResponse[WorkoutResponse])
async def update_workout(
    workout_id: int,
    data: WorkoutUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Partially update a workout; a supplied entries list replaces the stored one."""
    workout = await WorkoutService.update_workout(db, workout_id, data)
    return StandardResponse(data=WorkoutResponse.model_validate(workout), message="Workout updated")


@router.delete("/{workout_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workout(
    workout_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    await WorkoutService.delete_workout(db, workout_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
