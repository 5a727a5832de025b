from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class WorkoutEntryData(BaseModel):
    exercise_name: str = Field(min_length=1)
    sets: int = Field(default=0, ge=0)
    reps: int | None = Field(default=None, ge=0)  # None means not tracked
    duration_seconds: int | None = Field(default=None, ge=0)
    weight: float | None = Field(default=None, ge=0)
    notes: str = ""
    order_index: int = Field(default=0, ge=0)

    @field_validator("exercise_name")
    @classmethod
    def normalize_exercise_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("exercise_name is required")
        return normalized


class WorkoutEntryResponse(WorkoutEntryData):
    model_config = ConfigDict(from_attributes=True)

    id: int


class WorkoutCreate(BaseModel):
    user_id: int | None = None
    title: str = Field(min_length=1)
    description: str = ""
    duration_minutes: int = Field(default=0, ge=0)
    calories_burned: int = Field(default=0, ge=0)
    entries: List[WorkoutEntryData] = Field(default_factory=list)


class WorkoutUpdate(BaseModel):
    """Partial update. Omitted or null fields keep their stored value.

    ``entries``, when given (even as ``[]``), replaces the whole collection.
    """

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    duration_minutes: int | None = Field(default=None, ge=0)
    calories_burned: int | None = Field(default=None, ge=0)
    entries: List[WorkoutEntryData] | None = None

    def present_fields(self) -> dict:
        return {
            field: getattr(self, field)
            for field in self.model_fields_set
            if getattr(self, field) is not None
        }


class WorkoutResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int | None = None
    title: str
    description: str
    duration_minutes: int
    calories_burned: int
    entries: List[WorkoutEntryResponse] = Field(default_factory=list)
