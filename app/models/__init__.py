from app.models.user import User
from app.models.workout import Workout, WorkoutEntry


__all__ = [
    "User",
    "Workout",
    "WorkoutEntry",
]
