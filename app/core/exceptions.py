import logging

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Internal server error"


class AppError(Exception):
    """Base class for errors raised by the service layer."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    public: bool = False

    def __init__(self, message: str, *, operation: str | None = None, entity_id: int | str | None = None):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.entity_id = entity_id


class ValidationFailure(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    public = True


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    public = True


class PersistenceFailure(AppError):
    """Storage-layer fault. The original error is kept on ``__cause__``."""


class HashingFailure(AppError):
    """The password hashing primitive failed or a stored secret is unreadable."""


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    # Raw input may carry a password; it is kept out of the log and the body.
    logger.warning(
        "Request validation failed on %s %s: %s",
        request.method,
        request.url.path,
        [".".join(str(part) for part in error.get("loc", ())) for error in errors],
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": jsonable_encoder([{key: value for key, value in error.items() if key != "input"} for error in errors]),
            "message": "Validation Error",
            "request_id": _request_id(request),
        },
    )


async def app_error_handler(request: Request, exc: AppError):
    operation = exc.operation or request.url.path
    if exc.public:
        logger.warning(
            "%s during %s (id=%s): %s",
            type(exc).__name__,
            operation,
            exc.entity_id,
            exc.message,
        )
        detail = exc.message
    else:
        # Internals stay in the log; the client gets a generic message.
        logger.error(
            "%s failed during %s (id=%s): %s",
            type(exc).__name__,
            operation,
            exc.entity_id,
            exc.__cause__ or exc.message,
        )
        detail = GENERIC_ERROR_MESSAGE
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": detail, "request_id": _request_id(request)},
    )
