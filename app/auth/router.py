import logging
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.auth import schemas, security
from app.core.responses import StandardResponse
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter()


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Incorrect username or password",
        headers={"WWW-Authenticate": "Bearer"},
    )


@router.post("/login", response_model=StandardResponse[schemas.Token])
async def login(
    login_data: schemas.LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)]
):
    user = await UserService.get_user_by_username(db, login_data.username)
    if user is None:
        raise _credentials_exception()

    # A broken stored secret raises HashingFailure and surfaces as a 500.
    matches = await run_in_threadpool(security.verify_password, login_data.password, user.password_hash)
    if not matches:
        logger.info("Rejected login for user %s", user.id)
        raise _credentials_exception()

    access_token = security.create_access_token(subject=user.username)
    return StandardResponse(
        data=schemas.Token(access_token=access_token, token_type="bearer"),
        message="Login Successful"
    )
