from typing import Annotated

from fastapi import Depends, Header
from loguru import logger
from pydantic import BaseModel

from app.utils.app_errors import AppError, AppErrorCode, HttpStatusCode


class User(BaseModel):
    user_id: str
    email: str | None = None


async def get_current_user(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_email: Annotated[str | None, Header()] = None,
) -> User:
    # Identity is asserted by the gateway in front of this service
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise AppError(
            errcode=AppErrorCode.E_BAD_TOKEN,
            errmesg="Missing user identity",
            status_code=HttpStatusCode.UNAUTHORIZED,
        )

    logger.debug("Authenticated user_id: {}", user_id)
    return User(user_id=user_id, email=(x_user_email or "").strip() or None)


CurrentUser = Annotated[User, Depends(get_current_user)]
