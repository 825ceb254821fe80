"""
Request dependencies: the authenticated user id from a Bearer JWT.

Tokens are issued by the login/OTP flow (HS256, payload {"userId": ...}); here we only verify.
"""
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Header

from app.config import settings
from app.core.errors import MSG_TOKEN_INVALID, MSG_UNAUTHORIZED, UnauthorizedError

JWT_ALGORITHM = "HS256"


def create_access_token(user_id: str, expires_in: timedelta = timedelta(days=7)) -> str:
    now = datetime.now(timezone.utc)
    return jwt.encode(
        {"userId": user_id, "iat": now, "exp": now + expires_in},
        settings.jwt_secret,
        algorithm=JWT_ALGORITHM,
    )


def get_current_user_id(authorization: str | None = Header(None)) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError(MSG_UNAUTHORIZED)
    token = authorization.split(" ", 1)[1].strip()
    if not settings.jwt_secret:
        raise UnauthorizedError(MSG_TOKEN_INVALID)
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError:
        raise UnauthorizedError(MSG_TOKEN_INVALID)
    user_id = payload.get("userId")
    if not isinstance(user_id, str) or not user_id:
        raise UnauthorizedError(MSG_TOKEN_INVALID)
    return user_id
