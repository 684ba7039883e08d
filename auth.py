from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

import config
from database import Database
from errors import Forbidden, Unauthorized
from schemas import Role, TokenRequest

security = HTTPBearer(auto_error=False)


def get_database(request: Request) -> Database:
    return request.app.state.database


def create_access_token(claims: dict, expires_minutes: int | None = None) -> str:
    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    now = datetime.now(timezone.utc)
    payload = dict(claims)
    payload.update({"iat": now, "exp": now + timedelta(minutes=expire_minutes)})
    return jwt.encode(payload, config.ACCESS_TOKEN_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, config.ACCESS_TOKEN_SECRET, algorithms=[config.JWT_ALGORITHM])


def authenticate_caller(payload: TokenRequest) -> dict:
    """Claims to sign for ``POST /jwt``.

    Identity is taken from the payload as-is. Override this dependency to
    put a real credential check in front of token issuance.
    """
    return payload.model_dump(mode="json", exclude_none=True)


def verify_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> dict:
    if credentials is None:
        raise Unauthorized()
    try:
        claims = decode_access_token(credentials.credentials)
    except jwt.PyJWTError as exc:
        raise Unauthorized() from exc
    if not claims.get("email"):
        raise Unauthorized()
    return claims


def require_admin(
    claims: dict = Depends(verify_token),
    db: Database = Depends(get_database),
) -> dict:
    user = db.users.find_one({"email": claims["email"]})
    if not user or user.get("role") != Role.admin.value:
        raise Forbidden("forbidden message")
    return claims
