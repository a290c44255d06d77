"""
Bearer-token authentication dependency.

Tokens are issued elsewhere; this service only verifies the signature and
reads the caller's user id from the `userId` claim (falling back to `sub`).
"""
import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from watchhive.config import settings
from watchhive.errors import UnauthorizedError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def decode_user_id(token: str) -> str:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        logger.info("Rejected token: %s", exc)
        raise UnauthorizedError("Invalid or expired token") from exc

    user_id = payload.get("userId") or payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Token carries no user id")
    return str(user_id)


def create_access_token(user_id: str, extra: Optional[dict] = None) -> str:
    """Mint a token for local tooling (seed script, tests)."""
    claims = {"userId": user_id, **(extra or {})}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """FastAPI dependency: the authenticated caller's user id."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("No token provided")
    return decode_user_id(credentials.credentials)
