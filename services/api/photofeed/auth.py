"""
Identity boundary.

The identity provider authenticates users and issues bearer JWTs; this
service only verifies the signature and reads the ``sub`` claim as the
opaque principal. Mapping the principal to an internal user is the job of
photofeed.services.identity.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from photofeed.config import settings
from photofeed.errors import Unauthorized

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(principal: str, expires_delta: Optional[timedelta] = None) -> str:
    """Mint a token the way the identity provider does (dev tooling and tests)."""
    now = datetime.now(timezone.utc)
    claims = {
        "sub": principal,
        "iat": now,
        "exp": now + (expires_delta or timedelta(hours=1)),
    }
    if settings.auth_jwt_audience:
        claims["aud"] = settings.auth_jwt_audience
    if settings.auth_jwt_issuer:
        claims["iss"] = settings.auth_jwt_issuer
    return jwt.encode(claims, settings.auth_jwt_secret, algorithm=settings.auth_jwt_algorithm)


def decode_principal(token: str) -> str:
    """Verify a bearer token and return its principal, or raise Unauthorized."""
    try:
        payload = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience,
            issuer=settings.auth_jwt_issuer,
            options={"verify_aud": settings.auth_jwt_audience is not None},
        )
    except JWTError as exc:
        logger.info("Rejected bearer token: %s", exc)
        raise Unauthorized("Invalid authentication token") from exc

    principal = payload.get("sub")
    if not principal:
        raise Unauthorized("Token has no subject")
    return principal


async def current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    """The request's principal, or None when no credentials were sent."""
    if credentials is None:
        return None
    return decode_principal(credentials.credentials)


async def require_principal(
    principal: Optional[str] = Depends(current_principal),
) -> str:
    if principal is None:
        raise Unauthorized()
    return principal
