"""Request authentication.

Every request carries its own session: the Supabase access token sent as
`Authorization: Bearer <token>`. Handlers receive the verified user through
the `AuthorizedUser` / `OptionalUser` dependencies instead of reading any
process-wide auth state.
"""

import logging
import os
from typing import Annotated, Any, Dict, Optional

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

logger = logging.getLogger(__name__)

JWT_ALGORITHMS = ["HS256"]
JWT_AUDIENCE = "authenticated"

security = HTTPBearer(auto_error=False)


class User(BaseModel):
    """The signed-in user, as described by the access token claims."""
    sub: str
    email: Optional[str] = None
    role: Optional[str] = None
    user_metadata: Dict[str, Any] = {}


def decode_access_token(token: str) -> User:
    """Verify a Supabase access token and return its user.

    Raises:
        HTTPException: 401 if the token is expired, malformed or signed with another key
    """
    secret = os.environ.get("SUPABASE_JWT_SECRET")
    if not secret:
        logger.error("SUPABASE_JWT_SECRET is not set; rejecting request")
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=JWT_ALGORITHMS,
            audience=JWT_AUDIENCE,
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Session expired")
    except jwt.InvalidTokenError as e:
        logger.info(f"Rejected access token: {e}")
        raise HTTPException(status_code=401, detail="Unauthorized")

    if not claims.get("sub"):
        raise HTTPException(status_code=401, detail="Unauthorized")

    return User(
        sub=claims["sub"],
        email=claims.get("email"),
        role=claims.get("role"),
        user_metadata=claims.get("user_metadata") or {},
    )


async def get_authorized_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> User:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return decode_access_token(credentials.credentials)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[User]:
    if credentials is None:
        return None
    return decode_access_token(credentials.credentials)


AuthorizedUser = Annotated[User, Depends(get_authorized_user)]
OptionalUser = Annotated[Optional[User], Depends(get_optional_user)]
