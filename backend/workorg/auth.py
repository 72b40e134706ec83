import logging
from typing import Optional

import jwt
from fastapi import Header, HTTPException

from workorg import config

logger = logging.getLogger(__name__)


def decode_token(token: str) -> Optional[str]:
    """Return the user id carried by a bearer token, or None if it does not verify."""
    if not token:
        return None
    try:
        claims = jwt.decode(token, config.JWT_SECRET, algorithms=["HS256"])
    except jwt.PyJWTError as e:
        logger.info(f"Rejected token: {e}")
        return None
    user_id = claims.get("userId")
    return str(user_id) if user_id else None


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def get_current_user(authorization: Optional[str] = Header(default=None)) -> str:
    user_id = decode_token(bearer_token(authorization))
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid or missing token")
    return user_id
