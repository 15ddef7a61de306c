import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import bcrypt
import jwt
from fastapi import HTTPException, Request

import config

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(12)).decode()


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        # malformed stored hash
        return False


def generate_token(user_id: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + timedelta(days=config.TOKEN_TTL_DAYS),
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def verify_token(token: str) -> Optional[str]:
    """Return the user id carried by a valid token, or None."""
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        logger.info("Rejected token: %s", e)
        return None
    return payload.get("sub")


def tokens_from_request(request: Request) -> List[str]:
    """Candidate tokens: the session cookie first, then a bearer header."""
    tokens = []
    cookie = request.cookies.get(config.TOKEN_COOKIE)
    if cookie:
        tokens.append(cookie)
    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        tokens.append(value.strip())
    return tokens


def get_current_user_id(request: Request) -> str:
    for token in tokens_from_request(request):
        user_id = verify_token(token)
        if user_id:
            return user_id
    raise HTTPException(status_code=401, detail="Unauthorized")
