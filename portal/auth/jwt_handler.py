# portal/auth/jwt_handler.py
# Uses python-jose to create/verify the portal's HS256 tokens
from datetime import datetime, timedelta
from typing import Dict, Any, Optional

from jose import jwt, JWTError

from portal.config import JWT_SECRET

ALGORITHM = "HS256"

# every token carries a purpose so one kind can't be replayed as another
PURPOSE_ACCESS = "access"
PURPOSE_STORAGE = "storage"
PURPOSE_RESET = "password_reset"


def create_token(payload: Dict[str, Any], purpose: str, expires_in: timedelta) -> str:
    """
    Create a JWT with ``exp`` and ``purpose`` claims.
    payload: a dict, e.g. {"sub": "<user id>", "sid": "<session id>"}
    """
    to_encode = payload.copy()
    to_encode.update({"exp": datetime.utcnow() + expires_in, "purpose": purpose})
    return jwt.encode(to_encode, JWT_SECRET, algorithm=ALGORITHM)


def decode_token(token: str, purpose: str) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a token. Returns the payload on success, None when the
    token is malformed, expired, or minted for another purpose.
    """
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if payload.get("purpose") != purpose:
        return None
    return payload
