import uuid
from datetime import datetime, timedelta, timezone

import jwt

from backend.core import config

def create_session_token(user_id: int, expires_minutes: int | None = None) -> str:
    expire_minutes = expires_minutes or config.SESSION_EXPIRES_MINUTES
    expire = datetime.now(timezone.utc) + timedelta(minutes=expire_minutes)
    payload = {
        "sub": str(user_id),
        "jti": uuid.uuid4().hex,
        "exp": expire,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, config.SESSION_SECRET_KEY, algorithm=config.SESSION_ALGORITHM)


def decode_session_token(token: str) -> dict:
    return jwt.decode(token, config.SESSION_SECRET_KEY, algorithms=[config.SESSION_ALGORITHM])
