"""Server-side logout: a revoked token id is refused until the token expires."""

import logging
from datetime import datetime, timezone
from typing import Optional

import jwt
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.models.revoked_session import RevokedSession

logger = logging.getLogger(__name__)


def is_revoked(db: Session, jti: Optional[str]) -> bool:
    return bool(jti) and db.get(RevokedSession, jti) is not None


def revoke_session_token(db: Session, token: Optional[str]) -> bool:
    """Record ``token`` as logged out. Returns False for tokens that are already unusable."""
    if not token:
        return False
    try:
        payload = jwt_handler.decode_session_token(token)
    except jwt.PyJWTError:
        return False

    jti = payload.get('jti')
    subject = payload.get('sub')
    if not jti or not str(subject).isdigit() or is_revoked(db, jti):
        return False

    now = datetime.now(timezone.utc)
    db.query(RevokedSession).filter(RevokedSession.expires_at < now).delete(synchronize_session=False)
    db.add(RevokedSession(
        jti=jti,
        user_id=int(subject),
        expires_at=datetime.fromtimestamp(payload['exp'], timezone.utc),
    ))
    db.commit()
    logger.debug('Revoked session %s for user %s', jti, subject)
    return True
