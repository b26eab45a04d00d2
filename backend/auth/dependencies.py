import logging
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from backend.auth import jwt_handler, revocation
from backend.core import config
from backend.database import get_db
from backend.models.user import User
from backend.policy.visibility import ANONYMOUS, Requester

logger = logging.getLogger(__name__)


def load_session_user(token: Optional[str], db: Session) -> Optional[User]:
    if not token:
        return None
    try:
        payload = jwt_handler.decode_session_token(token)
    except jwt.PyJWTError:
        logger.debug('Ignoring invalid or expired session token')
        return None

    subject = payload.get('sub')
    if not subject or not str(subject).isdigit():
        return None
    if revocation.is_revoked(db, payload.get('jti')):
        logger.debug('Ignoring logged-out session token')
        return None
    return db.get(User, int(subject))


def get_session_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    return load_session_user(request.cookies.get(config.SESSION_COOKIE_NAME), db)


def requester_for(user: Optional[User]) -> Requester:
    if user is None:
        return ANONYMOUS
    return Requester(user_id=user.id, is_admin=bool(user.is_admin))


def get_requester(user: Optional[User] = Depends(get_session_user)) -> Requester:
    """Identity for routes where logging in is optional."""
    return requester_for(user)


def get_current_user(user: Optional[User] = Depends(get_session_user)) -> User:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Not logged in!')
    return user


def get_logged_in_requester(user: User = Depends(get_current_user)) -> Requester:
    return requester_for(user)


def get_admin_requester(user: Optional[User] = Depends(get_session_user)) -> Requester:
    # Admin-only routes answer 404 to everybody else, as if they did not exist.
    if user is None or not user.is_admin:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Not Found')
    logger.info('Admin user %s authorized', user.email)
    return requester_for(user)


def require_logged_out(user: Optional[User] = Depends(get_session_user)) -> None:
    if user is not None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Already logged in!')
