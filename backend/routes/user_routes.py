import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.auth import jwt_handler, revocation
from backend.auth.dependencies import get_admin_requester, get_current_user, require_logged_out
from backend.auth.passwords import hash_password, verify_password
from backend.core import config
from backend.core.schema import ApiModel
from backend.database import get_db
from backend.models.user import User
from backend.policy.visibility import Requester

router = APIRouter(tags=['users'])

logger = logging.getLogger(__name__)

MAX_PASSWORD_BYTES = 72


def _normalize_email(value: str) -> str:
    normalized = value.strip().lower()
    if not normalized or '@' not in normalized:
        raise ValueError('A valid email is required.')
    return normalized


class SignupRequest(ApiModel):
    name: str
    email: str
    password: str

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name is required.')
        return normalized

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not value:
            raise ValueError('Password is required.')
        if len(value.encode('utf-8')) > MAX_PASSWORD_BYTES:
            raise ValueError(f'Password must be {MAX_PASSWORD_BYTES} bytes or fewer.')
        return value


class LoginRequest(ApiModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _normalize_email(value)


class UpdateUserRequest(ApiModel):
    is_admin: bool = False


class UserResponse(ApiModel):
    id: int
    name: str
    email: str
    is_admin: bool


class PublicUserResponse(ApiModel):
    id: int
    name: str
    email: str


def set_session_cookie(response: Response, user: User) -> None:
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=jwt_handler.create_session_token(user.id),
        max_age=config.SESSION_EXPIRES_MINUTES * 60,
        httponly=True,
        secure=config.SESSION_COOKIE_SECURE,
        samesite='lax',
    )


@router.post('/signup', status_code=status.HTTP_201_CREATED)
def signup(data: SignupRequest, db: Session = Depends(get_db), _: None = Depends(require_logged_out)):
    if db.query(User.id).filter(User.email == data.email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='Email already in use')

    user = User(name=data.name, email=data.email, hashed_password=hash_password(data.password), is_admin=False)
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='Email already in use') from exc

    logger.info('New user signed up: %s', user.email)
    return {'id': user.id}


@router.post('/login', response_model=UserResponse)
def login(
    data: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    _: None = Depends(require_logged_out),
):
    user = db.query(User).filter(User.email == data.email).first()
    if user is None or not verify_password(data.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid email or password')

    set_session_cookie(response, user)
    logger.info('User logged in: %s', user.email)
    return UserResponse.model_validate(user)


@router.post('/logout')
def logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    revocation.revoke_session_token(db, request.cookies.get(config.SESSION_COOKIE_NAME))
    response.delete_cookie(key=config.SESSION_COOKIE_NAME)
    logger.info('User logged out: %s', user.email)
    return {'success': True}


@router.get('', response_model=UserResponse)
@router.get('/me', response_model=UserResponse)
@router.get('/info', response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    return UserResponse.model_validate(user)


@router.get('/{user_id}', response_model=PublicUserResponse)
def get_user(user_id: int, db: Session = Depends(get_db)):
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='User not found')
    return PublicUserResponse.model_validate(user)


@router.put('/{user_id}')
def update_user(
    user_id: int,
    data: UpdateUserRequest,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_admin_requester),
):
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='User not found')

    user.is_admin = data.is_admin
    db.commit()
    logger.info('Admin %s set isAdmin=%s on user %s', requester.user_id, data.is_admin, user_id)
    return {'success': True}
