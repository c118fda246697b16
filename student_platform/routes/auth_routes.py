import logging
import re
from functools import lru_cache

from fastapi import APIRouter, Depends, status
from pydantic import field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from student_platform.auth.dependencies import get_current_identity
from student_platform.auth.jwt_handler import TokenIdentity, TokenService, get_token_service
from student_platform.auth.passwords import hash_password, verify_password
from student_platform.core.errors import Conflict, InternalError, InvalidCredentials, NotFound, ValidationFailed
from student_platform.database import get_db
from student_platform.models.user import ROLE_STUDENT, User
from student_platform.schemas import ApiModel, MessageResponse

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r'^5\d{8}$')
# bcrypt only reads the first 72 bytes of a password.
MAX_PASSWORD_BYTES = 72


class RegisterRequest(ApiModel):
    full_name: str
    phone: str
    university: str
    major: str
    batch: str
    password: str

    @field_validator('full_name', 'university', 'major', 'batch')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('This field is required.')
        return normalized


class LoginRequest(ApiModel):
    phone: str
    password: str


class UserProfile(ApiModel):
    id: int
    full_name: str
    phone: str
    university: str
    major: str
    batch: str
    role: str


class LoginResponse(ApiModel):
    token: str
    user: UserProfile


def validate_phone(phone: str) -> str:
    if not PHONE_PATTERN.fullmatch(phone or ''):
        raise ValidationFailed('Invalid phone number.')
    return phone


def validate_password(password: str) -> str:
    if not password:
        raise ValidationFailed('Password is required.')
    if len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
        raise ValidationFailed(f'Password must be at most {MAX_PASSWORD_BYTES} bytes.')
    return password


@lru_cache(maxsize=1)
def _placeholder_hash() -> str:
    return hash_password('placeholder-password')


@router.post('/register', response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    validate_phone(data.phone)
    validate_password(data.password)

    try:
        existing_user = db.query(User).filter(User.phone == data.phone).first()
        if existing_user:
            raise Conflict('Phone number is already registered.')

        user = User(
            full_name=data.full_name,
            phone=data.phone,
            university=data.university,
            major=data.major,
            batch=data.batch,
            hashed_password=hash_password(data.password),
            role=ROLE_STUDENT,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError as exc:
        # Lost a race with a concurrent registration for the same phone.
        db.rollback()
        raise Conflict('Phone number is already registered.') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to register user')
        raise InternalError() from exc

    logger.info('Registered user %s', user.id)
    return MessageResponse(message='Account created successfully.')


@router.post('/login', response_model=LoginResponse)
def login(
    data: LoginRequest,
    db: Session = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
):
    try:
        user = db.query(User).filter(User.phone == data.phone).first()
    except SQLAlchemyError as exc:
        logger.exception('Failed to look up user for login')
        raise InternalError() from exc

    if user is None:
        # Spend the same hashing time as a real check.
        verify_password(data.password, _placeholder_hash())
        raise InvalidCredentials()

    if not verify_password(data.password, user.hashed_password):
        raise InvalidCredentials()

    token = token_service.create_access_token(user.id, user.role)
    return LoginResponse(token=token, user=UserProfile.model_validate(user))


@router.get('/me', response_model=UserProfile)
def me(
    identity: TokenIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    try:
        user = db.get(User, identity.user_id)
    except SQLAlchemyError as exc:
        logger.exception('Failed to load current user')
        raise InternalError() from exc

    if user is None:
        raise NotFound('User not found.')
    return UserProfile.model_validate(user)
