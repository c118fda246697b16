import io
import os

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret-key-0123456789-abcdefghij')
os.environ.setdefault('BCRYPT_ROUNDS', '4')
os.environ.setdefault('MEDIA_BACKEND', 'memory')

import pytest  # noqa: E402
from PIL import Image as PILImage  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from student_platform.auth.jwt_handler import TokenService  # noqa: E402
from student_platform.auth.passwords import hash_password  # noqa: E402
from student_platform.database import Base  # noqa: E402
from student_platform.models.image import Image  # noqa: E402
from student_platform.models.message import Message  # noqa: E402
from student_platform.models.user import ROLE_ADMIN, ROLE_STUDENT, User  # noqa: E402
from student_platform.services.media_storage import InMemoryMediaStorage  # noqa: E402

TEST_PASSWORD = 'correct-horse'
TABLES = [User.__table__, Message.__table__, Image.__table__]


@pytest.fixture
def db_engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine, tables=TABLES)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine, tables=list(reversed(TABLES)))
        engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def token_service() -> TokenService:
    return TokenService(secret_key='test-secret-key-0123456789-abcdefghij', expires_days=7)


@pytest.fixture
def media_storage() -> InMemoryMediaStorage:
    return InMemoryMediaStorage()


@pytest.fixture
def make_user(db):
    def _make_user(phone: str, *, role: str = ROLE_STUDENT, full_name: str = 'Test Student',
                   password: str = TEST_PASSWORD) -> User:
        user = User(
            full_name=full_name,
            phone=phone,
            university='King Saud University',
            major='Computer Science',
            batch='2024',
            hashed_password=hash_password(password),
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def student(make_user) -> User:
    return make_user('512345678', full_name='Sara Student')


@pytest.fixture
def admin(make_user) -> User:
    return make_user('500000000', role=ROLE_ADMIN, full_name='Platform Admin')


@pytest.fixture
def jpeg_bytes() -> bytes:
    buffer = io.BytesIO()
    PILImage.new('RGB', (4, 4), color=(200, 30, 30)).save(buffer, format='JPEG')
    return buffer.getvalue()


@pytest.fixture
def user_password() -> str:
    return TEST_PASSWORD
