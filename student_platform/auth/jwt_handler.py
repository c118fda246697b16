from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache

import jwt

from student_platform.core import config


class InvalidToken(Exception):
    pass


@dataclass(frozen=True)
class TokenIdentity:
    user_id: int
    role: str


class TokenService:
    def __init__(self, secret_key: str, algorithm: str = "HS256", expires_days: int = 7) -> None:
        if not secret_key:
            raise ValueError("A signing secret is required.")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expires_days = expires_days

    def create_access_token(self, user_id: int, role: str, expires_delta: timedelta | None = None) -> str:
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(days=self.expires_days))
        payload = {"sub": str(user_id), "role": role, "exp": expire, "iat": now}
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode_access_token(self, token: str) -> TokenIdentity:
        if not token:
            raise InvalidToken("Token is missing.")
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.PyJWTError as exc:
            raise InvalidToken(str(exc)) from exc

        role = payload.get("role")
        try:
            user_id = int(payload["sub"])
        except (TypeError, ValueError) as exc:
            raise InvalidToken("Invalid token subject.") from exc
        if not role:
            raise InvalidToken("Token has no role.")
        return TokenIdentity(user_id=user_id, role=role)


@lru_cache(maxsize=1)
def get_token_service() -> TokenService:
    return TokenService(
        secret_key=config.JWT_SECRET_KEY,
        algorithm=config.JWT_ALGORITHM,
        expires_days=config.JWT_EXPIRES_DAYS,
    )
