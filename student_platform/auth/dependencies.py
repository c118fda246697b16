from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from student_platform.auth.jwt_handler import InvalidToken, TokenIdentity, TokenService, get_token_service
from student_platform.core.errors import Forbidden, Unauthorized
from student_platform.models.user import ROLE_ADMIN

security = HTTPBearer(auto_error=False)


def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    token_service: TokenService = Depends(get_token_service),
) -> TokenIdentity:
    if credentials is None or not credentials.credentials:
        raise Unauthorized()
    try:
        return token_service.decode_access_token(credentials.credentials)
    except InvalidToken as exc:
        raise Forbidden("Invalid token.") from exc


def require_admin(identity: TokenIdentity = Depends(get_current_identity)) -> TokenIdentity:
    if identity.role != ROLE_ADMIN:
        raise Forbidden("Admin access required.")
    return identity
