"""FastAPI dependencies: get_current_user_id, require_admin.

Usage in any protected router:
    from src.tk_gateway.auth.dependencies import get_current_user_id

    @router.get("/protected")
    async def protected(user_id: str = Depends(get_current_user_id)):
        ...
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from config.settings import settings
from src.tk_common.errors import ForbiddenError, InvalidCredentialsError
from src.tk_gateway.auth.jwt_handler import decode_access_token

# tokenUrl points at the identity service login (used for the Swagger "Authorize" button)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_user_id(token: str = Depends(oauth2_scheme)) -> str:
    """Extract and validate the JWT Bearer token, return the caller's user id.

    Raises HTTP 401 if the token is missing, invalid, or expired.
    """
    try:
        payload = decode_access_token(token)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    user_id = payload.get("sub")
    if not user_id:
        raise _CREDENTIALS_EXCEPTION
    return str(user_id)


async def require_admin(user_id: str = Depends(get_current_user_id)) -> str:
    """Verify the caller is an operator listed in ADMIN_USER_IDS.

    Protects reconciliation and sweep endpoints.
    """
    if user_id not in settings.ADMIN_USER_IDS:
        raise ForbiddenError("Operator account required")
    return user_id
