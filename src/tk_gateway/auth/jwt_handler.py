"""JWT access-token verification.

Tokens are issued by the identity service that owns user accounts; this
service only verifies them. HS256 with a shared JWT_SECRET.
"""

from jose import JWTError, jwt

from config.settings import settings
from src.tk_common.errors import InvalidCredentialsError

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"


def decode_access_token(token: str) -> dict[str, str]:
    """Decode and validate an access token.

    Returns:
        Decoded payload dict with at minimum {"sub": ..., "type": "access"}.

    Raises:
        InvalidCredentialsError: Token invalid, expired, or not an access token.
    """
    try:
        payload: dict[str, str] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise InvalidCredentialsError() from None

    if payload.get("type") != "access":
        raise InvalidCredentialsError()
    return payload

