"""
Caller identity. Tokens are issued by the external identity provider; this service only
verifies them and threads the resulting user id into every store and service call.

Precedence:
1. Authorization: Bearer <token>, verified with the configured key.
2. Test mode only (allow_unauthenticated): X-User-Id header.
3. Test mode only: settings.dev_user_id.
Both test-mode identities are logged as a warning on every use.
Anything else is 401.
"""
import logging

from jose import JWTError, jwt
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.config import Settings, get_settings
from app.schemas.user import TokenPayload

logger = logging.getLogger(__name__)
security = HTTPBearer(auto_error=False)


def decode_token(token: str, settings: Settings) -> TokenPayload | None:
    if not settings.auth_jwt_secret:
        return None
    options = {"verify_aud": bool(settings.auth_jwt_audience)}
    try:
        payload = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience or None,
            issuer=settings.auth_jwt_issuer or None,
            options=options,
        )
    except JWTError:
        return None
    if not payload.get("sub"):
        return None
    return TokenPayload(sub=payload["sub"], email=payload.get("email"), exp=payload.get("exp"))


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    settings: Settings = Depends(get_settings),
) -> str:
    if credentials:
        payload = decode_token(credentials.credentials, settings)
        if not payload:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired token",
                headers={"WWW-Authenticate": "Bearer"},
            )
        return payload.sub

    if settings.allow_unauthenticated:
        if x_user_id:
            logger.warning(
                "Unauthenticated request accepted as X-User-Id '%s' (ALLOW_UNAUTHENTICATED is on)",
                x_user_id,
            )
            return x_user_id
        logger.warning(
            "Unauthenticated request accepted as '%s' (ALLOW_UNAUTHENTICATED is on)",
            settings.dev_user_id,
        )
        return settings.dev_user_id

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )
