from __future__ import annotations

import logging
from typing import Any, Final

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.errors import auth_invalid_token, auth_required
from core.settings import load_settings
from security.principal import AuthPrincipal

logger = logging.getLogger(__name__)

ALGORITHM: Final[str] = "HS256"
AUTH_ROLES: Final[tuple[str, ...]] = ("parent", "admin")
LEGACY_ROLE_ALIASES: Final[dict[str, str]] = {"user": "parent", "member": "parent", "super_admin": "admin"}

token_auth_scheme = HTTPBearer(auto_error=False)


def _secret_key() -> str:
    return load_settings().secret_key or "dev-only-insecure-secret"


def _normalize_role(role: str | None) -> str:
    value = (role or "").lower()
    return LEGACY_ROLE_ALIASES.get(value, value)


def decode_jwt_token(token: str) -> dict[str, Any] | None:
    try:
        return jwt.decode(token, _secret_key(), algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
    except jwt.InvalidTokenError as exc:
        logger.info("Rejected invalid token: %s", exc)
    return None


def principal_from_token(token: str) -> AuthPrincipal:
    claims = decode_jwt_token(token)
    if claims is None:
        raise auth_invalid_token()

    user_id = claims.get("sub") or claims.get("user_id")
    if not isinstance(user_id, str) or not user_id:
        raise auth_invalid_token(details={"claim": "sub"})

    role = _normalize_role(claims.get("role") or "parent")
    if role not in AUTH_ROLES:
        raise auth_invalid_token(details={"role": claims.get("role")})

    return AuthPrincipal(
        user_id=user_id,
        role=role,  # type: ignore[arg-type]
        jwt_token=token,
        is_active=bool(claims.get("is_active", True)),
    )


async def optional_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(token_auth_scheme),
) -> AuthPrincipal | None:
    """Resolves the caller when a bearer token is sent; anonymous callers get None."""
    if credentials is None:
        return None
    return principal_from_token(credentials.credentials)


async def verify_any_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(token_auth_scheme),
) -> AuthPrincipal:
    if credentials is None:
        raise auth_required()
    return principal_from_token(credentials.credentials)
