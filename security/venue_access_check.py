from __future__ import annotations

from core.errors import auth_permission_denied
from security.principal import AuthPrincipal


def annotation_identity(principal: AuthPrincipal | None) -> str | None:
    """Returns the user id whose favorites and visits may be shown, or None.

    Anonymous and deactivated callers never see personal annotations.
    """
    if principal is None or not principal.is_active:
        return None
    return principal.user_id


def require_active_principal(principal: AuthPrincipal) -> str:
    if not principal.is_active:
        raise auth_permission_denied("Account is inactive", details={"user_id": principal.user_id})
    return principal.user_id


def require_review_owner(*, principal: AuthPrincipal, review_user_id: str, action: str) -> None:
    if review_user_id != principal.user_id:
        raise auth_permission_denied(
            f"You can only {action} your own reviews",
            details={"review_user_id": review_user_id},
        )
