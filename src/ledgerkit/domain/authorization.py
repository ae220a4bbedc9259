"""Role checks for commands issued by the CRM layer."""

from ledgerkit.domain.entities import Principal
from ledgerkit.domain.errors import AuthorizationError


def require_admin(principal: Principal, action: str) -> None:
    """Raise AuthorizationError unless the principal is an administrator."""
    if not principal.is_admin:
        raise AuthorizationError(
            f"User '{principal.user_id}' ({principal.role.value}) is not allowed to {action}"
        )


def require_owner_or_admin(principal: Principal, owner_id: str, action: str) -> None:
    """Raise AuthorizationError unless the principal owns the object or is an administrator."""
    if principal.is_admin or principal.user_id == owner_id:
        return
    raise AuthorizationError(
        f"User '{principal.user_id}' is not allowed to {action} owned by '{owner_id}'"
    )
