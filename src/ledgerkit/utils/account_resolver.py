"""Utility for resolving account codes to IDs."""

from ledgerkit.domain.account import AccountService
from ledgerkit.domain.errors import NotFoundError


def resolve_account(account_service: AccountService, account: str | int) -> int:
    """Resolve account code or ID to account ID.

    Codes take precedence: "1000" is looked up as a code first, and only
    treated as an ID when no account has that code.

    Args:
        account_service: AccountService instance
        account: Account code (str) or ID (int or string representation of int)

    Returns:
        Account ID

    Raises:
        NotFoundError: If account is not found
    """
    if isinstance(account, int):
        return account_service.get_account(account).id

    account = account.strip()
    found = account_service.find_account_by_code(account)
    if found is not None:
        return found.id

    try:
        account_id = int(account)
    except ValueError:
        raise NotFoundError(f"Account '{account}' not found")
    return account_service.get_account(account_id).id
