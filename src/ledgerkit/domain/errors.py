"""Shared domain error messages and error types."""

from decimal import Decimal


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class AuthorizationError(DomainError):
    """Principal is not allowed to perform the operation."""


class DuplicateCodeError(ConflictError):
    """Account code already exists in the chart of accounts."""


class InvalidLineError(ValidationError):
    """Malformed journal line or an entry that cannot be balanced."""


class UnbalancedEntryError(ValidationError):
    """Total debits differ from total credits.

    The ``delta`` attribute holds debits minus credits.
    """

    def __init__(self, delta: Decimal, message: str | None = None):
        self.delta = delta
        super().__init__(message or unbalanced_entry(delta))


class AlreadyReconciledError(ConflictError):
    """Bank transaction has already been reconciled."""


class AlreadyVoidError(ConflictError):
    """Journal entry has already been voided."""


class UncategorizedTransactionError(ValidationError):
    """No category could be resolved for a bank transaction."""


class UnknownTaxConfigError(NotFoundError):
    """Tax configuration id does not resolve."""


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def account_code_not_found(code: str) -> str:
    """Return message for missing account by code."""
    return f"Account with code '{code}' not found"


def duplicate_account_code(code: str) -> str:
    """Return message for account code collision."""
    return f"Account with code '{code}' already exists"


def entry_not_found(entry_id: int) -> str:
    """Return message for missing journal entry."""
    return f"Journal entry {entry_id} not found"


def unbalanced_entry(delta: Decimal) -> str:
    """Return message for an entry whose debits and credits differ."""
    return f"Journal entry is unbalanced: debits exceed credits by {delta}"


def bank_account_not_found(bank_account_id: int) -> str:
    """Return message for missing bank account."""
    return f"Bank account {bank_account_id} not found"


def bank_transaction_not_found(transaction_id: int) -> str:
    """Return message for missing bank transaction."""
    return f"Bank transaction {transaction_id} not found"


def already_reconciled(transaction_id: int) -> str:
    """Return message for a transaction that was reconciled before."""
    return f"Bank transaction {transaction_id} is already reconciled"


def already_void(entry_id: int) -> str:
    """Return message for an entry that was voided before."""
    return f"Journal entry {entry_id} is already void"


def category_not_found(name: str) -> str:
    """Return message for missing expense category."""
    return f"Expense category '{name}' not found"


def rule_not_found(rule_id: int) -> str:
    """Return message for missing bank rule."""
    return f"Bank rule {rule_id} not found"


def tax_config_not_found(tax_config_id: int) -> str:
    """Return message for missing tax configuration."""
    return f"Tax config {tax_config_id} not found"


def unknown_fields(entity: str, fields: list[str]) -> str:
    """Return message for update fields outside the allowed set."""
    return f"Cannot update {entity}: unknown field(s) {', '.join(sorted(fields))}"


def account_delete_blocked(account_id: int, line_count: int) -> str:
    """Return message when account has postings and cannot be deleted."""
    return (
        f"Cannot delete account {account_id}: it has {line_count} "
        f"posted line{'s' if line_count != 1 else ''}. Archive it instead."
    )
