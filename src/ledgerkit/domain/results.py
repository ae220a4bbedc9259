"""Structured command results for callers that do not handle exceptions."""

from dataclasses import dataclass
from typing import Any, Callable, Optional

from ledgerkit.domain.errors import DomainError


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a ledger command.

    ``error`` is the error class name (e.g. "UnbalancedEntryError") when
    ``ok`` is False.
    """

    ok: bool
    value: Any = None
    error: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, value: Any = None) -> "CommandResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: DomainError) -> "CommandResult":
        return cls(ok=False, error=type(error).__name__, message=str(error))


def execute(operation: Callable[..., Any], *args: Any, **kwargs: Any) -> CommandResult:
    """Run a service operation and capture domain errors as a result.

    Only DomainError is converted; anything else is a bug and propagates.
    """
    try:
        return CommandResult.success(operation(*args, **kwargs))
    except DomainError as e:
        return CommandResult.failure(e)
