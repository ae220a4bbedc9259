"""Balance arithmetic shared by the registry and the journal."""

from decimal import Decimal

from ledgerkit.domain.entities import NormalBalance


def balance_delta(normal_balance: NormalBalance, debit: Decimal, credit: Decimal) -> Decimal:
    """Return the change a line makes to a balance kept in its natural direction."""
    if normal_balance == NormalBalance.DEBIT:
        return debit - credit
    return credit - debit
