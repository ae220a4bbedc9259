"""Tests for the journal engine."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerkit.domain.balances import balance_delta
from ledgerkit.domain.entities import EntryStatus, JournalLineInput, NormalBalance
from ledgerkit.domain.errors import (
    AlreadyVoidError,
    InvalidLineError,
    NotFoundError,
    UnbalancedEntryError,
    ValidationError,
)
from ledgerkit.domain.journal import entry_imbalance, normalize_line


def _balances(account_service, *accounts):
    return [account_service.get_account(acc.id).balance for acc in accounts]


def test_post_balanced_entry(journal_service, account_service, two_accounts):
    """Debit A2 50.00, credit A1 50.00 moves both balances."""
    a1, a2 = two_accounts

    entry = journal_service.post_entry(
        date(2024, 3, 1),
        "Office supplies",
        [
            JournalLineInput(account_id=a2.id, debit=Decimal("50.00")),
            JournalLineInput(account_id=a1.id, credit=Decimal("50.00")),
        ],
    )

    assert entry.status == EntryStatus.POSTED
    assert [line.line_number for line in entry.lines] == [1, 2]
    assert entry.total_debit == entry.total_credit == Decimal("50.00")
    assert _balances(account_service, a1, a2) == [Decimal("-50.00"), Decimal("50.00")]


def test_post_unbalanced_entry(journal_service, account_service, two_accounts):
    """Debit 50.00 against credit 40.00 is rejected with the imbalance."""
    a1, a2 = two_accounts

    with pytest.raises(UnbalancedEntryError) as excinfo:
        journal_service.post_entry(
            date(2024, 3, 1),
            "Office supplies",
            [
                {"account_id": a2.id, "debit": "50.00"},
                {"account_id": a1.id, "credit": "40.00"},
            ],
        )

    assert excinfo.value.delta == Decimal("10.00")
    assert _balances(account_service, a1, a2) == [Decimal("0.00"), Decimal("0.00")]
    assert list(journal_service.list_entries()) == []


def test_credit_normal_account_balance(journal_service, account_service, admin):
    """Credit-normal accounts grow with credits."""
    cash = account_service.create_account(admin, "1000", "Cash", "Asset", "", "debit")
    loan = account_service.create_account(admin, "2500", "Loan", "Liability", "", "credit")

    journal_service.post_entry(
        date(2024, 1, 1),
        "Loan drawdown",
        [{"account_id": cash.id, "debit": "1000"}, {"account_id": loan.id, "credit": "1000"}],
    )

    assert _balances(account_service, cash, loan) == [Decimal("1000.00"), Decimal("1000.00")]


@pytest.mark.parametrize(
    "line",
    [
        {"debit": "10", "credit": "10"},
        {"debit": "0", "credit": "0"},
        {"debit": "-5"},
        {"debit": "1.005"},
        {"debit": "abc"},
        {"debit": "1e30"},
        {"debit": "1234567890123.00"},
    ],
)
def test_invalid_lines_rejected(journal_service, account_service, two_accounts, line):
    a1, a2 = two_accounts

    with pytest.raises(InvalidLineError):
        journal_service.post_entry(
            date(2024, 1, 1),
            "Bad line",
            [{"account_id": a2.id, **line}, {"account_id": a1.id, "credit": "10"}],
        )

    assert _balances(account_service, a1, a2) == [Decimal("0.00"), Decimal("0.00")]


def test_empty_entry_rejected(journal_service):
    with pytest.raises(InvalidLineError):
        journal_service.post_entry(date(2024, 1, 1), "Nothing", [])


def test_unknown_account_rejected(journal_service, two_accounts):
    a1, _ = two_accounts

    with pytest.raises(InvalidLineError, match="not found"):
        journal_service.post_entry(
            date(2024, 1, 1),
            "Ghost",
            [{"account_id": 999, "debit": "1"}, {"account_id": a1.id, "credit": "1"}],
        )


def test_unknown_line_field_rejected(journal_service, two_accounts):
    a1, a2 = two_accounts

    with pytest.raises(InvalidLineError, match="amount"):
        journal_service.post_entry(
            date(2024, 1, 1),
            "Typo",
            [{"account_id": a2.id, "amount": "1"}, {"account_id": a1.id, "credit": "1"}],
        )


def test_description_required(journal_service, two_accounts):
    a1, a2 = two_accounts

    with pytest.raises(ValidationError):
        journal_service.post_entry(
            date(2024, 1, 1), "  ", [{"account_id": a2.id, "debit": "1"}, {"account_id": a1.id, "credit": "1"}]
        )


def test_posting_is_not_idempotent(journal_service, two_accounts):
    """Two posts with the same reference create two entries."""
    a1, a2 = two_accounts
    lines = [{"account_id": a2.id, "debit": "3"}, {"account_id": a1.id, "credit": "3"}]

    first = journal_service.post_entry(date(2024, 1, 1), "Stamps", lines, reference="INV-1")
    second = journal_service.post_entry(date(2024, 1, 1), "Stamps", lines, reference="INV-1")

    assert first.id != second.id
    found = journal_service.find_entries_by_reference("INV-1")
    assert sorted(entry.id for entry in found) == [first.id, second.id]


def test_void_entry_reverses_balances(journal_service, account_service, two_accounts):
    """After voiding, the net effect on every account is zero."""
    a1, a2 = two_accounts
    entry = journal_service.post_entry(
        date(2024, 3, 1),
        "Supplies",
        [{"account_id": a2.id, "debit": "50"}, {"account_id": a1.id, "credit": "50"}],
    )

    voided = journal_service.void_entry(entry.id)

    assert voided.status == EntryStatus.VOID
    assert voided.reversed_by_id is not None
    reversal = journal_service.get_entry(voided.reversed_by_id)
    assert reversal.status == EntryStatus.POSTED
    assert reversal.reversal_of_id == entry.id
    assert [(line.account_id, line.debit, line.credit) for line in reversal.lines] == [
        (a2.id, Decimal("0.00"), Decimal("50.00")),
        (a1.id, Decimal("50.00"), Decimal("0.00")),
    ]
    assert _balances(account_service, a1, a2) == [Decimal("0.00"), Decimal("0.00")]


def test_void_twice_fails(journal_service, account_service, two_accounts):
    a1, a2 = two_accounts
    entry = journal_service.post_entry(
        date(2024, 3, 1),
        "Supplies",
        [{"account_id": a2.id, "debit": "50"}, {"account_id": a1.id, "credit": "50"}],
    )
    journal_service.void_entry(entry.id)

    with pytest.raises(AlreadyVoidError):
        journal_service.void_entry(entry.id)

    assert _balances(account_service, a1, a2) == [Decimal("0.00"), Decimal("0.00")]


def test_reversal_cannot_be_voided(journal_service, two_accounts):
    a1, a2 = two_accounts
    entry = journal_service.post_entry(
        date(2024, 3, 1),
        "Supplies",
        [{"account_id": a2.id, "debit": "5"}, {"account_id": a1.id, "credit": "5"}],
    )
    reversal_id = journal_service.void_entry(entry.id).reversed_by_id

    with pytest.raises(ValidationError):
        journal_service.void_entry(reversal_id)


def test_void_missing_entry(journal_service):
    with pytest.raises(NotFoundError):
        journal_service.void_entry(42)


def test_draft_does_not_touch_balances(journal_service, account_service, two_accounts):
    """Drafts are stored without effect until posted."""
    a1, a2 = two_accounts
    draft = journal_service.create_draft(
        date(2024, 3, 1),
        "Pending supplies",
        [{"account_id": a2.id, "debit": "20"}, {"account_id": a1.id, "credit": "20"}],
    )

    assert draft.status == EntryStatus.DRAFT
    assert _balances(account_service, a1, a2) == [Decimal("0.00"), Decimal("0.00")]

    posted = journal_service.post_draft(draft.id)

    assert posted.status == EntryStatus.POSTED
    assert _balances(account_service, a1, a2) == [Decimal("-20.00"), Decimal("20.00")]


def test_unbalanced_draft_cannot_be_posted(journal_service, account_service, two_accounts):
    a1, a2 = two_accounts
    draft = journal_service.create_draft(
        date(2024, 3, 1),
        "Half done",
        [{"account_id": a2.id, "debit": "20"}, {"account_id": a1.id, "credit": "15"}],
    )

    with pytest.raises(UnbalancedEntryError):
        journal_service.post_draft(draft.id)

    assert journal_service.get_entry(draft.id).status == EntryStatus.DRAFT
    assert _balances(account_service, a1, a2) == [Decimal("0.00"), Decimal("0.00")]


def test_draft_cannot_be_voided(journal_service, two_accounts):
    a1, a2 = two_accounts
    draft = journal_service.create_draft(
        date(2024, 3, 1), "Draft", [{"account_id": a2.id, "debit": "1"}, {"account_id": a1.id, "credit": "1"}]
    )

    with pytest.raises(ValidationError):
        journal_service.void_entry(draft.id)


def test_list_entries_order_and_filters(journal_service, two_accounts):
    """Entries are listed newest first and filter by date range and status."""
    a1, a2 = two_accounts
    lines = [{"account_id": a2.id, "debit": "1"}, {"account_id": a1.id, "credit": "1"}]
    jan = journal_service.post_entry(date(2024, 1, 15), "January", lines)
    feb = journal_service.post_entry(date(2024, 2, 15), "February", lines)
    mar = journal_service.post_entry(date(2024, 3, 15), "March", lines)
    journal_service.void_entry(jan.id)

    assert [e.description for e in journal_service.list_entries(status="posted")][:2] == ["March", "February"]
    assert [e.id for e in journal_service.list_entries(start_date=date(2024, 2, 1), end_date=date(2024, 2, 28))] == [
        feb.id
    ]
    assert [e.id for e in journal_service.list_entries(status=EntryStatus.VOID)] == [jan.id]
    assert mar.id in [e.id for e in journal_service.list_entries(account_id=a1.id)]


def test_list_entries_is_lazy_and_restartable(journal_service, temp_db, two_accounts):
    """Each call is a fresh query; iteration crosses batch boundaries."""
    a1, a2 = two_accounts
    lines = [{"account_id": a2.id, "debit": "1"}, {"account_id": a1.id, "credit": "1"}]
    for day in range(1, 8):
        journal_service.post_entry(date(2024, 1, day), f"Day {day}", lines)

    batched = list(temp_db.iter_journal_entries(batch_size=3))
    assert [e.date.day for e in batched] == [7, 6, 5, 4, 3, 2, 1]

    entries = journal_service.list_entries()
    first = next(entries)
    assert first.date == date(2024, 1, 7)

    # A posting made while a listing is open is visible to the next call
    journal_service.post_entry(date(2024, 1, 8), "Day 8", lines)
    assert len(list(journal_service.list_entries())) == 8


def test_list_entries_invalid_status(journal_service):
    with pytest.raises(ValidationError):
        journal_service.list_entries(status="archived")


def test_balance_invariant_after_mixed_activity(journal_service, account_service, seeded_ledger):
    """Each balance equals the signed sum of its posted lines."""
    cash = account_service.get_account_by_code("1000")
    revenue = account_service.get_account_by_code("4000")
    rent = account_service.get_account_by_code("6100")
    payable = account_service.get_account_by_code("2000")

    journal_service.post_entry(
        date(2024, 1, 1), "Fees", [{"account_id": cash.id, "debit": "900"}, {"account_id": revenue.id, "credit": "900"}]
    )
    rent_entry = journal_service.post_entry(
        date(2024, 1, 2),
        "Rent",
        [{"account_id": rent.id, "debit": "300"}, {"account_id": payable.id, "credit": "300"}],
    )
    journal_service.post_entry(
        date(2024, 1, 3),
        "Pay rent",
        [{"account_id": payable.id, "debit": "300"}, {"account_id": cash.id, "credit": "300"}],
    )
    journal_service.void_entry(rent_entry.id)

    assert account_service.verify_balances() == []
    for account in account_service.list_accounts():
        debit, credit = seeded_ledger.get_account_line_totals(account.id)
        assert account.balance == balance_delta(account.normal_balance, debit, credit)


def test_normalize_line_and_imbalance():
    line = normalize_line(1, {"account_id": 1, "debit": 12.5})

    assert line.debit == Decimal("12.50")
    assert line.credit == Decimal("0.00")
    assert entry_imbalance([line, JournalLineInput(2, credit=Decimal("2.50"))]) == Decimal("10.00")


def test_balance_delta_sides():
    assert balance_delta(NormalBalance.DEBIT, Decimal("5"), Decimal("2")) == Decimal("3")
    assert balance_delta(NormalBalance.CREDIT, Decimal("5"), Decimal("2")) == Decimal("-3")
