"""Tests for the bank ledger."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from ledgerkit.domain.bank import mask_account_number
from ledgerkit.domain.entities import BankAccountStatus, BankTransactionStatus, FeedRecord
from ledgerkit.domain.errors import (
    AlreadyReconciledError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


def test_mask_account_number():
    assert mask_account_number("000123454021") == "****4021"
    assert mask_account_number("3782-8224-6310-005") == "****0005"
    with pytest.raises(ValidationError):
        mask_account_number("12")


def test_connect_bank_account(company_bank, account_service):
    assert company_bank.masked_number == "****4021"
    assert company_bank.owner_id == "company"
    assert company_bank.status == BankAccountStatus.ACTIVE
    assert company_bank.last_synced_at is None
    assert company_bank.gl_account_id == account_service.get_account_by_code("1000").id


def test_connect_bank_account_invalid_type(bank_service, seeded_ledger):
    with pytest.raises(ValidationError):
        bank_service.connect_bank_account("company", "Chase", "Ops", "12345678", "Brokerage")


def test_list_bank_accounts_by_owner(bank_service, company_bank):
    advisor_account = bank_service.connect_bank_account("adv-1", "Amex", "Card", "378282246310005", "Credit Card")

    assert [acc.id for acc in bank_service.list_bank_accounts(owner_id="adv-1")] == [advisor_account.id]
    assert len(bank_service.list_bank_accounts()) == 2


def test_update_bank_account(bank_service, company_bank):
    updated = bank_service.update_bank_account(company_bank.id, {"status": "error", "name": "Ops Checking"})

    assert updated.status == BankAccountStatus.ERROR
    assert updated.name == "Ops Checking"


def test_update_bank_account_rejects_unknown_fields(bank_service, company_bank):
    with pytest.raises(ValidationError, match="masked_number"):
        bank_service.update_bank_account(company_bank.id, {"masked_number": "****0000"})


def test_record_transaction(bank_service, starbucks_txn):
    """Feed transactions start pending with a signed amount."""
    assert starbucks_txn.status == BankTransactionStatus.PENDING
    assert starbucks_txn.amount == Decimal("-6.25")
    assert starbucks_txn.journal_entry_id is None
    assert bank_service.get_transaction(starbucks_txn.id) == starbucks_txn


@pytest.mark.parametrize(
    "txn_date, merchant, amount",
    [
        ("2024-01-01", "Shop", "-1.00"),
        (date(2024, 1, 1), "  ", "-1.00"),
        (date(2024, 1, 1), "Shop", "one dollar"),
        (date(2024, 1, 1), "Shop", "-1.001"),
        (date(2024, 1, 1), "Shop", "1e30"),
        (date(2024, 1, 1), "Shop", "-1234567890123.00"),
    ],
)
def test_record_transaction_rejects_malformed(bank_service, company_bank, journal_service, txn_date, merchant, amount):
    """Malformed feed data is rejected at the bank ledger and never reaches the journal."""
    with pytest.raises(ValidationError):
        bank_service.record_transaction(company_bank.id, txn_date, merchant, amount)

    assert bank_service.list_transactions(bank_account_id=company_bank.id) == []
    assert list(journal_service.list_entries()) == []


def test_record_transaction_cannot_start_reconciled(bank_service, company_bank):
    with pytest.raises(ValidationError):
        bank_service.record_transaction(company_bank.id, date(2024, 1, 1), "Shop", "-1", status="reconciled")


def test_record_transaction_unknown_bank_account(bank_service, seeded_ledger):
    with pytest.raises(NotFoundError):
        bank_service.record_transaction(99, date(2024, 1, 1), "Shop", "-1")


def test_record_transaction_disconnected_account(bank_service, company_bank):
    bank_service.update_bank_account(company_bank.id, {"status": "disconnected"})

    with pytest.raises(ValidationError, match="disconnected"):
        bank_service.record_transaction(company_bank.id, date(2024, 1, 1), "Shop", "-1")


def test_duplicate_external_id(bank_service, company_bank):
    bank_service.record_transaction(company_bank.id, date(2024, 1, 1), "Shop", "-1", external_id="x-1")

    with pytest.raises(ConflictError):
        bank_service.record_transaction(company_bank.id, date(2024, 1, 1), "Shop", "-1", external_id="x-1")


def test_import_feed(bank_service, company_bank):
    """Good records are stored, duplicates skipped, bad ones reported."""
    records = [
        FeedRecord(date(2024, 3, 1), "UBER TRIP", Decimal("-18.40"), external_id="a"),
        (date(2024, 3, 2), "Client deposit", "2500.00"),
        {"date": date(2024, 3, 3), "merchant": "ZOOM.US", "amount": "-14.99", "external_id": "b"},
        ("garbage",),
        (date(2024, 3, 4), "", "-3.00"),
    ]

    result = bank_service.import_feed(company_bank.id, records)

    assert len(result["imported"]) == 3
    assert result["skipped"] == 0
    assert len(result["errors"]) == 2
    assert result["errors"][0].startswith("Record 4:")
    assert bank_service.get_bank_account(company_bank.id).last_synced_at is not None

    again = bank_service.import_feed(company_bank.id, records[:1] + records[2:3])
    assert again["imported"] == []
    assert again["skipped"] == 2


def test_import_feed_continues_past_oversized_amount(bank_service, company_bank):
    records = [
        (date(2024, 3, 1), "UBER TRIP", "-18.40"),
        (date(2024, 3, 2), "HUGE", "1e30"),
        (date(2024, 3, 3), "ZOOM.US", "-14.99"),
    ]

    result = bank_service.import_feed(company_bank.id, records)

    assert len(result["imported"]) == 2
    assert len(result["errors"]) == 1
    assert result["errors"][0].startswith("Record 2:")
    merchants = {txn.merchant for txn in bank_service.list_transactions(bank_account_id=company_bank.id)}
    assert merchants == {"UBER TRIP", "ZOOM.US"}
    assert bank_service.get_bank_account(company_bank.id).last_synced_at is not None


def test_update_transaction(bank_service, starbucks_txn):
    updated = bank_service.update_transaction(
        starbucks_txn.id, {"merchant": "Starbucks Reserve", "receipt_reference": "rcpt-1", "status": "posted"}
    )

    assert updated.merchant == "Starbucks Reserve"
    assert updated.receipt_reference == "rcpt-1"
    assert updated.status == BankTransactionStatus.POSTED


@pytest.mark.parametrize("changes", [{"journal_entry_id": 1}, {"bank_account_id": 2}, {"is_rule_match": True}])
def test_update_transaction_rejects_unknown_fields(bank_service, starbucks_txn, changes):
    with pytest.raises(ValidationError, match="unknown field"):
        bank_service.update_transaction(starbucks_txn.id, changes)


def test_update_transaction_cannot_reconcile(bank_service, starbucks_txn):
    with pytest.raises(ValidationError):
        bank_service.update_transaction(starbucks_txn.id, {"status": "reconciled"})


def test_mark_reconciled_twice_fails(bank_service, starbucks_txn, journal_service, account_service):
    """The second mark fails and does not touch the first link."""
    cash = account_service.get_account_by_code("1000")
    meals = account_service.get_account_by_code("6400")
    entry = journal_service.post_entry(
        date(2024, 3, 4), "Coffee", [{"account_id": meals.id, "debit": "6.25"}, {"account_id": cash.id, "credit": "6.25"}]
    )

    reconciled = bank_service.mark_reconciled(starbucks_txn.id, "Meals & Ent", entry.id)
    assert reconciled.status == BankTransactionStatus.RECONCILED
    assert reconciled.journal_entry_id == entry.id

    with pytest.raises(AlreadyReconciledError):
        bank_service.mark_reconciled(starbucks_txn.id, "Meals & Ent", entry.id + 1)
    assert bank_service.get_transaction(starbucks_txn.id).journal_entry_id == entry.id


def test_reconciled_transaction_amount_and_date_frozen(bank_service, starbucks_txn, journal_service, account_service):
    cash = account_service.get_account_by_code("1000")
    meals = account_service.get_account_by_code("6400")
    entry = journal_service.post_entry(
        date(2024, 3, 4), "Coffee", [{"account_id": meals.id, "debit": "6.25"}, {"account_id": cash.id, "credit": "6.25"}]
    )
    bank_service.mark_reconciled(starbucks_txn.id, "Meals & Ent", entry.id)

    with pytest.raises(AlreadyReconciledError):
        bank_service.update_transaction(starbucks_txn.id, {"amount": "-7.00"})
    with pytest.raises(AlreadyReconciledError):
        bank_service.update_transaction(starbucks_txn.id, {"date": datetime(2024, 3, 5)})

    updated = bank_service.update_transaction(starbucks_txn.id, {"receipt_reference": "rcpt-9"})
    assert updated.receipt_reference == "rcpt-9"
    assert updated.amount == Decimal("-6.25")


def test_list_transactions_filters(bank_service, company_bank):
    advisor_account = bank_service.connect_bank_account("adv-1", "Amex", "Card", "378282246310005", "Credit Card")
    bank_service.record_transaction(company_bank.id, date(2024, 1, 1), "A", "-1")
    bank_service.record_transaction(company_bank.id, date(2024, 2, 1), "B", "-2", status="posted")
    bank_service.record_transaction(advisor_account.id, date(2024, 3, 1), "C", "-3")

    assert [t.merchant for t in bank_service.list_transactions()] == ["C", "B", "A"]
    assert [t.merchant for t in bank_service.list_transactions(bank_account_id=company_bank.id)] == ["B", "A"]
    assert [t.merchant for t in bank_service.list_transactions(status="posted")] == ["B"]
    assert [t.merchant for t in bank_service.list_transactions(owner_id="adv-1")] == ["C"]
    assert [t.merchant for t in bank_service.list_transactions(start_date=date(2024, 1, 15))] == ["C", "B"]
    assert bank_service.list_transactions(owner_id="nobody") == []
