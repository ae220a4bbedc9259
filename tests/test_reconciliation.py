"""Tests for reconciling bank transactions into the journal."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerkit.domain.entities import BankTransactionStatus, EntryStatus
from ledgerkit.domain.errors import (
    AlreadyReconciledError,
    ConflictError,
    InvalidLineError,
    NotFoundError,
    UncategorizedTransactionError,
    ValidationError,
)


def test_reconcile_starbucks(reconciliation_service, journal_service, account_service, starbucks_txn):
    """A categorized outflow credits the clearing account and debits the category account."""
    reconciled = reconciliation_service.reconcile(starbucks_txn.id)

    assert reconciled.status == BankTransactionStatus.RECONCILED
    assert reconciled.category == "Meals & Ent"
    assert reconciled.is_rule_match is True
    assert reconciled.journal_entry_id is not None

    entry = journal_service.get_entry(reconciled.journal_entry_id)
    cash = account_service.get_account_by_code("1000")
    meals = account_service.get_account_by_code("6400")
    assert entry.status == EntryStatus.POSTED
    assert entry.reference == f"BANK-{starbucks_txn.id}"
    assert entry.date == date(2024, 3, 4)
    assert {(line.account_id, line.debit, line.credit) for line in entry.lines} == {
        (meals.id, Decimal("6.25"), Decimal("0.00")),
        (cash.id, Decimal("0.00"), Decimal("6.25")),
    }
    assert account_service.get_account(cash.id).balance == Decimal("-6.25")
    assert account_service.get_account(meals.id).balance == Decimal("6.25")


def test_reconcile_twice_creates_one_entry(reconciliation_service, journal_service, starbucks_txn):
    reconciliation_service.reconcile(starbucks_txn.id)

    with pytest.raises(AlreadyReconciledError):
        reconciliation_service.reconcile(starbucks_txn.id)

    assert len(list(journal_service.list_entries())) == 1


def test_reconcile_unknown_transaction(reconciliation_service, seeded_ledger):
    with pytest.raises(NotFoundError):
        reconciliation_service.reconcile(404)


def test_reconcile_uncategorized(reconciliation_service, bank_service, journal_service, company_bank):
    """Without rule, keyword or explicit category nothing is posted."""
    txn = bank_service.record_transaction(company_bank.id, date(2024, 3, 6), "Corner Deli", "-9.00")

    with pytest.raises(UncategorizedTransactionError):
        reconciliation_service.reconcile(txn.id)

    assert bank_service.get_transaction(txn.id).status == BankTransactionStatus.PENDING
    assert list(journal_service.list_entries()) == []


def test_reconcile_explicit_category(reconciliation_service, bank_service, account_service, company_bank):
    txn = bank_service.record_transaction(company_bank.id, date(2024, 3, 6), "Corner Deli", "-9.00")

    reconciled = reconciliation_service.reconcile(txn.id, explicit_category="Meals & Ent")

    assert reconciled.category == "Meals & Ent"
    assert reconciled.is_rule_match is False
    assert account_service.get_account_by_code("6400").balance == Decimal("9.00")


def test_explicit_category_overrides_rule(reconciliation_service, account_service, starbucks_txn):
    reconciled = reconciliation_service.reconcile(starbucks_txn.id, explicit_category="Travel")

    assert reconciled.category == "Travel"
    assert reconciled.matched_rule_id is None


def test_reconcile_unknown_explicit_category(reconciliation_service, starbucks_txn):
    with pytest.raises(ValidationError):
        reconciliation_service.reconcile(starbucks_txn.id, explicit_category="Yachts")


def test_reconcile_keyword_fallback(reconciliation_service, bank_service, account_service, company_bank):
    """Merchant keywords categorize transactions no rule matches."""
    txn = bank_service.record_transaction(company_bank.id, date(2024, 3, 7), "UBER *TRIP", "-18.40")

    reconciled = reconciliation_service.reconcile(txn.id)

    assert reconciled.category == "Travel"
    assert reconciled.is_rule_match is False


def test_reconcile_uses_stored_category(reconciliation_service, bank_service, starbucks_txn):
    bank_service.update_transaction(starbucks_txn.id, {"category": "Travel"})

    assert reconciliation_service.reconcile(starbucks_txn.id).category == "Travel"


def test_reconcile_inflow(reconciliation_service, bank_service, account_service, company_bank):
    """A deposit debits the clearing account and credits the category account."""
    txn = bank_service.record_transaction(company_bank.id, date(2024, 3, 8), "Client deposit", "1500.00")

    reconciled = reconciliation_service.reconcile(txn.id)

    assert reconciled.category == "Revenue/Income"
    assert account_service.get_account_by_code("1000").balance == Decimal("1500.00")
    assert account_service.get_account_by_code("4000").balance == Decimal("1500.00")


def test_reconcile_tax_relevant_category(
    reconciliation_service, bank_service, category_service, tax_service, journal_service, account_service, admin,
    company_bank,
):
    """Categories linked to a tax config also book the computed tax."""
    tax = tax_service.list_tax_configs()[0]
    category_service.create_category(
        admin,
        "Taxable Consulting",
        account_service.get_account_by_code("4100").id,
        tax_deductible=False,
        keywords=["consulting"],
        tax_config_id=tax.id,
    )
    txn = bank_service.record_transaction(company_bank.id, date(2024, 3, 9), "Acme Consulting", "200.00")

    reconciled = reconciliation_service.reconcile(txn.id)

    entry = journal_service.get_entry(reconciled.journal_entry_id)
    assert len(entry.lines) == 4
    assert entry.total_debit == entry.total_credit == Decimal("242.00")
    assert account_service.get_account(tax.liability_account_id).balance == Decimal("42.00")
    assert account_service.get_account(tax.expense_account_id).balance == Decimal("42.00")


def test_reconcile_without_clearing_account(reconciliation_service, bank_service, journal_service, seeded_ledger):
    unlinked = bank_service.connect_bank_account("company", "Chase", "Savings", "99998888", "Savings")
    txn = bank_service.record_transaction(unlinked.id, date(2024, 3, 4), "STARBUCKS", "-6.25")

    with pytest.raises(InvalidLineError):
        reconciliation_service.reconcile(txn.id)

    assert bank_service.get_transaction(txn.id).status == BankTransactionStatus.PENDING
    assert list(journal_service.list_entries()) == []


def test_posting_failure_leaves_transaction_pending(
    reconciliation_service, bank_service, account_service, journal_service, admin, starbucks_txn
):
    """If the entry cannot be posted the transaction stays pending and unlinked."""
    account_service.archive_account(admin, account_service.get_account_by_code("6400").id)

    with pytest.raises(InvalidLineError):
        reconciliation_service.reconcile(starbucks_txn.id)

    txn = bank_service.get_transaction(starbucks_txn.id)
    assert txn.status == BankTransactionStatus.PENDING
    assert txn.journal_entry_id is None
    assert list(journal_service.list_entries()) == []


def test_mark_failure_voids_entry(
    reconciliation_service, bank_service, journal_service, account_service, starbucks_txn, monkeypatch
):
    """A failed mark after posting leaves no net effect on the ledger."""

    def fail_mark(*args, **kwargs):
        raise ConflictError("bank ledger unavailable")

    monkeypatch.setattr(reconciliation_service.bank, "mark_reconciled", fail_mark)

    with pytest.raises(ConflictError):
        reconciliation_service.reconcile(starbucks_txn.id)

    statuses = sorted(entry.status.value for entry in journal_service.list_entries())
    assert statuses == ["posted", "void"]
    assert account_service.get_account_by_code("1000").balance == Decimal("0.00")
    assert account_service.get_account_by_code("6400").balance == Decimal("0.00")
    assert bank_service.get_transaction(starbucks_txn.id).status == BankTransactionStatus.PENDING
    assert account_service.verify_balances() == []


def test_amount_edited_during_reconcile_voids_entry(
    reconciliation_service, bank_service, journal_service, account_service, starbucks_txn, temp_db, monkeypatch
):
    """A transaction whose amount moves after posting is not reconciled to the stale entry."""
    post_entry = reconciliation_service.journal.post_entry

    def post_then_edit(*args, **kwargs):
        entry = post_entry(*args, **kwargs)
        temp_db.update_bank_transaction(starbucks_txn.id, {"amount": Decimal("-60.00")})
        return entry

    monkeypatch.setattr(reconciliation_service.journal, "post_entry", post_then_edit)

    with pytest.raises(ConflictError, match="amount changed"):
        reconciliation_service.reconcile(starbucks_txn.id)

    statuses = sorted(entry.status.value for entry in journal_service.list_entries())
    assert statuses == ["posted", "void"]
    assert account_service.get_account_by_code("1000").balance == Decimal("0.00")
    txn = bank_service.get_transaction(starbucks_txn.id)
    assert txn.status == BankTransactionStatus.PENDING
    assert txn.amount == Decimal("-60.00")
    assert txn.journal_entry_id is None


def test_mark_reconciled_checks_expected_date(bank_service, journal_service, account_service, starbucks_txn):
    entry = journal_service.post_entry(
        date(2024, 3, 4),
        "Coffee",
        [
            {"account_id": account_service.get_account_by_code("6400").id, "debit": "6.25"},
            {"account_id": account_service.get_account_by_code("1000").id, "credit": "6.25"},
        ],
    )

    with pytest.raises(ConflictError, match="date changed"):
        bank_service.mark_reconciled(
            starbucks_txn.id,
            "Meals & Ent",
            entry.id,
            expected_amount=Decimal("-6.25"),
            expected_date=date(2024, 3, 5),
        )

    assert bank_service.get_transaction(starbucks_txn.id).status == BankTransactionStatus.PENDING


def test_reconcile_releases_transaction_guard(reconciliation_service, bank_service, starbucks_txn, temp_db):
    reconciliation_service.reconcile(starbucks_txn.id)
    with pytest.raises(AlreadyReconciledError):
        reconciliation_service.reconcile(starbucks_txn.id)
    bank_service.update_transaction(starbucks_txn.id, {"merchant": "Starbucks"})

    assert temp_db._guards == {}
