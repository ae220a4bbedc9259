"""Concurrent postings and reconciliations against one database."""

from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal

from ledgerkit.domain.errors import AlreadyReconciledError
from ledgerkit.domain.journal import JournalService
from ledgerkit.domain.reconciliation import ReconciliationService


def test_concurrent_postings_keep_balances(temp_db, account_service, two_accounts):
    a1, a2 = two_accounts
    journal = JournalService(temp_db)

    def post(n):
        return journal.post_entry(
            date(2024, 1, 1 + n % 28),
            f"Supplies {n}",
            [{"account_id": a2.id, "debit": "1.25"}, {"account_id": a1.id, "credit": "1.25"}],
        )

    with ThreadPoolExecutor(max_workers=8) as pool:
        entries = list(pool.map(post, range(40)))

    assert len({entry.id for entry in entries}) == 40
    assert account_service.get_account(a1.id).balance == Decimal("-50.00")
    assert account_service.get_account(a2.id).balance == Decimal("50.00")
    assert account_service.verify_balances() == []


def test_listing_while_posting(temp_db, two_accounts):
    """Readers see whole entries only."""
    a1, a2 = two_accounts
    journal = JournalService(temp_db)
    lines = [{"account_id": a2.id, "debit": "2.00"}, {"account_id": a1.id, "credit": "2.00"}]

    def post(n):
        journal.post_entry(date(2024, 2, 1), f"Paper {n}", lines)

    def read(_):
        return [entry.total_debit == entry.total_credit for entry in journal.list_entries()]

    with ThreadPoolExecutor(max_workers=6) as pool:
        writes = [pool.submit(post, n) for n in range(20)]
        reads = [pool.submit(read, n) for n in range(10)]
        for future in writes:
            future.result()
        assert all(all(result.result()) for result in reads)

    assert len(list(journal.list_entries())) == 20


def test_concurrent_reconcile_posts_once(temp_db, starbucks_txn, journal_service):
    """Racing reconciliations of one transaction produce exactly one entry."""
    service = ReconciliationService(temp_db)

    def reconcile(_):
        try:
            return service.reconcile(starbucks_txn.id).journal_entry_id
        except AlreadyReconciledError:
            return None

    with ThreadPoolExecutor(max_workers=4) as pool:
        outcomes = list(pool.map(reconcile, range(8)))

    linked = [entry_id for entry_id in outcomes if entry_id is not None]
    assert len(linked) == 1
    assert [entry.id for entry in journal_service.list_entries()] == linked
