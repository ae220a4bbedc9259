"""Tests for deal and commission postings."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerkit.domain.compensation import CompensationService
from ledgerkit.domain.errors import ValidationError


@pytest.fixture
def compensation(seeded_ledger):
    return CompensationService(seeded_ledger)


def test_record_deal(compensation, account_service):
    entry = compensation.record_deal("10000", "adv-1", "0.7", "Smith life policy", date=date(2024, 5, 1))

    assert entry.description == "Deal Closed: Smith life policy"
    assert entry.reference.startswith("DEAL-")
    assert entry.total_debit == entry.total_credit == Decimal("17000.00")
    assert account_service.get_account_by_code("1100").balance == Decimal("10000.00")
    assert account_service.get_account_by_code("4000").balance == Decimal("10000.00")
    assert account_service.get_account_by_code("5000").balance == Decimal("7000.00")
    assert account_service.get_account_by_code("2200").balance == Decimal("7000.00")
    assert [line.advisor_id for line in entry.lines] == [None, None, "adv-1", "adv-1"]


def test_record_deal_without_commission(compensation):
    entry = compensation.record_deal("500", "adv-1", "0", "House account")

    assert len(entry.lines) == 2


def test_record_deal_rounds_commission(compensation, account_service):
    compensation.record_deal("100.01", "adv-1", "0.5", "Rounding")

    # 50.005 rounds half-up
    assert account_service.get_account_by_code("2200").balance == Decimal("50.01")


@pytest.mark.parametrize(
    "revenue, rate, advisor",
    [("0", "0.5", "adv-1"), ("-10", "0.5", "adv-1"), ("100", "1.5", "adv-1"), ("100", "x", "adv-1"), ("100", "0.5", "")],
)
def test_record_deal_rejects(compensation, journal_service, revenue, rate, advisor):
    with pytest.raises(ValidationError):
        compensation.record_deal(revenue, advisor, rate, "Bad deal")

    assert list(journal_service.list_entries()) == []


def test_pay_advisor_and_balance(compensation, account_service):
    compensation.record_deal("10000", "adv-1", "0.5", "Policy A")
    compensation.record_deal("2000", "adv-2", "0.5", "Policy B")

    compensation.pay_advisor("adv-1", "3000", advisor_name="Jane Advisor")

    assert compensation.advisor_balance("adv-1") == Decimal("2000.00")
    assert compensation.advisor_balance("adv-2") == Decimal("1000.00")
    assert compensation.advisor_balance("adv-3") == Decimal("0")
    assert account_service.get_account_by_code("1000").balance == Decimal("-3000.00")


def test_pay_advisor_description(compensation):
    entry = compensation.pay_advisor("adv-1", "10", advisor_name="Jane Advisor")

    assert entry.description == "Commission Payout: Jane Advisor"


def test_missing_compensation_account(temp_db):
    with pytest.raises(ValidationError, match="1100"):
        CompensationService(temp_db).record_deal("100", "adv-1", "0.1", "No chart")
