"""Journal engine domain service.

The journal is the only writer of account balances. Every posting goes
through two phases:

1. validate: lines are normalized to two-place decimals, every account
   must resolve and be active, no line may carry both a debit and a
   credit, and total debits must equal total credits exactly;
2. apply: the database inserts the entry and applies each line's balance
   delta, in line order, inside one transaction under the write lock.

A failure in either phase leaves every balance untouched.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Iterator, Mapping, Optional, Sequence

from ledgerkit.database.base import Database
from ledgerkit.domain.entities import (
    AccountStatus,
    EntryStatus,
    JournalEntry as JournalEntryEntity,
    JournalLineInput,
)
from ledgerkit.domain.errors import (
    InvalidLineError,
    NotFoundError,
    UnbalancedEntryError,
    ValidationError,
    entry_not_found,
)
from ledgerkit.logging_config import get_logger
from ledgerkit.utils.money import ZERO, to_money

logger = get_logger(__name__)

LineLike = JournalLineInput | Mapping[str, Any]


def _as_line_input(line: LineLike) -> JournalLineInput:
    if isinstance(line, JournalLineInput):
        return line
    unknown = set(line) - {"account_id", "debit", "credit", "memo", "advisor_id"}
    if unknown:
        raise InvalidLineError(f"Unknown journal line field(s): {', '.join(sorted(unknown))}")
    if "account_id" not in line:
        raise InvalidLineError("Journal line is missing account_id")
    return JournalLineInput(
        account_id=line["account_id"],
        debit=line.get("debit") or ZERO,
        credit=line.get("credit") or ZERO,
        memo=line.get("memo"),
        advisor_id=line.get("advisor_id"),
    )


def normalize_line(number: int, line: LineLike) -> JournalLineInput:
    """Validate the shape of one line and return it with exact amounts.

    Raises:
        InvalidLineError: If an amount is malformed or negative, or the
            line carries both or neither of debit and credit
    """
    line = _as_line_input(line)
    try:
        debit = to_money(line.debit)
        credit = to_money(line.credit)
    except ValueError as e:
        raise InvalidLineError(f"Line {number}: {e}")

    if debit < 0 or credit < 0:
        raise InvalidLineError(f"Line {number}: amounts must not be negative")
    if debit != 0 and credit != 0:
        raise InvalidLineError(f"Line {number}: a line cannot carry both a debit and a credit")
    if debit == 0 and credit == 0:
        raise InvalidLineError(f"Line {number}: a line needs a debit or a credit amount")

    return JournalLineInput(
        account_id=line.account_id,
        debit=debit,
        credit=credit,
        memo=line.memo,
        advisor_id=line.advisor_id,
    )


def entry_imbalance(lines: Sequence[JournalLineInput]) -> Decimal:
    """Return total debits minus total credits."""
    debit = sum((line.debit for line in lines), ZERO)
    credit = sum((line.credit for line in lines), ZERO)
    return debit - credit


class JournalService:
    """Service for posting, voiding and querying journal entries."""

    def __init__(self, db: Database):
        """Initialize journal service.

        Args:
            db: Database instance
        """
        self.db = db

    def _validate_lines(self, lines: Sequence[LineLike]) -> list[JournalLineInput]:
        if not lines:
            raise InvalidLineError("A journal entry needs at least one line")

        normalized = [normalize_line(number, line) for number, line in enumerate(lines, start=1)]
        for number, line in enumerate(normalized, start=1):
            account = self.db.get_account(line.account_id)
            if account is None:
                raise InvalidLineError(f"Line {number}: account {line.account_id} not found")
            if account.status != AccountStatus.ACTIVE:
                raise InvalidLineError(
                    f"Line {number}: account {account.code} is {account.status.value}"
                )
        return normalized

    @staticmethod
    def _require_description(description: str) -> str:
        description = (description or "").strip()
        if not description:
            raise ValidationError("Journal entry description is required")
        return description

    @staticmethod
    def _check_balanced(lines: Sequence[JournalLineInput]) -> None:
        delta = entry_imbalance(lines)
        if delta != 0:
            logger.warning("Rejected unbalanced journal entry", extra={"delta": delta})
            raise UnbalancedEntryError(delta)

    def post_entry(
        self,
        date: date,
        description: str,
        lines: Sequence[LineLike],
        reference: Optional[str] = None,
    ) -> JournalEntryEntity:
        """Validate and post a journal entry.

        Posting is not idempotent; callers that need it should check
        ``find_entries_by_reference`` first.

        Args:
            date: Entry date
            description: Entry description
            lines: Lines as JournalLineInput or dicts with account_id,
                debit, credit, memo, advisor_id
            reference: Optional external reference (invoice, check number)

        Returns:
            The posted entry

        Raises:
            InvalidLineError: If a line is malformed or its account is
                missing or archived
            UnbalancedEntryError: If debits and credits differ
        """
        description = self._require_description(description)
        normalized = self._validate_lines(lines)
        self._check_balanced(normalized)

        entry_id = self.db.create_journal_entry(
            date=date,
            description=description,
            lines=normalized,
            reference=reference,
            status=EntryStatus.POSTED,
        )
        logger.info(
            "Journal entry posted",
            extra={"entry_id": entry_id, "reference": reference, "line_count": len(normalized)},
        )
        return self.get_entry(entry_id)

    def create_draft(
        self,
        date: date,
        description: str,
        lines: Sequence[LineLike],
        reference: Optional[str] = None,
    ) -> JournalEntryEntity:
        """Store an entry as a draft; drafts do not affect balances."""
        description = self._require_description(description)
        normalized = self._validate_lines(lines)
        entry_id = self.db.create_journal_entry(
            date=date,
            description=description,
            lines=normalized,
            reference=reference,
            status=EntryStatus.DRAFT,
        )
        return self.get_entry(entry_id)

    def post_draft(self, entry_id: int) -> JournalEntryEntity:
        """Post a draft entry after full validation."""
        entry = self.get_entry(entry_id)
        if entry.status != EntryStatus.DRAFT:
            raise ValidationError(f"Journal entry {entry_id} is {entry.status.value}, not a draft")

        normalized = self._validate_lines(
            [
                JournalLineInput(line.account_id, line.debit, line.credit, line.memo, line.advisor_id)
                for line in entry.lines
            ]
        )
        self._check_balanced(normalized)
        self.db.post_draft_entry(entry_id)
        logger.info("Draft journal entry posted", extra={"entry_id": entry_id})
        return self.get_entry(entry_id)

    def void_entry(self, entry_id: int, void_date: Optional[date] = None) -> JournalEntryEntity:
        """Void a posted entry by posting its reversal.

        The reversing entry swaps debit and credit on every line; the
        original is marked void and points at it through
        ``reversed_by_id``.

        Returns:
            The original entry, now void

        Raises:
            NotFoundError: If the entry does not exist
            AlreadyVoidError: If the entry was voided before
            ValidationError: If the entry is a draft or is itself a reversal
        """
        entry = self.get_entry(entry_id)
        reversal_id = self.db.void_journal_entry(
            entry_id,
            void_date=void_date or entry.date,
            description=f"Void of entry {entry_id}: {entry.description}",
        )
        logger.info("Journal entry voided", extra={"entry_id": entry_id, "reversal_id": reversal_id})
        return self.get_entry(entry_id)

    def get_entry(self, entry_id: int) -> JournalEntryEntity:
        """Get journal entry by ID.

        Raises:
            NotFoundError: If the entry does not exist
        """
        entry = self.db.get_journal_entry(entry_id)
        if entry is None:
            raise NotFoundError(entry_not_found(entry_id))
        return entry

    def find_entries_by_reference(self, reference: str) -> list[JournalEntryEntity]:
        """Return entries carrying an external reference."""
        return list(self.db.iter_journal_entries(reference=reference))

    def list_entries(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[EntryStatus | str] = None,
        account_id: Optional[int] = None,
    ) -> Iterator[JournalEntryEntity]:
        """Lazily iterate entries ordered by date descending.

        Each call runs a fresh query, so the result can be iterated again
        by calling this method again.
        """
        if status is not None:
            try:
                status = EntryStatus(status)
            except ValueError:
                raise ValidationError(f"Invalid entry status '{status}'")
        return self.db.iter_journal_entries(
            start_date=start_date,
            end_date=end_date,
            status=status,
            account_id=account_id,
        )
