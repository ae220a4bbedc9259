"""SQLAlchemy models for the ledgerkit database."""

from datetime import datetime, UTC
from sqlalchemy import (
    JSON,
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

MONEY = Numeric(14, 2)


class Account(Base):
    """General ledger account model."""

    __tablename__ = "ledger_accounts"

    id = Column(Integer, primary_key=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    account_type = Column(String, nullable=False)
    category = Column(String, nullable=False, default="")
    normal_balance = Column(String, nullable=False)
    balance = Column(MONEY, nullable=False, default=0)
    status = Column(String, nullable=False, default="active")
    description = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    lines = relationship("JournalLine", back_populates="account")


class JournalEntry(Base):
    """Journal entry header model."""

    __tablename__ = "journal_entries"

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=False)
    description = Column(String, nullable=False)
    reference = Column(String, nullable=True, index=True)
    status = Column(String, nullable=False)
    reversal_of_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=True)
    reversed_by_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    lines = relationship(
        "JournalLine",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalLine.line_number",
    )


class JournalLine(Base):
    """Journal line model."""

    __tablename__ = "journal_lines"

    id = Column(Integer, primary_key=True)
    entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=False)
    line_number = Column(Integer, nullable=False)
    account_id = Column(Integer, ForeignKey("ledger_accounts.id"), nullable=False)
    debit = Column(MONEY, nullable=False, default=0)
    credit = Column(MONEY, nullable=False, default=0)
    memo = Column(String, nullable=True)
    advisor_id = Column(String, nullable=True, index=True)

    # Relationships
    entry = relationship("JournalEntry", back_populates="lines")
    account = relationship("Account", back_populates="lines")


class TaxConfig(Base):
    """Tax configuration model."""

    __tablename__ = "tax_configs"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    rate = Column(Numeric(9, 6), nullable=False)
    liability_account_id = Column(Integer, ForeignKey("ledger_accounts.id"), nullable=False)
    expense_account_id = Column(Integer, ForeignKey("ledger_accounts.id"), nullable=False)
    jurisdiction = Column(String, nullable=False, default="")
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


class BankAccount(Base):
    """External bank account model."""

    __tablename__ = "bank_accounts"

    id = Column(Integer, primary_key=True)
    owner_id = Column(String, nullable=False, index=True)
    institution_name = Column(String, nullable=False)
    name = Column(String, nullable=False)
    masked_number = Column(String, nullable=False)
    account_type = Column(String, nullable=False)
    balance = Column(MONEY, nullable=False, default=0)
    last_synced_at = Column(DateTime, nullable=True)
    status = Column(String, nullable=False, default="active")
    gl_account_id = Column(Integer, ForeignKey("ledger_accounts.id"), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    transactions = relationship("BankTransaction", back_populates="bank_account")


class BankTransaction(Base):
    """Bank feed transaction model."""

    __tablename__ = "bank_transactions"

    id = Column(Integer, primary_key=True)
    bank_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=False)
    external_id = Column(String, nullable=True)
    date = Column(Date, nullable=False)
    merchant = Column(String, nullable=False)
    description = Column(String, nullable=True)
    amount = Column(MONEY, nullable=False)
    status = Column(String, nullable=False, default="pending")
    category = Column(String, nullable=True)
    receipt_reference = Column(String, nullable=True)
    journal_entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=True)
    is_rule_match = Column(Boolean, default=False, nullable=False)
    matched_rule_id = Column(Integer, ForeignKey("bank_rules.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # A feed may redeliver a record; the external id dedupes it per account
    __table_args__ = (
        UniqueConstraint("bank_account_id", "external_id", name="uq_bank_account_external_id"),
    )

    # Relationships
    bank_account = relationship("BankAccount", back_populates="transactions")


class ExpenseCategory(Base):
    """Expense category model."""

    __tablename__ = "expense_categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    gl_account_id = Column(Integer, ForeignKey("ledger_accounts.id"), nullable=False)
    tax_deductible = Column(Boolean, default=False, nullable=False)
    keywords = Column(JSON, nullable=False, default=list)
    tax_config_id = Column(Integer, ForeignKey("tax_configs.id"), nullable=True)


class BankRule(Base):
    """Bank matching rule model."""

    __tablename__ = "bank_rules"

    id = Column(Integer, primary_key=True)
    owner_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    conditions = Column(JSON, nullable=False, default=list)
    assign_category = Column(String, nullable=False)
    priority = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Sessions are shared across threads behind the database write lock
        connect_args["check_same_thread"] = False
    engine = create_engine(database_url, echo=False, connect_args=connect_args)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
