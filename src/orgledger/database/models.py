"""SQLAlchemy models for orgledger database."""

import uuid
from datetime import datetime, UTC
from sqlalchemy import (
    BigInteger,
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    UniqueConstraint,
    CheckConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


class Account(Base):
    """Account model. Money columns hold minor units."""

    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=_new_id)
    organization_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    account_type = Column(String, nullable=False)
    description = Column(String, nullable=True)
    opening_balance = Column(BigInteger, default=0, nullable=False)
    balance = Column(BigInteger, default=0, nullable=False)

    # Bank specific
    bank_name = Column(String, nullable=True)
    bank_branch = Column(String, nullable=True)
    account_number = Column(String, nullable=True)
    bank_account_type = Column(String, nullable=True)

    # Mobile money specific
    network = Column(String, nullable=True)
    number = Column(String, nullable=True)

    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (UniqueConstraint("organization_id", "name", name="uq_account_org_name"),)

    postings = relationship("Posting", back_populates="account")


class Category(Base):
    """Finance category model."""

    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=_new_id)
    organization_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    category_type = Column(String, nullable=False)
    description = Column(String, nullable=True)
    track_members = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (
        UniqueConstraint("organization_id", "name", "category_type", name="uq_category_org_name_type"),
    )


class Liability(Base):
    """Liability model. amount_paid, balance and status are derived."""

    __tablename__ = "liabilities"

    id = Column(String(36), primary_key=True, default=_new_id)
    organization_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)
    category = Column(String, nullable=False)
    description = Column(String, nullable=False)
    creditor = Column(String, nullable=False)
    original_amount = Column(BigInteger, nullable=False)
    amount_paid = Column(BigInteger, default=0, nullable=False)
    balance = Column(BigInteger, nullable=False)
    status = Column(String, nullable=False)

    # Loans and overdrafts
    is_loan = Column(Boolean, default=False, nullable=False)
    linked_income_posting_id = Column(String(36), nullable=True)
    interest_rate = Column(Numeric(5, 2), nullable=True)
    loan_start_date = Column(Date, nullable=True)
    loan_end_date = Column(Date, nullable=True)
    loan_duration_days = Column(Integer, nullable=True)
    amount_received = Column(BigInteger, nullable=True)

    created_at = Column(DateTime, default=_now, nullable=False)

    payments = relationship("Posting", back_populates="liability")


class Transfer(Base):
    """Transfer model; backed by one posting on each side."""

    __tablename__ = "transfers"

    id = Column(String(36), primary_key=True, default=_new_id)
    organization_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)
    from_account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    from_account_name = Column(String, nullable=False)
    to_account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    to_account_name = Column(String, nullable=False)
    amount = Column(BigInteger, nullable=False)
    description = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)


class Reconciliation(Base):
    """Reconciliation model."""

    __tablename__ = "reconciliations"

    id = Column(String(36), primary_key=True, default=_new_id)
    organization_id = Column(String, nullable=False, index=True)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    account_name = Column(String, nullable=False)
    date = Column(Date, nullable=False)
    book_balance = Column(BigInteger, nullable=False)
    bank_balance = Column(BigInteger, nullable=False)
    difference = Column(BigInteger, nullable=False)
    status = Column(String, nullable=False)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    entries = relationship(
        "ReconciliationEntry", back_populates="reconciliation", cascade="all, delete-orphan"
    )


class ReconciliationEntry(Base):
    """Membership of a posting in a reconciliation's reconciled set."""

    __tablename__ = "reconciliation_entries"

    reconciliation_id = Column(String(36), ForeignKey("reconciliations.id"), primary_key=True)
    posting_id = Column(String(36), ForeignKey("postings.id"), primary_key=True)
    entry_type = Column(String, nullable=False)

    reconciliation = relationship("Reconciliation", back_populates="entries")


class Posting(Base):
    """Posting model.

    ``sequence`` is the integer primary key and doubles as the commit order.
    """

    __tablename__ = "postings"

    sequence = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), unique=True, nullable=False, default=_new_id)
    organization_id = Column(String, nullable=False, index=True)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    kind = Column(String, nullable=False)
    amount = Column(BigInteger, nullable=False)
    date = Column(Date, nullable=False)
    category = Column(String, nullable=False)
    description = Column(String, nullable=True)
    reference = Column(String, nullable=True)
    member_id = Column(String, nullable=True)
    member_name = Column(String, nullable=True)
    linked_liability_id = Column(String(36), ForeignKey("liabilities.id"), nullable=True)
    transfer_id = Column(String(36), ForeignKey("transfers.id"), nullable=True)
    reconciliation_id = Column(String(36), ForeignKey("reconciliations.id"), nullable=True)
    is_reconciled = Column(Boolean, default=False, nullable=False)
    added_in_reconciliation_id = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    account = relationship("Account", back_populates="postings")
    liability = relationship("Liability", back_populates="payments")


class Budget(Base):
    """Budget model. Spent is computed from postings, never stored."""

    __tablename__ = "budgets"

    id = Column(String(36), primary_key=True, default=_new_id)
    organization_id = Column(String, nullable=False, index=True)
    category = Column(String, nullable=False)
    period = Column(String, nullable=False, index=True)
    budgeted = Column(BigInteger, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)

    __table_args__ = (
        UniqueConstraint("organization_id", "category", "period", name="uq_budget_org_category_period"),
        CheckConstraint("budgeted >= 0", name="ck_budget_budgeted_non_negative"),
    )


class Operation(Base):
    """Idempotency log for orchestrator recipes."""

    __tablename__ = "operations"

    organization_id = Column(String, primary_key=True)
    key = Column(String, primary_key=True)
    recipe = Column(String, nullable=False)
    result_id = Column(String(36), nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
