"""SQLAlchemy models for cashify database."""

from datetime import datetime, UTC
from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

# Amounts are stored with two decimal places, like the source schema.
MONEY = Numeric(15, 2)

ENTRY_SEQUENCE = "entry"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Business(Base):
    """Business (tenant) model."""

    __tablename__ = "businesses"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    enforce_non_negative = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    # Relationships
    accounts = relationship("Account", back_populates="business")


class Account(Base):
    """Money account model with a cached balance column."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    name = Column(String, nullable=False)
    kind = Column(String, nullable=False)
    currency = Column(String(3), nullable=False)
    initial_balance = Column(MONEY, nullable=False, default=0)
    current_balance = Column(MONEY, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("business_id", "name", name="uq_account_business_name"),
    )

    # Relationships
    business = relationship("Business", back_populates="accounts")
    entries = relationship("Entry", back_populates="account")


class Category(Base):
    """Income/expense category model."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    name = Column(String, nullable=False)
    kind = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("business_id", "name", "kind", name="uq_category_business_name_kind"),
    )


class Book(Base):
    """Book model."""

    __tablename__ = "books"

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    name = Column(String, nullable=False)
    book_type = Column(String, nullable=False, default="general")
    description = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("business_id", "name", name="uq_book_business_name"),)


class Entry(Base):
    """Ledger entry model.

    ``amount`` is always positive; the sign comes from ``kind``.
    """

    __tablename__ = "entries"

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    kind = Column(String, nullable=False)
    amount = Column(MONEY, nullable=False)
    date = Column(Date, nullable=False)
    status = Column(String, nullable=False, default="cleared")
    sequence = Column(BigInteger, nullable=False, unique=True)
    note = Column(String, nullable=True)
    payment_mode = Column(String, nullable=False, default="cash")
    linked_entry_id = Column(Integer, nullable=True)
    transfer_group_id = Column(String(32), nullable=True)
    reverses_entry_id = Column(Integer, nullable=True)
    attachments = Column(JSON, nullable=False, default=list)
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_entries_account_date_sequence", "account_id", "date", "sequence"),
        Index("ix_entries_transfer_group", "transfer_group_id"),
        Index("ix_entries_business", "business_id"),
    )

    # Relationships
    account = relationship("Account", back_populates="entries")


class TeamMember(Base):
    """Membership of a user in a business, with role and permissions."""

    __tablename__ = "team_members"

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    user_id = Column(String, nullable=False)
    name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    role = Column(String, nullable=False, default="staff")
    is_active = Column(Boolean, default=True, nullable=False)
    permissions = Column(JSON, nullable=False, default=dict)
    allowed_account_ids = Column(JSON, nullable=False, default=list)
    allowed_book_ids = Column(JSON, nullable=False, default=list)
    invited_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("business_id", "user_id", name="uq_team_member_business_user"),
    )


class SequenceCounter(Base):
    """Named monotonic counter. The row is the only source of the next value."""

    __tablename__ = "sequence_counters"

    name = Column(String(50), primary_key=True)
    current_value = Column(BigInteger, nullable=False, default=0)


class AuditEvent(Base):
    """Audit log row written alongside the change it describes."""

    __tablename__ = "audit_events"

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    entity_type = Column(String, nullable=False)
    entity_id = Column(String, nullable=False)
    action = Column(String, nullable=False)
    actor = Column(String, nullable=True)
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_audit_business_entity", "business_id", "entity_type", "entity_id"),
    )


def _begin_immediate(engine: Engine) -> None:
    """Make every SQLite transaction take the write lock up front.

    Deferred transactions that read first and write later can fail with
    "database is locked" without waiting when two connections upgrade at
    once; an immediate BEGIN waits on the busy timeout instead.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(database_url: str) -> Engine:
    """Create an engine and make sure the schema exists."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Sessions are per thread; the pool may hand a connection to another thread.
        connect_args = {"check_same_thread": False, "timeout": 30}
    engine = create_engine(database_url, echo=False, connect_args=connect_args)
    if engine.dialect.name == "sqlite":
        _begin_immediate(engine)
    Base.metadata.create_all(engine)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    return sessionmaker(bind=engine, expire_on_commit=False)
