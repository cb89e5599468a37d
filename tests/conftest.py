"""Shared pytest fixtures for cashify tests."""

import os
import tempfile
from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from cashify.database.factories import create_sqlite_database
from cashify.domain.account import AccountService
from cashify.domain.balance import BalanceCalculator
from cashify.domain.book import BookService
from cashify.domain.business import BusinessService
from cashify.domain.category import CategoryService
from cashify.domain.entities import Entry, EntryKind, EntryStatus, PaymentMode
from cashify.domain.entry import EntryService
from cashify.domain.guard import ConsistencyGuard
from cashify.logging_config import reset_logging


@pytest.fixture(autouse=True)
def _reset_logging():
    """Each test starts with an unconfigured cashify logger."""
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def guard(temp_db):
    """Guard with a short lock timeout so contention tests finish quickly."""
    return ConsistencyGuard(temp_db, lock_timeout=2.0)


@pytest.fixture
def business_service(temp_db):
    return BusinessService(temp_db)


@pytest.fixture
def account_service(temp_db, guard):
    return AccountService(temp_db, guard)


@pytest.fixture
def category_service(temp_db):
    return CategoryService(temp_db)


@pytest.fixture
def book_service(temp_db):
    return BookService(temp_db)


@pytest.fixture
def entry_service(temp_db, guard):
    return EntryService(temp_db, guard)


@pytest.fixture
def transfer_coordinator(entry_service):
    return entry_service.transfers


@pytest.fixture
def balance_calculator(temp_db, guard):
    return BalanceCalculator(temp_db, guard)


@pytest.fixture
def sample_business(business_service):
    """Business without the non-negative policy."""
    business_id = business_service.create_business("Test Shop", currency="USD")
    return business_service.get_business(business_id)


@pytest.fixture
def strict_business(business_service):
    """Business that rejects negative balances."""
    business_id = business_service.create_business(
        "Strict Shop", currency="USD", enforce_non_negative=True
    )
    return business_service.get_business(business_id)


@pytest.fixture
def sample_account(account_service, sample_business):
    """Cash account opened with 1000.00."""
    account_id = account_service.create_account(
        sample_business.id, "Till", initial_balance=Decimal("1000.00")
    )
    return account_service.get_account(sample_business.id, account_id)


@pytest.fixture
def second_account(account_service, sample_business):
    """Bank account opened with 50.00."""
    account_id = account_service.create_account(
        sample_business.id, "Checking", kind="bank", initial_balance=Decimal("50.00")
    )
    return account_service.get_account(sample_business.id, account_id)


@pytest.fixture
def expense_category(category_service, sample_business):
    category_id = category_service.create_category(sample_business.id, "Rent", "expense")
    return category_service.get_category(sample_business.id, category_id)


@pytest.fixture
def income_category(category_service, sample_business):
    category_id = category_service.create_category(sample_business.id, "Sales", "income")
    return category_service.get_category(sample_business.id, category_id)


@pytest.fixture
def day():
    """A fixed entry date."""
    return date(2024, 3, 15)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def make_entry():
    """Build detached Entry values for pure-function tests."""

    def build(**overrides) -> Entry:
        now = datetime.now(UTC)
        fields = dict(
            id=1,
            business_id=1,
            account_id=1,
            kind=EntryKind.EXPENSE,
            amount=Decimal("10.00"),
            date=date(2024, 1, 15),
            status=EntryStatus.CLEARED,
            sequence=1,
            note=None,
            payment_mode=PaymentMode.CASH,
            category_id=None,
            book_id=None,
            linked_entry_id=None,
            transfer_group_id=None,
            reverses_entry_id=None,
            attachments=(),
            created_by=None,
            created_at=now,
            updated_at=now,
        )
        fields.update(overrides)
        return Entry(**fields)

    return build
