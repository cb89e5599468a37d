"""Tests for business, account, category, book, audit and summary services."""

import pytest
from datetime import date
from decimal import Decimal

from cashify.domain.audit import AuditService
from cashify.domain.entities import AccountKind, BookType, CategoryKind
from cashify.domain.errors import ConflictError, NotFoundError, ValidationError
from cashify.domain.summary import SummaryService


class TestBusinessService:
    """Tests for BusinessService."""

    def test_create_normalizes_currency(self, business_service):
        business_id = business_service.create_business("  Cafe  ", currency="eur")
        business = business_service.get_business(business_id)

        assert business.name == "Cafe"
        assert business.currency == "EUR"
        assert business.enforce_non_negative is False

    @pytest.mark.parametrize("name,currency", [("", "USD"), ("Cafe", "EURO"), ("Cafe", "")])
    def test_create_validation(self, business_service, name, currency):
        with pytest.raises(ValidationError):
            business_service.create_business(name, currency=currency)

    def test_policy_toggle_is_audited(self, business_service, temp_db, sample_business):
        business = business_service.set_non_negative_policy(sample_business.id, True, actor="owner")

        assert business.enforce_non_negative is True
        events = temp_db.list_audit_events(sample_business.id, entity_type="business")
        assert events[-1].new_values == {"enforce_non_negative": True}
        assert events[-1].actor == "owner"

    def test_require_missing(self, business_service):
        with pytest.raises(NotFoundError):
            business_service.require_business(999)


class TestAccountService:
    """Tests for AccountService."""

    def test_create_defaults_to_business_currency(self, account_service, sample_business):
        account_id = account_service.create_account(sample_business.id, "Till")
        account = account_service.get_account(sample_business.id, account_id)

        assert account.kind is AccountKind.CASH
        assert account.currency == "USD"
        assert account.current_balance == Decimal("0.00")

    def test_credit_account_may_open_negative(self, account_service, sample_business):
        account_id = account_service.create_account(
            sample_business.id, "Card", kind="credit", initial_balance="-250.00"
        )
        assert account_service.get_account(sample_business.id, account_id).current_balance == Decimal("-250.00")

    def test_duplicate_name(self, account_service, sample_account):
        with pytest.raises(ConflictError):
            account_service.create_account(sample_account.business_id, "Till")

    def test_invalid_kind(self, account_service, sample_business):
        with pytest.raises(ValidationError):
            account_service.create_account(sample_business.id, "Vault", kind="vault")

    def test_rename(self, account_service, sample_account, second_account):
        renamed = account_service.rename_account(sample_account.business_id, sample_account.id, "Drawer")
        assert renamed.name == "Drawer"

        with pytest.raises(ConflictError):
            account_service.rename_account(sample_account.business_id, sample_account.id, "Checking")

    def test_deactivate_blocked_by_balance(self, account_service, sample_account):
        with pytest.raises(ValidationError, match="balance is 1000.00"):
            account_service.deactivate_account(sample_account.business_id, sample_account.id)

    def test_deactivate_and_activate(self, account_service, sample_business):
        account_id = account_service.create_account(sample_business.id, "Spare")

        account_service.deactivate_account(sample_business.id, account_id)
        assert [a.name for a in account_service.list_accounts(sample_business.id)] == []
        assert len(account_service.list_accounts(sample_business.id, include_inactive=True)) == 1

        assert account_service.activate_account(sample_business.id, account_id).is_active

    def test_accounts_are_scoped_to_business(self, account_service, business_service, sample_account):
        other = business_service.create_business("Other")
        assert account_service.get_account(other, sample_account.id) is None
        with pytest.raises(NotFoundError):
            account_service.require_account(other, sample_account.id)


class TestCategoryAndBookServices:
    """Tests for CategoryService and BookService."""

    def test_same_name_allowed_across_kinds(self, category_service, sample_business):
        category_service.create_category(sample_business.id, "Misc", "income")
        category_service.create_category(sample_business.id, "Misc", "expense")

        with pytest.raises(ConflictError):
            category_service.create_category(sample_business.id, "Misc", "expense")

    def test_list_by_kind(self, category_service, expense_category, income_category):
        expense_only = category_service.list_categories(expense_category.business_id, kind="expense")

        assert [c.name for c in expense_only] == ["Rent"]
        assert expense_only[0].kind is CategoryKind.EXPENSE

    def test_invalid_category_kind(self, category_service, sample_business):
        with pytest.raises(ValidationError):
            category_service.create_category(sample_business.id, "Odd", "transfer")

    def test_book_round_trip(self, book_service, sample_business):
        book_id = book_service.create_book(
            sample_business.id, "Renovation", book_type="project", description="Q3 works"
        )
        book = book_service.require_book(sample_business.id, book_id)

        assert book.book_type is BookType.PROJECT
        assert book.description == "Q3 works"
        with pytest.raises(ConflictError):
            book_service.create_book(sample_business.id, "Renovation")

    def test_missing_book_and_category(self, book_service, category_service, sample_business):
        with pytest.raises(NotFoundError):
            book_service.require_book(sample_business.id, 999)
        with pytest.raises(NotFoundError):
            category_service.require_category(sample_business.id, 999)


class TestAuditService:
    """Tests for AuditService."""

    def test_filters_by_entity(self, temp_db, entry_service, sample_account, day):
        entry = entry_service.create_entry(
            sample_account.business_id, sample_account.id, "income", "5.00", day
        )
        entry_service.update_entry(sample_account.business_id, entry.id, note="Tip")

        events = AuditService(temp_db).list_events(
            sample_account.business_id, entity_type="entry", entity_id=entry.id
        )

        assert [e.action for e in events] == ["create", "update"]
        assert not events[1].old_values["note"]
        assert events[1].new_values["note"] == "Tip"


class TestSummaryService:
    """Tests for SummaryService.dashboard."""

    def test_dashboard(self, temp_db, entry_service, sample_account, second_account):
        biz = sample_account.business_id
        entry_service.create_entry(biz, sample_account.id, "income", "300.00", date(2024, 1, 5))
        entry_service.create_entry(biz, sample_account.id, "expense", "120.00", date(2024, 1, 6))
        dropped = entry_service.create_entry(biz, second_account.id, "expense", "9.00", date(2024, 1, 7))
        entry_service.cancel_entry(biz, dropped.id)
        entry_service.transfers.create_transfer(
            biz, sample_account.id, second_account.id, "50.00", date(2024, 1, 8)
        )
        entry_service.create_entry(biz, sample_account.id, "income", "1.00", date(2024, 3, 1))

        stats = SummaryService(temp_db).dashboard(
            biz, start_date=date(2024, 1, 1), end_date=date(2024, 1, 31)
        )

        assert stats.income_by_currency == {"USD": Decimal("300.00")}
        assert stats.expenses_by_currency == {"USD": Decimal("120.00")}
        assert stats.net_by_currency == {"USD": Decimal("180.00")}
        assert stats.balances_by_currency == {"USD": Decimal("1231.00")}
        assert stats.active_account_count == 2
        assert stats.entry_count == 6
        assert len(stats.recent_entries) == 5
        assert stats.recent_entries[0].date == date(2024, 3, 1)

    def test_dashboard_keeps_currencies_apart(self, temp_db, entry_service, account_service, sample_business, day):
        usd = account_service.create_account(sample_business.id, "Dollars")
        eur = account_service.create_account(sample_business.id, "Euros", currency="EUR")
        entry_service.create_entry(sample_business.id, usd, "income", "100.00", day)
        entry_service.create_entry(sample_business.id, eur, "income", "100.00", day)
        entry_service.create_entry(sample_business.id, eur, "expense", "30.00", day)

        stats = SummaryService(temp_db).dashboard(sample_business.id)

        assert stats.income_by_currency == {"EUR": Decimal("100.00"), "USD": Decimal("100.00")}
        assert stats.expenses_by_currency == {"EUR": Decimal("30.00"), "USD": Decimal("0.00")}
        assert stats.net_by_currency == {"EUR": Decimal("70.00"), "USD": Decimal("100.00")}
        assert stats.balances_by_currency == {"EUR": Decimal("70.00"), "USD": Decimal("100.00")}

    def test_income_on_deactivated_account_still_counted(self, temp_db, entry_service, account_service, sample_business, day):
        eur = account_service.create_account(sample_business.id, "Euros", currency="EUR")
        income = entry_service.create_entry(sample_business.id, eur, "income", "10.00", day)
        entry_service.create_entry(sample_business.id, eur, "expense", "10.00", day)
        account_service.deactivate_account(sample_business.id, eur)

        stats = SummaryService(temp_db).dashboard(sample_business.id)

        assert stats.income_by_currency == {"EUR": income.amount}
        assert stats.active_account_count == 0
        assert stats.balances_by_currency == {}

    def test_dashboard_unknown_business(self, temp_db):
        with pytest.raises(NotFoundError):
            SummaryService(temp_db).dashboard(999)
