"""Dashboard statistics for a business."""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional

from cashify.database.base import Database
from cashify.domain.business import BusinessService
from cashify.domain.entities import DashboardStats, EntryKind

ZERO = Decimal("0.00")


class SummaryService:
    """Service for business-level totals."""

    def __init__(self, db: Database):
        self.db = db

    def dashboard(
        self,
        business_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> DashboardStats:
        """Compute dashboard figures.

        Income and expense totals cover non-cancelled income and expense
        entries in the date range; transfers move money between the business's
        own accounts and are left out. Every total is kept per account
        currency; amounts in different currencies are never added together.
        Balances are the cached balances of active accounts.
        """
        BusinessService(self.db).require_business(business_id)
        with self.db.transaction():
            entries = self.db.list_entries(
                business_id,
                start_date=start_date,
                end_date=end_date,
                kinds=[EntryKind.INCOME, EntryKind.EXPENSE],
                include_cancelled=False,
            )
            all_accounts = self.db.list_accounts(business_id, include_inactive=True)
            entry_count = self.db.count_entries(business_id)
            recent = self.db.list_recent_entries(business_id, limit=5)

        currency_of = {account.id: account.currency for account in all_accounts}
        income: dict[str, Decimal] = defaultdict(lambda: ZERO)
        expenses: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for entry in entries:
            totals = income if entry.kind == EntryKind.INCOME else expenses
            totals[currency_of[entry.account_id]] += entry.amount

        balances: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for account in all_accounts:
            if account.is_active:
                balances[account.currency] += account.current_balance

        currencies = sorted(set(income) | set(expenses))

        return DashboardStats(
            business_id=business_id,
            income_by_currency={c: income[c] for c in currencies},
            expenses_by_currency={c: expenses[c] for c in currencies},
            net_by_currency={c: income[c] - expenses[c] for c in currencies},
            balances_by_currency=dict(sorted(balances.items())),
            active_account_count=sum(1 for a in all_accounts if a.is_active),
            entry_count=entry_count,
            recent_entries=tuple(recent),
        )
