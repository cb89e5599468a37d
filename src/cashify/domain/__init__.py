"""Domain layer for cashify application."""

# Services are imported lazily; the database layer imports domain.entities
# and an eager import here would close the cycle.
_SERVICES = {
    "AccountService": "cashify.domain.account",
    "AuditService": "cashify.domain.audit",
    "BalanceCalculator": "cashify.domain.balance",
    "BookService": "cashify.domain.book",
    "BusinessService": "cashify.domain.business",
    "CategoryService": "cashify.domain.category",
    "ConsistencyGuard": "cashify.domain.guard",
    "EntryService": "cashify.domain.entry",
    "SummaryService": "cashify.domain.summary",
    "TeamService": "cashify.domain.team",
    "TransferCoordinator": "cashify.domain.transfer",
}

__all__ = list(_SERVICES)


def __getattr__(name):
    if name in _SERVICES:
        from importlib import import_module

        return getattr(import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
