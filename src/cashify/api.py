"""Request facade for the ledger core.

Each handler takes the JSON-decoded request (camelCase keys, amounts as
strings or numbers) and returns ``(status_code, body)``. Domain errors are
turned into ``{"error": {...}}`` bodies with an HTTP status; anything else
propagates to the hosting framework.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional

from dateutil.parser import isoparse

from cashify.config import DEFAULT_LOCK_TIMEOUT
from cashify.database.base import Database
from cashify.domain.balance import BalanceCalculator
from cashify.domain.entry import EntryService
from cashify.domain.errors import (
    BusyError,
    ConflictError,
    ConsistencyViolationError,
    DomainError,
    ForbiddenError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from cashify.domain.guard import ConsistencyGuard
from cashify.domain.serialization import (
    entry_to_dict,
    running_balance_to_dict,
    team_member_to_dict,
)
from cashify.domain.team import TeamService
from cashify.logging_config import LogContext, get_logger

logger = get_logger("api")

Response = tuple[int, dict[str, Any]]

# Most specific first; subclasses of ValidationError land on 422.
STATUS_BY_ERROR: tuple[tuple[type[DomainError], int], ...] = (
    (ConsistencyViolationError, 500),
    (BusyError, 503),
    (ForbiddenError, 403),
    (InsufficientBalanceError, 409),
    (ConflictError, 409),
    (NotFoundError, 404),
    (ValidationError, 422),
)

_ENTRY_FIELDS = {
    "amount": "amount",
    "date": "date",
    "note": "note",
    "paymentMode": "payment_mode",
    "bookId": "book_id",
}


def status_for(error: DomainError) -> int:
    for error_cls, status in STATUS_BY_ERROR:
        if isinstance(error, error_cls):
            return status
    return 400


def _require(payload: Mapping[str, Any], key: str) -> Any:
    value = payload.get(key)
    if value is None or value == "":
        raise ValidationError(f"'{key}' is required")
    return value


def _amount(value: Any) -> Decimal | str | int:
    # JSON numbers arrive as floats; their shortest repr is the typed amount
    if isinstance(value, float):
        return str(value)
    return value


def _date(value: Any, key: str = "date") -> date:
    if isinstance(value, date):
        return value
    try:
        return isoparse(str(value)).date()
    except (ValueError, OverflowError):
        raise ValidationError(f"'{key}' must be an ISO date, got '{value}'")


def _int(value: Any, key: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"'{key}' must be an integer id, got '{value}'")


_PERMISSION_KEYS = {
    "canCreateTransactions": "can_create_transactions",
    "canEditTransactions": "can_edit_transactions",
    "canDeleteTransactions": "can_delete_transactions",
    "canInviteMembers": "can_invite_members",
    "canEditMembers": "can_edit_members",
    "canRemoveMembers": "can_remove_members",
}


def _permissions(value: Any) -> Optional[dict[str, bool]]:
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ValidationError("\x27permissions\x27 must be an object")
    flags = {}
    for key, flag in value.items():
        if key not in _PERMISSION_KEYS:
            raise ValidationError(f"Unknown permission \x27{key}\x27")
        flags[_PERMISSION_KEYS[key]] = bool(flag)
    return flags


def _ids(value: Any, key: str) -> Optional[list[int]]:
    if value is None:
        return None
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f"\x27{key}\x27 must be a list of ids")
    return [_int(item, key) for item in value]


class LedgerAPI:
    """Handlers for the entry, transfer, balance and team endpoints."""

    def __init__(self, db: Database, lock_timeout: float = DEFAULT_LOCK_TIMEOUT):
        self.db = db
        self.guard = ConsistencyGuard(db, lock_timeout=lock_timeout)
        self.entries = EntryService(db, self.guard)
        self.balances = BalanceCalculator(db, self.guard)
        self.team = TeamService(db)

    def _call(self, handler: Callable[[], Response], **context: Any) -> Response:
        with LogContext.bind(**context):
            try:
                return handler()
            except DomainError as error:
                status = status_for(error)
                if error.fatal:
                    logger.error("request_failed", exc_info=error, extra={"status": status})
                else:
                    logger.info(
                        "request_rejected",
                        extra={"status": status, "error_code": error.code},
                    )
                return status, {"error": error.to_dict()}

    def post_entry(
        self, business_id: int, payload: Mapping[str, Any], actor: Optional[str] = None
    ) -> Response:
        """POST entries: record an income or expense entry."""

        def handle() -> Response:
            category_id = payload.get("categoryId")
            book_id = payload.get("bookId")
            entry = self.entries.create_entry(
                business_id,
                _int(_require(payload, "accountId"), "accountId"),
                _require(payload, "kind"),
                _amount(_require(payload, "amount")),
                _date(_require(payload, "date")),
                note=payload.get("note") or "",
                category_id=_int(category_id, "categoryId") if category_id is not None else None,
                book_id=_int(book_id, "bookId") if book_id is not None else None,
                payment_mode=payload.get("paymentMode") or "cash",
                status=payload.get("status") or "cleared",
                attachments=tuple(payload.get("attachments") or ()),
                actor=actor,
                currency=payload.get("currency"),
            )
            return 201, entry_to_dict(entry)

        return self._call(
            handle, business_id=business_id, account_id=payload.get("accountId"), actor=actor
        )

    def put_entry(
        self,
        business_id: int,
        entry_id: int,
        payload: Mapping[str, Any],
        actor: Optional[str] = None,
    ) -> Response:
        """PUT entries/{id}: patch an entry, or both halves of a transfer.

        A ``status`` key is applied after the field edits, in the same unit of
        work: if either part is rejected nothing changes. ``categoryId: null``
        clears the category.
        """

        def handle() -> Response:
            if "accountId" in payload:
                raise ValidationError("An entry cannot be moved to another account")
            changes: dict[str, Any] = {}
            for key, name in _ENTRY_FIELDS.items():
                if payload.get(key) is not None:
                    changes[name] = payload[key]
            if "amount" in changes:
                changes["amount"] = _amount(changes["amount"])
            if "date" in changes:
                changes["date"] = _date(changes["date"])
            if "book_id" in changes:
                changes["book_id"] = _int(changes["book_id"], "bookId")
            if "categoryId" in payload:
                if payload["categoryId"] is None:
                    changes["clear_category"] = True
                else:
                    changes["category_id"] = _int(payload["categoryId"], "categoryId")

            entry = self.entries.edit_entry(
                business_id, entry_id, status=payload.get("status") or None, actor=actor, **changes
            )
            return 200, entry_to_dict(entry)

        return self._call(handle, business_id=business_id, actor=actor)

    def delete_entry(
        self, business_id: int, entry_id: int, actor: Optional[str] = None
    ) -> Response:
        """DELETE entries/{id}: cancel, never physically delete."""

        def handle() -> Response:
            entry = self.entries.cancel_entry(business_id, entry_id, actor=actor)
            return 200, {"ok": True, "entry": entry_to_dict(entry)}

        return self._call(handle, business_id=business_id, actor=actor)

    def post_transfer(
        self, business_id: int, payload: Mapping[str, Any], actor: Optional[str] = None
    ) -> Response:
        """POST transfers: move money between two accounts."""

        def handle() -> Response:
            book_id = payload.get("bookId")
            group_id = self.entries.transfers.create_transfer(
                business_id,
                _int(_require(payload, "fromAccountId"), "fromAccountId"),
                _int(_require(payload, "toAccountId"), "toAccountId"),
                _amount(_require(payload, "amount")),
                _date(_require(payload, "date")),
                note=payload.get("note") or "",
                actor=actor,
                currency=payload.get("currency"),
                book_id=_int(book_id, "bookId") if book_id is not None else None,
                payment_mode=payload.get("paymentMode") or "transfer",
                attachments=tuple(payload.get("attachments") or ()),
            )
            return 201, {"transferGroupId": group_id}

        return self._call(handle, business_id=business_id, actor=actor)

    def get_balance(self, business_id: int, account_id: int) -> Response:
        """GET accounts/{id}/balance: the replayed balance."""

        def handle() -> Response:
            balance = self.balances.current_balance(business_id, account_id)
            account = self.db.get_account(business_id, account_id)
            return 200, {
                "accountId": account_id,
                "balance": str(balance),
                "currency": account.currency,
            }

        return self._call(handle, business_id=business_id, account_id=account_id)

    def get_entries(
        self,
        business_id: int,
        account_id: int,
        query: Optional[Mapping[str, Any]] = None,
    ) -> Response:
        """GET accounts/{id}/entries?from=&to=: entries with running balances."""
        query = query or {}

        def handle() -> Response:
            start = _date(query["from"], "from") if query.get("from") else None
            end = _date(query["to"], "to") if query.get("to") else None
            include_cancelled = str(query.get("includeCancelled", "")).lower() in ("1", "true")
            rows = self.balances.running_balances(
                business_id,
                account_id,
                start_date=start,
                end_date=end,
                include_cancelled=include_cancelled,
            )
            return 200, {"entries": [running_balance_to_dict(row) for row in rows]}

        return self._call(handle, business_id=business_id, account_id=account_id)

    def get_team(self, business_id: int) -> Response:
        """GET team-members: every member of the business team."""

        def handle() -> Response:
            members = self.team.list_members(business_id)
            return 200, {"members": [team_member_to_dict(m) for m in members]}

        return self._call(handle, business_id=business_id)

    def post_team_member(
        self, business_id: int, payload: Mapping[str, Any], actor: Optional[str] = None
    ) -> Response:
        """POST team-members: add a user to the team."""

        def handle() -> Response:
            member_id = self.team.add_member(
                business_id,
                str(_require(payload, "userId")),
                role=payload.get("role") or "staff",
                name=payload.get("name"),
                email=payload.get("email"),
                permissions=_permissions(payload.get("permissions")),
                allowed_account_ids=_ids(payload.get("allowedAccounts"), "allowedAccounts") or (),
                allowed_book_ids=_ids(payload.get("allowedBooks"), "allowedBooks") or (),
                actor=actor,
            )
            return 201, team_member_to_dict(self.team.require_member(business_id, member_id))

        return self._call(handle, business_id=business_id, actor=actor)

    def put_team_member(
        self,
        business_id: int,
        member_id: int,
        payload: Mapping[str, Any],
        actor: Optional[str] = None,
    ) -> Response:
        """PUT team-members/{id}: change role, permissions, scope or active flag."""

        def handle() -> Response:
            is_active = payload.get("isActive")
            member = self.team.update_member(
                business_id,
                member_id,
                role=payload.get("role") or None,
                permissions=_permissions(payload.get("permissions")),
                allowed_account_ids=_ids(payload.get("allowedAccounts"), "allowedAccounts"),
                allowed_book_ids=_ids(payload.get("allowedBooks"), "allowedBooks"),
                is_active=bool(is_active) if is_active is not None else None,
                actor=actor,
            )
            return 200, team_member_to_dict(member)

        return self._call(handle, business_id=business_id, actor=actor)

    def delete_team_member(
        self, business_id: int, member_id: int, actor: Optional[str] = None
    ) -> Response:
        """DELETE team-members/{id}: remove a member from the team."""

        def handle() -> Response:
            self.team.remove_member(business_id, member_id, actor=actor)
            return 200, {"ok": True}

        return self._call(handle, business_id=business_id, actor=actor)
