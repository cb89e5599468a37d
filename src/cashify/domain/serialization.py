"""JSON-ready representations of domain entities.

Amounts are rendered as strings so they survive JSON without turning into
floats. Keys are camelCase, matching the web API payloads.
"""

from typing import Any, Optional

from cashify.domain.entities import Entry, RunningBalance, TeamMember


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def entry_to_dict(entry: Entry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "businessId": entry.business_id,
        "accountId": entry.account_id,
        "kind": entry.kind.value,
        "amount": str(entry.amount),
        "date": entry.date.isoformat(),
        "status": entry.status.value,
        "sequence": entry.sequence,
        "note": entry.note,
        "paymentMode": entry.payment_mode.value,
        "categoryId": entry.category_id,
        "bookId": entry.book_id,
        "linkedEntryId": entry.linked_entry_id,
        "transferGroupId": entry.transfer_group_id,
        "reversesEntryId": entry.reverses_entry_id,
        "attachments": list(entry.attachments),
        "createdBy": entry.created_by,
        "createdAt": _iso(entry.created_at),
        "updatedAt": _iso(entry.updated_at),
    }


def entry_audit_values(entry: Entry) -> dict[str, Any]:
    """Subset of entry fields recorded in the audit trail."""
    return {
        "account_id": entry.account_id,
        "kind": entry.kind.value,
        "amount": str(entry.amount),
        "date": entry.date.isoformat(),
        "status": entry.status.value,
        "note": entry.note,
        "category_id": entry.category_id,
        "book_id": entry.book_id,
        "payment_mode": entry.payment_mode.value,
    }


def running_balance_to_dict(row: RunningBalance) -> dict[str, Any]:
    return {"entry": entry_to_dict(row.entry), "runningBalance": str(row.balance_after)}



def team_member_to_dict(member: TeamMember) -> dict[str, Any]:
    flags = member.permissions
    return {
        "id": member.id,
        "businessId": member.business_id,
        "userId": member.user_id,
        "name": member.name,
        "email": member.email,
        "role": member.role.value,
        "isActive": member.is_active,
        "permissions": {
            "canCreateTransactions": flags.can_create_transactions,
            "canEditTransactions": flags.can_edit_transactions,
            "canDeleteTransactions": flags.can_delete_transactions,
            "canInviteMembers": flags.can_invite_members,
            "canEditMembers": flags.can_edit_members,
            "canRemoveMembers": flags.can_remove_members,
        },
        "allowedAccounts": list(member.allowed_account_ids),
        "allowedBooks": list(member.allowed_book_ids),
        "invitedBy": member.invited_by,
        "createdAt": _iso(member.created_at),
        "updatedAt": _iso(member.updated_at),
    }
