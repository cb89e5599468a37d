"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so the domain entities stay stable
when the database schema changes.
"""

from decimal import Decimal

from cashify.domain import entities as domain
from cashify.database.models import (
    Account as ORMAccount,
    AuditEvent as ORMAuditEvent,
    Book as ORMBook,
    Business as ORMBusiness,
    Category as ORMCategory,
    Entry as ORMEntry,
    TeamMember as ORMTeamMember,
)

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Normalise a stored amount to an exact two-place Decimal."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT)


def business_to_domain(orm_business: ORMBusiness) -> domain.Business:
    """Convert SQLAlchemy Business model to domain Business entity."""
    return domain.Business(
        id=orm_business.id,
        name=orm_business.name,
        currency=orm_business.currency,
        enforce_non_negative=bool(orm_business.enforce_non_negative),
        created_at=orm_business.created_at,
    )


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        business_id=orm_account.business_id,
        name=orm_account.name,
        kind=domain.AccountKind(orm_account.kind),
        currency=orm_account.currency,
        initial_balance=to_money(orm_account.initial_balance),
        current_balance=to_money(orm_account.current_balance),
        is_active=bool(orm_account.is_active),
        created_by=orm_account.created_by,
        created_at=orm_account.created_at,
        updated_at=orm_account.updated_at,
    )


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        business_id=orm_category.business_id,
        name=orm_category.name,
        kind=domain.CategoryKind(orm_category.kind),
        is_active=bool(orm_category.is_active),
        created_at=orm_category.created_at,
    )


def book_to_domain(orm_book: ORMBook) -> domain.Book:
    return domain.Book(
        id=orm_book.id,
        business_id=orm_book.business_id,
        name=orm_book.name,
        book_type=domain.BookType(orm_book.book_type),
        description=orm_book.description,
        created_at=orm_book.created_at,
    )


def entry_to_domain(orm_entry: ORMEntry) -> domain.Entry:
    """Convert SQLAlchemy Entry model to domain Entry entity."""
    return domain.Entry(
        id=orm_entry.id,
        business_id=orm_entry.business_id,
        account_id=orm_entry.account_id,
        kind=domain.EntryKind(orm_entry.kind),
        amount=to_money(orm_entry.amount),
        date=orm_entry.date,
        status=domain.EntryStatus(orm_entry.status),
        sequence=orm_entry.sequence,
        note=orm_entry.note,
        payment_mode=domain.PaymentMode(orm_entry.payment_mode),
        category_id=orm_entry.category_id,
        book_id=orm_entry.book_id,
        linked_entry_id=orm_entry.linked_entry_id,
        transfer_group_id=orm_entry.transfer_group_id,
        reverses_entry_id=orm_entry.reverses_entry_id,
        attachments=tuple(orm_entry.attachments or ()),
        created_by=orm_entry.created_by,
        created_at=orm_entry.created_at,
        updated_at=orm_entry.updated_at,
    )


def audit_event_to_domain(orm_event: ORMAuditEvent) -> domain.AuditEvent:
    return domain.AuditEvent(
        id=orm_event.id,
        business_id=orm_event.business_id,
        entity_type=orm_event.entity_type,
        entity_id=orm_event.entity_id,
        action=orm_event.action,
        actor=orm_event.actor,
        old_values=orm_event.old_values,
        new_values=orm_event.new_values,
        created_at=orm_event.created_at,
    )


def team_member_to_domain(orm_member: ORMTeamMember) -> domain.TeamMember:
    """Convert SQLAlchemy TeamMember model to domain TeamMember entity."""
    flags = orm_member.permissions or {}
    return domain.TeamMember(
        id=orm_member.id,
        business_id=orm_member.business_id,
        user_id=orm_member.user_id,
        name=orm_member.name,
        email=orm_member.email,
        role=domain.TeamRole(orm_member.role),
        is_active=bool(orm_member.is_active),
        permissions=domain.TeamPermissions(
            **{p.value: bool(flags.get(p.value, False)) for p in domain.Permission}
        ),
        allowed_account_ids=tuple(orm_member.allowed_account_ids or ()),
        allowed_book_ids=tuple(orm_member.allowed_book_ids or ()),
        invited_by=orm_member.invited_by,
        created_at=orm_member.created_at,
        updated_at=orm_member.updated_at,
    )
