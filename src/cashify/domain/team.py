"""Team members, roles and permission checks.

Access control switches on for a business once it has at least one team
member. Until then every caller may act on the business, which keeps a
single-user cash book free of setup. Once a team exists, the actor of every
ledger mutation must be an active member holding the matching permission
and, for restricted members, access to the accounts and book involved.
"""

from typing import Iterable, Mapping, Optional, Sequence

from cashify.database.base import Database
from cashify.domain.business import BusinessService
from cashify.domain.entities import Permission, TeamMember, TeamPermissions, TeamRole
from cashify.domain.errors import (
    ForbiddenError,
    NotFoundError,
    ValidationError,
    account_not_found,
    book_not_found,
    team_member_not_found,
)
from cashify.logging_config import get_logger

logger = get_logger("team")


class AccessControl:
    """Checks an actor's team permissions within a business."""

    def __init__(self, db: Database):
        self.db = db

    def authorize(
        self,
        business_id: int,
        actor: Optional[str],
        permission: Permission,
        account_ids: Iterable[int] = (),
        book_ids: Iterable[Optional[int]] = (),
    ) -> Optional[TeamMember]:
        """Ensure ``actor`` may perform ``permission`` on the given accounts and books.

        Returns:
            The acting member, or None while the business has no team

        Raises:
            ForbiddenError: If the actor is not an active member, lacks the
                permission, or is restricted away from an account or book
        """
        members = self.db.list_team_members(business_id)
        if not members:
            return None

        member = next((m for m in members if actor is not None and m.user_id == actor), None)
        if member is None or not member.is_active:
            self._deny(business_id, actor, permission, "not an active team member")
        if not member.permissions.allows(permission):
            self._deny(business_id, actor, permission, f"missing permission {permission.value}")
        for account_id in account_ids:
            if not member.can_use_account(account_id):
                self._deny(business_id, actor, permission, f"no access to account {account_id}")
        for book_id in book_ids:
            if book_id is not None and not member.can_use_book(book_id):
                self._deny(business_id, actor, permission, f"no access to book {book_id}")
        return member

    def _deny(
        self, business_id: int, actor: Optional[str], permission: Permission, reason: str
    ) -> None:
        logger.warning(
            "access_denied",
            extra={
                "business_id": business_id,
                "actor": actor,
                "permission": permission.value,
                "reason": reason,
            },
        )
        who = f"User '{actor}'" if actor else "Anonymous caller"
        raise ForbiddenError(f"{who} may not do this in business {business_id}: {reason}")


class TeamService:
    """Service for managing the members of a business team."""

    def __init__(self, db: Database):
        """Initialize team service.

        Args:
            db: Database instance
        """
        self.db = db
        self.access = AccessControl(db)

    @staticmethod
    def _role(value: TeamRole | str) -> TeamRole:
        try:
            return TeamRole(value)
        except ValueError:
            raise ValidationError(f"Invalid team role '{value}'")

    @staticmethod
    def _permissions(
        role: TeamRole, overrides: Optional[Mapping[str, bool]]
    ) -> TeamPermissions:
        flags = TeamPermissions.for_role(role).to_dict()
        for name, value in (overrides or {}).items():
            if name not in flags:
                raise ValidationError(f"Unknown permission '{name}'")
            flags[name] = bool(value)
        if role == TeamRole.OWNER and not all(flags.values()):
            raise ValidationError("Owners always hold every permission")
        return TeamPermissions(**flags)

    def _check_scope(
        self, business_id: int, account_ids: Sequence[int], book_ids: Sequence[int]
    ) -> None:
        for account_id in account_ids:
            if self.db.get_account(business_id, account_id) is None:
                raise NotFoundError(account_not_found(account_id))
        for book_id in book_ids:
            if self.db.get_book(business_id, book_id) is None:
                raise NotFoundError(book_not_found(book_id))

    def _active_owner_count(self, business_id: int) -> int:
        return sum(
            1 for m in self.db.list_team_members(business_id) if m.is_owner and m.is_active
        )

    def add_member(
        self,
        business_id: int,
        user_id: str,
        role: TeamRole | str = TeamRole.STAFF,
        name: Optional[str] = None,
        email: Optional[str] = None,
        permissions: Optional[Mapping[str, bool]] = None,
        allowed_account_ids: Sequence[int] = (),
        allowed_book_ids: Sequence[int] = (),
        actor: Optional[str] = None,
    ) -> int:
        """Add a user to the business team.

        The first member of a team must be an owner; after that the actor
        needs the invite permission, and only owners add other owners.

        Args:
            business_id: Owning business
            user_id: Identifier the user acts under (the ``actor`` string)
            role: owner, partner or staff
            name: Display name
            email: Contact email
            permissions: Flags that differ from the role defaults
            allowed_account_ids: Accounts a restricted member may use
            allowed_book_ids: Books a restricted member may use
            actor: User adding the member

        Returns:
            Team member ID

        Raises:
            ValidationError: Empty user id, unknown role or permission, or a
                first member that is not an owner
            NotFoundError: An allowed account or book is not in the business
            ConflictError: The user is already a member
            ForbiddenError: The actor may not add this member
        """
        BusinessService(self.db).require_business(business_id)
        if not user_id or not user_id.strip():
            raise ValidationError("Team member user id is required")
        user_id = user_id.strip()
        role = self._role(role)
        flags = self._permissions(role, permissions)
        self._check_scope(business_id, allowed_account_ids, allowed_book_ids)

        with self.db.transaction():
            if self.db.list_team_members(business_id):
                inviter = self.access.authorize(business_id, actor, Permission.INVITE_MEMBERS)
                if role == TeamRole.OWNER and not inviter.is_owner:
                    raise ForbiddenError("Only owners can add another owner")
            elif role != TeamRole.OWNER:
                raise ValidationError("The first team member must be an owner")

            member_id = self.db.create_team_member(
                business_id,
                user_id,
                role.value,
                flags.to_dict(),
                name=name,
                email=email,
                allowed_account_ids=allowed_account_ids,
                allowed_book_ids=allowed_book_ids,
                invited_by=actor,
            )
            self.db.record_audit_event(
                business_id,
                "team_member",
                str(member_id),
                "create",
                actor=actor,
                new_values={"user_id": user_id, "role": role.value, **flags.to_dict()},
            )

        logger.info(
            "team_member_added",
            extra={"business_id": business_id, "member_id": member_id, "role": role},
        )
        return member_id

    def get_member(self, business_id: int, member_id: int) -> Optional[TeamMember]:
        return self.db.get_team_member(business_id, member_id)

    def require_member(self, business_id: int, member_id: int) -> TeamMember:
        member = self.db.get_team_member(business_id, member_id)
        if member is None:
            raise NotFoundError(team_member_not_found(member_id))
        return member

    def require_member_by_user(self, business_id: int, user_id: str) -> TeamMember:
        member = self.db.get_team_member_by_user(business_id, user_id)
        if member is None:
            raise NotFoundError(team_member_not_found(user_id))
        return member

    def list_members(self, business_id: int) -> list[TeamMember]:
        BusinessService(self.db).require_business(business_id)
        return self.db.list_team_members(business_id)

    def update_member(
        self,
        business_id: int,
        member_id: int,
        role: Optional[TeamRole | str] = None,
        permissions: Optional[Mapping[str, bool]] = None,
        allowed_account_ids: Optional[Sequence[int]] = None,
        allowed_book_ids: Optional[Sequence[int]] = None,
        is_active: Optional[bool] = None,
        actor: Optional[str] = None,
    ) -> TeamMember:
        """Change a member's role, permissions, scope or active flag.

        A role change resets the permissions to the new role's defaults
        before ``permissions`` is applied.

        Raises:
            ValidationError: The last active owner would be demoted or deactivated
            ForbiddenError: The actor may not edit members, or a non-owner
                touches an owner
        """
        new_role = self._role(role) if role is not None else None
        self._check_scope(business_id, allowed_account_ids or (), allowed_book_ids or ())

        with self.db.transaction():
            current = self.require_member(business_id, member_id)
            editor = self.access.authorize(business_id, actor, Permission.EDIT_MEMBERS)
            if (current.is_owner or new_role == TeamRole.OWNER) and not editor.is_owner:
                raise ForbiddenError("Only owners can change an owner's membership")

            target_role = new_role or current.role
            flags = None
            if new_role is not None or permissions is not None:
                base = permissions if new_role is not None else {
                    **current.permissions.to_dict(), **(permissions or {})
                }
                flags = self._permissions(target_role, base)

            stays_owner = target_role == TeamRole.OWNER and is_active is not False
            if current.is_owner and current.is_active and not stays_owner:
                if self._active_owner_count(business_id) <= 1:
                    raise ValidationError("A team needs at least one active owner")

            updated = self.db.update_team_member(
                business_id,
                member_id,
                role=new_role.value if new_role else None,
                permissions=flags.to_dict() if flags else None,
                allowed_account_ids=allowed_account_ids,
                allowed_book_ids=allowed_book_ids,
                is_active=is_active,
            )
            self.db.record_audit_event(
                business_id,
                "team_member",
                str(member_id),
                "update",
                actor=actor,
                old_values={
                    "role": current.role.value,
                    "is_active": current.is_active,
                    **current.permissions.to_dict(),
                },
                new_values={
                    "role": updated.role.value,
                    "is_active": updated.is_active,
                    **updated.permissions.to_dict(),
                },
            )

        logger.info(
            "team_member_updated",
            extra={"business_id": business_id, "member_id": member_id, "role": updated.role},
        )
        return updated

    def remove_member(self, business_id: int, member_id: int, actor: Optional[str] = None) -> None:
        """Remove a member from the team.

        Raises:
            ValidationError: The member is the last active owner
            ForbiddenError: The actor may not remove members, or a non-owner
                removes an owner
        """
        with self.db.transaction():
            current = self.require_member(business_id, member_id)
            remover = self.access.authorize(business_id, actor, Permission.REMOVE_MEMBERS)
            if current.is_owner and not remover.is_owner:
                raise ForbiddenError("Only owners can remove an owner")
            if current.is_owner and current.is_active and self._active_owner_count(business_id) <= 1:
                raise ValidationError("A team needs at least one active owner")

            self.db.delete_team_member(business_id, member_id)
            self.db.record_audit_event(
                business_id,
                "team_member",
                str(member_id),
                "remove",
                actor=actor,
                old_values={"user_id": current.user_id, "role": current.role.value},
            )

        logger.info("team_member_removed", extra={"business_id": business_id, "member_id": member_id})
