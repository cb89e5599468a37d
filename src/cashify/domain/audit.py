"""Audit log queries."""

from typing import Optional

from cashify.database.base import Database
from cashify.domain.entities import AuditEvent


class AuditService:
    """Read access to the audit trail written alongside ledger changes."""

    def __init__(self, db: Database):
        self.db = db

    def list_events(
        self,
        business_id: int,
        entity_type: Optional[str] = None,
        entity_id: Optional[int | str] = None,
    ) -> list[AuditEvent]:
        """List audit events of a business, oldest first.

        Args:
            business_id: Owning business
            entity_type: Optional filter (account, entry, transfer, business)
            entity_id: Optional filter on the entity's id
        """
        return self.db.list_audit_events(
            business_id,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
        )
