"""Business domain service."""

from typing import Optional

from cashify.database.base import Database
from cashify.domain.entities import Business
from cashify.domain.errors import NotFoundError, ValidationError, business_not_found
from cashify.domain.money import normalize_currency
from cashify.logging_config import get_logger

logger = get_logger("business")


class BusinessService:
    """Service for managing businesses (tenants)."""

    def __init__(self, db: Database):
        """Initialize business service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_business(
        self, name: str, currency: str = "USD", enforce_non_negative: bool = False
    ) -> int:
        """Create a new business.

        Args:
            name: Business name
            currency: Default currency for new accounts
            enforce_non_negative: Reject mutations that take a balance below zero

        Returns:
            Business ID

        Raises:
            ValidationError: If the name is empty or the currency is invalid
        """
        if not name or not name.strip():
            raise ValidationError("Business name is required")
        business_id = self.db.create_business(
            name=name.strip(),
            currency=normalize_currency(currency),
            enforce_non_negative=enforce_non_negative,
        )
        logger.info("business_created", extra={"business_id": business_id})
        return business_id

    def get_business(self, business_id: int) -> Optional[Business]:
        return self.db.get_business(business_id)

    def require_business(self, business_id: int) -> Business:
        """Get business by ID or raise NotFoundError."""
        business = self.db.get_business(business_id)
        if business is None:
            raise NotFoundError(business_not_found(business_id))
        return business

    def list_businesses(self) -> list[Business]:
        return self.db.list_businesses()

    def set_non_negative_policy(
        self, business_id: int, enabled: bool, actor: Optional[str] = None
    ) -> Business:
        """Turn the non-negative balance policy on or off."""
        with self.db.transaction():
            before = self.require_business(business_id)
            business = self.db.update_business(business_id, enforce_non_negative=enabled)
            self.db.record_audit_event(
                business_id,
                "business",
                str(business_id),
                "update",
                actor=actor,
                old_values={"enforce_non_negative": before.enforce_non_negative},
                new_values={"enforce_non_negative": enabled},
            )
        logger.info(
            "business_policy_changed",
            extra={"business_id": business_id, "enforce_non_negative": enabled},
        )
        return business
