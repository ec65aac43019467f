"""
Subscription persistence.

Writes go through ``INSERT ... ON CONFLICT (stripe_subscription_id) DO
UPDATE`` so replays of the same event converge on one row.
"""

import logging
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain import CanonicalSubscription, Err, Ok, PersistenceError, Result
from core.plans import ACCESS_STATUSES
from infrastructure.database.models import Subscription

logger = logging.getLogger(__name__)

CONFLICT_KEY = "stripe_subscription_id"


class SubscriptionStore:
    """Reads and writes canonical subscription rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _insert(self):
        dialect = self.db.bind.dialect.name if self.db.bind is not None else "postgresql"
        if dialect == "sqlite":
            return sqlite.insert(Subscription.__table__)
        return postgresql.insert(Subscription.__table__)

    async def upsert(self, record: CanonicalSubscription) -> Result[str]:
        """
        Insert or update the row for ``record.stripe_subscription_id`` and commit.

        Returns:
            Ok(stripe_subscription_id) or Err(PersistenceError)
        """
        row = record.to_row()
        stmt = self._insert().values(**row)
        update_columns = {
            name: stmt.excluded[name] for name in row if name != CONFLICT_KEY
        }
        update_columns["updated_at"] = func.now()
        stmt = stmt.on_conflict_do_update(index_elements=[CONFLICT_KEY], set_=update_columns)

        try:
            await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Subscription upsert failed for %s: %s",
                record.stripe_subscription_id,
                e,
                extra={"subscription_id": record.stripe_subscription_id},
            )
            return Err(PersistenceError(f"Upsert of {record.stripe_subscription_id} failed: {e}"))

        return Ok(record.stripe_subscription_id)

    async def mark_status(self, stripe_subscription_id: str, status: str) -> Result[list[str]]:
        """
        Overwrite only the status of a stored subscription and commit.

        Returns:
            Ok(user ids of the updated rows, empty if none matched) or Err(PersistenceError)
        """
        stmt = (
            update(Subscription)
            .where(Subscription.stripe_subscription_id == stripe_subscription_id)
            .values(status=status, updated_at=func.now())
            .returning(Subscription.user_id)
        )
        try:
            result = await self.db.execute(stmt)
            user_ids = list(result.scalars().all())
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Status update failed for %s: %s",
                stripe_subscription_id,
                e,
                extra={"subscription_id": stripe_subscription_id},
            )
            return Err(PersistenceError(f"Status update of {stripe_subscription_id} failed: {e}"))

        return Ok(user_ids)

    async def get_by_stripe_id(self, stripe_subscription_id: str) -> Optional[Subscription]:
        result = await self.db.execute(
            select(Subscription)
            .where(Subscription.stripe_subscription_id == stripe_subscription_id)
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one_or_none()

    async def get_current_for_user(self, user_id: str) -> Optional[Subscription]:
        """Most recently created active or trialing subscription of a user."""
        result = await self.db.execute(
            select(Subscription)
            .where(
                Subscription.user_id == user_id,
                Subscription.status.in_(ACCESS_STATUSES),
            )
            .order_by(Subscription.created_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one_or_none()
