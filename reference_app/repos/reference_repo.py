import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from models.enums import DeliveryStatus, ReferenceStatus
from models.models import ReferenceAttempt, ReferenceRequest


class ReferenceRepo:
    def __init__(self, db):
        self.db = db

    async def create(
        self, reference_data: dict, first_attempt: dict
    ) -> ReferenceRequest:
        reference = ReferenceRequest(**reference_data)
        reference.attempts = [ReferenceAttempt(**first_attempt)]
        try:
            self.db.add(reference)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return await self.get_by_id(reference.id)

    async def get_by_id(self, reference_id: uuid.UUID) -> Optional[ReferenceRequest]:
        stmt = (
            select(ReferenceRequest)
            .where(ReferenceRequest.id == reference_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_actionable_by_token(
        self, token: str, now: datetime
    ) -> Optional[ReferenceRequest]:
        stmt = (
            select(ReferenceRequest)
            .where(
                ReferenceRequest.token == token,
                ReferenceRequest.status == ReferenceStatus.PENDING,
                ReferenceRequest.expires_at > now,
            )
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def resolve_pending(
        self, reference_id: uuid.UUID, now: datetime, values: dict
    ) -> bool:
        """Move a request out of pending only if it is still pending and unexpired.

        Returns False when another caller resolved it first or it expired
        between the lookup and the write.
        """
        stmt = (
            update(ReferenceRequest)
            .where(
                ReferenceRequest.id == reference_id,
                ReferenceRequest.status == ReferenceStatus.PENDING,
                ReferenceRequest.expires_at > now,
            )
            .values(**values, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return result.rowcount == 1

    async def record_attempt(
        self,
        reference: ReferenceRequest,
        *,
        sent_at: datetime,
        delivery_status: DeliveryStatus,
        delivery_details: str,
    ) -> ReferenceAttempt:
        attempt = ReferenceAttempt(
            reference_id=reference.id,
            attempt_number=len(reference.attempts) + 1,
            sent_at=sent_at,
            delivery_status=delivery_status,
            delivery_details=delivery_details,
        )
        reference.attempts.append(attempt)
        reference.reminder_count = (reference.reminder_count or 0) + 1
        reference.last_reminder_sent = sent_at
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return attempt

    async def set_delivery_status(
        self,
        attempt: ReferenceAttempt,
        delivery_status: DeliveryStatus,
        delivery_details: str,
    ) -> None:
        attempt.delivery_status = delivery_status
        attempt.delivery_details = delivery_details
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def list_for_tenant(self, tenant_id: uuid.UUID) -> List[ReferenceRequest]:
        stmt = (
            select(ReferenceRequest)
            .where(ReferenceRequest.tenant_id == tenant_id)
            .order_by(ReferenceRequest.created_at.desc())
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def list_completed_for_tenant(
        self, tenant_id: uuid.UUID
    ) -> List[ReferenceRequest]:
        stmt = (
            select(ReferenceRequest)
            .where(
                ReferenceRequest.tenant_id == tenant_id,
                ReferenceRequest.status == ReferenceStatus.COMPLETED,
            )
            .order_by(ReferenceRequest.completed_at)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()
