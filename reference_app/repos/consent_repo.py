import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update

from models.enums import ConsentStatus
from models.models import Consent


class ConsentRepo:
    def __init__(self, db):
        self.db = db

    async def revoke_active(
        self, tenant_id: uuid.UUID, *, reason: str, revoked_at: datetime
    ) -> int:
        stmt = (
            update(Consent)
            .where(
                Consent.tenant_id == tenant_id,
                Consent.status == ConsentStatus.ACTIVE,
            )
            .values(
                status=ConsentStatus.REVOKED,
                revoked_at=revoked_at,
                revoked_reason=reason,
            )
            .execution_options(synchronize_session="fetch")
        )
        result = await self.db.execute(stmt)
        return result.rowcount

    async def add(self, consent_data: dict) -> Consent:
        consent = Consent(**consent_data)
        self.db.add(consent)
        await self.db.flush()
        return consent

    async def get_active(self, tenant_id: uuid.UUID) -> Optional[Consent]:
        stmt = select(Consent).where(
            Consent.tenant_id == tenant_id,
            Consent.status == ConsentStatus.ACTIVE,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_tenant(self, tenant_id: uuid.UUID) -> List[Consent]:
        stmt = (
            select(Consent)
            .where(Consent.tenant_id == tenant_id)
            .order_by(Consent.created_at)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()
