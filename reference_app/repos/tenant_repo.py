import uuid
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from models.models import Tenant


class TenantRepo:
    def __init__(self, db):
        self.db = db

    async def create(self, tenant_data: dict) -> Tenant:
        tenant = Tenant(**tenant_data)
        try:
            self.db.add(tenant)
            await self.db.commit()
            await self.db.refresh(tenant)
            return tenant
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def find_tenant(self, tenant_id: uuid.UUID) -> Optional[Tenant]:
        stmt = (
            select(Tenant)
            .where(Tenant.id == tenant_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def lock_tenant(self, tenant_id: uuid.UUID) -> Optional[Tenant]:
        # FOR UPDATE is dropped by dialects without row locks (sqlite).
        stmt = select(Tenant).where(Tenant.id == tenant_id).with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def update_verification(
        self,
        tenant_id: uuid.UUID,
        *,
        verification_progress: int,
        mark_verified: bool,
    ) -> Optional[Tenant]:
        values: dict = {"verification_progress": verification_progress}
        if mark_verified:
            values["is_verified"] = True

        stmt = (
            update(Tenant)
            .where(Tenant.id == tenant_id)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        try:
            await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return await self.find_tenant(tenant_id)
