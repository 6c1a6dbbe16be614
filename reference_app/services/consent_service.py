import logging
import uuid
from typing import Callable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.date_helper import utc_now
from core.errors import NotFoundError
from core.settings import settings
from models.enums import ConsentStatus
from repos.consent_repo import ConsentRepo
from repos.tenant_repo import TenantRepo
from schemas.schema import ConsentCreate, ConsentOut, DataRetention

logger = logging.getLogger(__name__)

SUPERSEDED_REASON = "new_consent_created"


class ConsentService:
    def __init__(self, db, clock: Callable = utc_now):
        self.db = db
        self.repo: ConsentRepo = ConsentRepo(db)
        self.tenant_repo: TenantRepo = TenantRepo(db)
        self.clock = clock

    async def create_consent(
        self,
        tenant_id: uuid.UUID,
        payload: ConsentCreate,
        requester_id: uuid.UUID | None = None,
    ) -> ConsentOut:
        retention = payload.data_retention or DataRetention()
        requester = requester_id or payload.requester_id or tenant_id

        attempts = settings.CONSENT_CREATE_RETRIES
        for attempt in range(1, attempts + 1):
            try:
                tenant = await self.tenant_repo.lock_tenant(tenant_id)
                if not tenant:
                    raise NotFoundError("Tenant not found")

                now = self.clock()
                revoked = await self.repo.revoke_active(
                    tenant_id, reason=SUPERSEDED_REASON, revoked_at=now
                )
                consent = await self.repo.add(
                    {
                        "tenant_id": tenant_id,
                        "requester_id": requester,
                        "permissions": payload.permissions.model_dump(),
                        "data_retention": retention.model_dump(),
                        "status": ConsentStatus.ACTIVE,
                        "created_at": now,
                    }
                )
                await self.db.commit()
            except IntegrityError:
                # A concurrent creation for the same tenant won the unique index.
                await self.db.rollback()
                logger.warning(
                    "Consent creation for tenant %s collided (attempt %d/%d)",
                    tenant_id,
                    attempt,
                    attempts,
                )
                if attempt == attempts:
                    raise
                continue
            except SQLAlchemyError:
                await self.db.rollback()
                raise
            except NotFoundError:
                await self.db.rollback()
                raise

            logger.info(
                "Created consent %s for tenant %s (revoked %d prior)",
                consent.id,
                tenant_id,
                revoked,
            )
            return ConsentOut.model_validate(consent)

    async def get_active_consent(self, tenant_id: uuid.UUID) -> ConsentOut:
        tenant = await self.tenant_repo.find_tenant(tenant_id)
        if not tenant:
            raise NotFoundError("Tenant not found")
        consent = await self.repo.get_active(tenant_id)
        if not consent:
            raise NotFoundError("No active consent for this tenant")
        return ConsentOut.model_validate(consent)
