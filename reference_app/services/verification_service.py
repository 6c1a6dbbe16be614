import logging
import uuid
from typing import Callable

from core.date_helper import utc_now
from core.errors import InvalidStateError, NotFoundError
from core.settings import settings
from email_notify.notification_gateway import (
    NotificationGateway,
    deliver_best_effort,
    get_notification_gateway,
)
from models.enums import NotificationKind
from repos.reference_repo import ReferenceRepo
from repos.tenant_repo import TenantRepo
from schemas.schema import ReferenceOut, VerificationOut
from services.reference_scoring import score_references

logger = logging.getLogger("tenant.verification")


class VerificationService:
    def __init__(
        self,
        db,
        notifier: NotificationGateway | None = None,
        clock: Callable = utc_now,
    ):
        self.reference_repo = ReferenceRepo(db)
        self.tenant_repo = TenantRepo(db)
        self.notifier = notifier or get_notification_gateway()
        self.clock = clock

    async def verify_tenant(self, tenant_id: uuid.UUID) -> VerificationOut:
        tenant = await self.tenant_repo.find_tenant(tenant_id)
        if not tenant:
            raise NotFoundError("Tenant not found")

        references = await self.reference_repo.list_completed_for_tenant(tenant_id)
        if not references:
            raise InvalidStateError("No completed references found for this tenant")

        result = score_references(references)
        percentage = result.verification_percentage

        previous_percentage = tenant.verification_progress or 0
        was_verified = tenant.is_verified
        reached_threshold = percentage >= settings.VERIFIED_THRESHOLD

        # is_verified is a one-way gate: a lower score never clears it.
        await self.tenant_repo.update_verification(
            tenant_id,
            verification_progress=percentage,
            mark_verified=reached_threshold,
        )

        newly_verified = reached_threshold and not was_verified
        percentage_change = percentage - previous_percentage
        logger.info(
            "Tenant %s scored %d%% (was %d%%, newly_verified=%s)",
            tenant_id,
            percentage,
            previous_percentage,
            newly_verified,
        )

        if newly_verified or percentage_change >= settings.VERIFICATION_NOTIFY_DELTA:
            await deliver_best_effort(
                self.notifier,
                NotificationKind.VERIFICATION_STATUS,
                {
                    "to_email": tenant.email,
                    "tenant_name": tenant.full_name,
                    "tenant_id": str(tenant_id),
                    "verification_percentage": percentage,
                    "newly_verified": newly_verified,
                },
            )

        now = self.clock()
        return VerificationOut(
            verification_score=result.verification_score,
            total_possible_score=result.total_possible_score,
            verification_percentage=percentage,
            references=[ReferenceOut.from_record(r, now) for r in references],
            is_verified=reached_threshold,
        )
