import logging
import secrets
import uuid
from datetime import timedelta
from typing import Callable, List

from sqlalchemy.exc import IntegrityError

from core.date_helper import calculate_reference_expiry, days_until, utc_now
from core.errors import (
    GENERIC_TOKEN_MESSAGE,
    ExpiredError,
    InvalidStateError,
    NotFoundError,
    RateLimitedError,
)
from core.settings import settings
from email_notify.notification_gateway import (
    NotificationGateway,
    deliver_best_effort,
    get_notification_gateway,
)
from models.enums import (
    REFERENCE_CATEGORY,
    REQUIRED_REFERENCE_TYPES,
    DeliveryStatus,
    NotificationKind,
    PublicReferenceStatus,
    ReferenceStatus,
)
from models.models import ReferenceRequest, Tenant
from repos.reference_repo import ReferenceRepo
from repos.tenant_repo import TenantRepo
from schemas.schema import (
    ProviderReferenceView,
    ReferenceCreatedOut,
    ReferenceDecline,
    ReferenceOut,
    ReferenceRequestCreate,
    ReferenceRespond,
    ReferenceSummaryOut,
    ResendOut,
    validate_verification_details,
)
from services.verification_service import VerificationService

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


def generate_reference_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


class ReferenceService:
    def __init__(
        self,
        db,
        notifier: NotificationGateway | None = None,
        clock: Callable = utc_now,
    ):
        self.db = db
        self.repo: ReferenceRepo = ReferenceRepo(db)
        self.tenant_repo: TenantRepo = TenantRepo(db)
        self.notifier: NotificationGateway = notifier or get_notification_gateway()
        self.clock = clock

    def _out(self, reference: ReferenceRequest) -> ReferenceOut:
        return ReferenceOut.from_record(reference, self.clock())

    async def _get_tenant(self, tenant_id: uuid.UUID) -> Tenant:
        tenant = await self.tenant_repo.find_tenant(tenant_id)
        if not tenant:
            raise NotFoundError("Tenant not found")
        return tenant

    async def _get_actionable(self, token: str) -> ReferenceRequest:
        reference = await self.repo.find_actionable_by_token(token, self.clock())
        if reference is None or not secrets.compare_digest(reference.token, token):
            raise NotFoundError(GENERIC_TOKEN_MESSAGE)
        return reference

    async def request_reference(
        self, tenant_id: uuid.UUID, payload: ReferenceRequestCreate
    ) -> ReferenceCreatedOut:
        tenant = await self._get_tenant(tenant_id)
        provider = payload.reference_provider

        now = self.clock()
        token = generate_reference_token()
        expires_at = calculate_reference_expiry(now)

        reference = await self.repo.create(
            {
                "tenant_id": tenant.id,
                "reference_type": payload.reference_type,
                "provider_name": provider.name,
                "provider_email": provider.email,
                "provider_phone": provider.phone,
                "provider_relationship": provider.relationship,
                "token": token,
                "status": ReferenceStatus.PENDING,
                "expires_at": expires_at,
                "created_at": now,
                "updated_at": now,
            },
            first_attempt={
                "attempt_number": 1,
                "sent_at": now,
                "delivery_status": DeliveryStatus.SENT,
                "delivery_details": "Initial reference request",
            },
        )
        logger.info(
            "Created %s reference %s for tenant %s",
            payload.reference_type.value,
            reference.id,
            tenant.id,
        )

        delivered = await deliver_best_effort(
            self.notifier,
            NotificationKind.REFERENCE_REQUEST,
            {
                "to_email": provider.email,
                "provider_name": provider.name,
                "tenant_name": tenant.full_name,
                "tenant_email": tenant.email,
                "reference_type": payload.reference_type.value,
                "token": token,
                "expires_at": expires_at,
            },
        )
        try:
            await self.repo.set_delivery_status(
                reference.attempts[0],
                DeliveryStatus.DELIVERED if delivered else DeliveryStatus.FAILED,
                "Email sent successfully" if delivered else "Email delivery failed",
            )
        except Exception:
            logger.exception(
                "Could not record delivery status for reference %s", reference.id
            )
        if not delivered:
            logger.warning("Reference request email for %s not delivered", reference.id)

        reference = await self.repo.get_by_id(reference.id)
        return ReferenceCreatedOut(**self._out(reference).model_dump(), token=token)

    async def resend_reference(self, reference_id: uuid.UUID) -> ResendOut:
        reference = await self.repo.get_by_id(reference_id)
        if not reference:
            raise NotFoundError("Reference request not found")
        if reference.status != ReferenceStatus.PENDING:
            raise InvalidStateError("Reference request is no longer pending")

        now = self.clock()
        if reference.is_expired(now):
            raise ExpiredError("Reference request has expired")

        max_attempts = settings.REFERENCE_MAX_ATTEMPTS
        if len(reference.attempts) >= max_attempts:
            raise RateLimitedError("Maximum resend attempts reached")

        interval = timedelta(minutes=settings.REFERENCE_RESEND_INTERVAL_MINUTES)
        last_attempt = reference.last_attempt
        if last_attempt is not None and now - last_attempt.sent_at < interval:
            raise RateLimitedError(
                "Please wait at least 1 hour before resending",
                next_allowed_at=last_attempt.sent_at + interval,
            )

        tenant = await self._get_tenant(reference.tenant_id)
        email_sent = await deliver_best_effort(
            self.notifier,
            NotificationKind.REFERENCE_REMINDER,
            {
                "to_email": reference.provider_email,
                "provider_name": reference.provider_name,
                "tenant_name": tenant.full_name,
                "reference_type": reference.reference_type.value,
                "token": reference.token,
                "expires_at": reference.expires_at,
                "days_until_expiry": days_until(reference.expires_at, now),
            },
        )

        try:
            attempt = await self.repo.record_attempt(
                reference,
                sent_at=now,
                delivery_status=(
                    DeliveryStatus.DELIVERED if email_sent else DeliveryStatus.FAILED
                ),
                delivery_details=(
                    "Reminder email sent successfully"
                    if email_sent
                    else "Reminder email delivery failed"
                ),
            )
        except IntegrityError:
            # Another resend recorded this attempt number first.
            raise RateLimitedError("Please wait at least 1 hour before resending")

        logger.info(
            "Resent reference %s (attempt %d, delivered=%s)",
            reference.id,
            attempt.attempt_number,
            email_sent,
        )
        reference = await self.repo.get_by_id(reference.id)
        return ResendOut(
            reference=self._out(reference),
            email_sent=email_sent,
            attempt_number=attempt.attempt_number,
            remaining_attempts=max(max_attempts - attempt.attempt_number, 0),
        )

    async def decline_reference(
        self, token: str, payload: ReferenceDecline
    ) -> ReferenceOut:
        reference = await self._get_actionable(token)
        now = self.clock()

        resolved = await self.repo.resolve_pending(
            reference.id,
            now,
            {
                "status": ReferenceStatus.DECLINED,
                "declined_at": now,
                "decline_reason": payload.decline_reason,
                "decline_comment": payload.decline_comment,
            },
        )
        if not resolved:
            raise NotFoundError(GENERIC_TOKEN_MESSAGE)

        reference = await self.repo.get_by_id(reference.id)
        logger.info("Reference %s declined (%s)", reference.id, payload.decline_reason.value)

        tenant = await self.tenant_repo.find_tenant(reference.tenant_id)
        if tenant:
            await deliver_best_effort(
                self.notifier,
                NotificationKind.REFERENCE_DECLINED,
                {
                    "to_email": tenant.email,
                    "tenant_name": tenant.full_name,
                    "provider_name": reference.provider_name,
                    "reference_type": reference.reference_type.value,
                    "decline_reason": payload.decline_reason.value,
                    "decline_comment": payload.decline_comment,
                },
            )
        return self._out(reference)

    async def respond_reference(
        self, token: str, payload: ReferenceRespond
    ) -> ReferenceOut:
        reference = await self._get_actionable(token)
        details = validate_verification_details(
            reference.reference_type, payload.verification_details
        )
        now = self.clock()

        resolved = await self.repo.resolve_pending(
            reference.id,
            now,
            {
                "status": ReferenceStatus.COMPLETED,
                "completed_at": now,
                "rating": payload.rating,
                "feedback": payload.feedback,
                "verification_details": details.model_dump(mode="json"),
            },
        )
        if not resolved:
            raise NotFoundError(GENERIC_TOKEN_MESSAGE)

        reference = await self.repo.get_by_id(reference.id)
        logger.info("Reference %s completed with rating %d", reference.id, payload.rating)

        tenant = await self.tenant_repo.find_tenant(reference.tenant_id)
        if tenant:
            await deliver_best_effort(
                self.notifier,
                NotificationKind.REFERENCE_COMPLETED,
                {
                    "to_email": tenant.email,
                    "tenant_name": tenant.full_name,
                    "provider_name": reference.provider_name,
                    "reference_type": reference.reference_type.value,
                    "rating": payload.rating,
                    "feedback": payload.feedback,
                },
            )
            await self._recompute_score(tenant.id)

        return self._out(reference)

    async def _recompute_score(self, tenant_id: uuid.UUID) -> None:
        try:
            await VerificationService(
                self.db, notifier=self.notifier, clock=self.clock
            ).verify_tenant(tenant_id)
        except Exception:
            logger.exception("Score recompute failed for tenant %s", tenant_id)

    async def list_references_for_tenant(
        self, tenant_id: uuid.UUID
    ) -> List[ReferenceOut]:
        await self._get_tenant(tenant_id)
        references = await self.repo.list_for_tenant(tenant_id)
        return [self._out(r) for r in references]

    async def get_reference_by_token(self, token: str) -> ProviderReferenceView:
        reference = await self._get_actionable(token)
        tenant = await self._get_tenant(reference.tenant_id)
        return ProviderReferenceView(
            tenant_name=tenant.full_name,
            reference_type=reference.reference_type,
            category=REFERENCE_CATEGORY[reference.reference_type],
            provider_name=reference.provider_name,
            expires_at=reference.expires_at,
        )

    async def get_reference_summary(self, tenant_id: uuid.UUID) -> ReferenceSummaryOut:
        references = await self.list_references_for_tenant(tenant_id)
        total = len(references)
        counts = {status: 0 for status in PublicReferenceStatus}
        for ref in references:
            counts[ref.status] += 1

        ratings = [
            ref.rating
            for ref in references
            if ref.rating and ref.status == PublicReferenceStatus.COMPLETED
        ]
        avg_rating = round(sum(ratings) / len(ratings), 1) if ratings else 0.0
        completed = counts[PublicReferenceStatus.COMPLETED]
        declined = counts[PublicReferenceStatus.DECLINED]

        completed_types = {
            ref.reference_type
            for ref in references
            if ref.status == PublicReferenceStatus.COMPLETED
        }
        return ReferenceSummaryOut(
            total=total,
            pending=counts[PublicReferenceStatus.PENDING],
            completed=completed,
            expired=counts[PublicReferenceStatus.EXPIRED],
            declined=declined,
            avg_rating=avg_rating,
            completion_rate=round(completed / total * 100, 1) if total else 0.0,
            response_rate=round((completed + declined) / total * 100, 1) if total else 0.0,
            missing_required_types=[
                t for t in REQUIRED_REFERENCE_TYPES if t not in completed_types
            ],
        )
