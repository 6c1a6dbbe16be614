import uuid
from typing import List

from fastapi import APIRouter, Depends, status
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_db import get_db_async
from core.safe_handler import safe_handler
from email_notify.notification_gateway import (
    NotificationGateway,
    get_notification_gateway,
)
from schemas.schema import (
    ProviderReferenceView,
    ReferenceCreatedOut,
    ReferenceDecline,
    ReferenceOut,
    ReferenceRequestCreate,
    ReferenceRespond,
    ReferenceSummaryOut,
    ResendOut,
    VerificationOut,
)
from services.reference_service import ReferenceService
from services.verification_service import VerificationService

router = APIRouter(tags=["Tenant References"])


@cbv(router)
class ReferenceRoutes:
    notifier: NotificationGateway = Depends(get_notification_gateway)

    @router.post(
        "/request/{tenant_id}",
        response_model=ReferenceCreatedOut,
        status_code=status.HTTP_201_CREATED,
    )
    @safe_handler
    async def request_reference(
        self,
        tenant_id: uuid.UUID,
        payload: ReferenceRequestCreate,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await ReferenceService(db, notifier=self.notifier).request_reference(
            tenant_id=tenant_id, payload=payload
        )

    @router.post("/resend/{reference_id}", response_model=ResendOut)
    @safe_handler
    async def resend_reference(
        self,
        reference_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await ReferenceService(db, notifier=self.notifier).resend_reference(
            reference_id=reference_id
        )

    @router.get("/token/{token}", response_model=ProviderReferenceView)
    @safe_handler
    async def provider_view(
        self,
        token: str,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await ReferenceService(db, notifier=self.notifier).get_reference_by_token(
            token=token
        )

    @router.post("/decline/{token}", response_model=ReferenceOut)
    @safe_handler
    async def decline_reference(
        self,
        token: str,
        payload: ReferenceDecline,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await ReferenceService(db, notifier=self.notifier).decline_reference(
            token=token, payload=payload
        )

    @router.post(
        "/respond/{token}",
        response_model=ReferenceOut,
        status_code=status.HTTP_201_CREATED,
    )
    @safe_handler
    async def respond_reference(
        self,
        token: str,
        payload: ReferenceRespond,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await ReferenceService(db, notifier=self.notifier).respond_reference(
            token=token, payload=payload
        )

    @router.get("/tenant/{tenant_id}", response_model=List[ReferenceOut])
    @safe_handler
    async def list_for_tenant(
        self,
        tenant_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await ReferenceService(
            db, notifier=self.notifier
        ).list_references_for_tenant(tenant_id=tenant_id)

    @router.get("/tenant/{tenant_id}/summary", response_model=ReferenceSummaryOut)
    @safe_handler
    async def summary_for_tenant(
        self,
        tenant_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await ReferenceService(db, notifier=self.notifier).get_reference_summary(
            tenant_id=tenant_id
        )

    @router.post("/verify/{tenant_id}", response_model=VerificationOut)
    @safe_handler
    async def verify_tenant(
        self,
        tenant_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await VerificationService(db, notifier=self.notifier).verify_tenant(
            tenant_id=tenant_id
        )
