import uuid

from fastapi import APIRouter, Depends, status
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_db import get_db_async
from core.safe_handler import safe_handler
from schemas.schema import ConsentCreate, ConsentOut
from services.consent_service import ConsentService

router = APIRouter(tags=["Reference Consent"])


@cbv(router)
class ConsentRoutes:
    @router.post(
        "/consent/{tenant_id}",
        response_model=ConsentOut,
        status_code=status.HTTP_201_CREATED,
    )
    @safe_handler
    async def create(
        self,
        tenant_id: uuid.UUID,
        payload: ConsentCreate,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await ConsentService(db).create_consent(
            tenant_id=tenant_id, payload=payload
        )

    @router.get("/consent/{tenant_id}", response_model=ConsentOut)
    @safe_handler
    async def get_active(
        self,
        tenant_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await ConsentService(db).get_active_consent(tenant_id=tenant_id)
