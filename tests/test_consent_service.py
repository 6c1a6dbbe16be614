"""Tests for the consent ledger.

Tests cover:
- Default permissions and retention
- Superseding the active consent on every create
- Unknown tenant rejection
- Partial unique index on active consents
"""
import uuid

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from core.errors import NotFoundError
from models.enums import ConsentStatus
from models.models import Consent
from repos.consent_repo import ConsentRepo
from schemas.schema import ConsentCreate, ConsentPermissions, DataRetention
from services.consent_service import SUPERSEDED_REASON, ConsentService


async def test_create_consent_applies_defaults(db, tenant, clock):
    service = ConsentService(db, clock=clock)

    consent = await service.create_consent(tenant.id, ConsentCreate())

    assert consent.status == ConsentStatus.ACTIVE
    assert consent.requester_id == tenant.id
    assert consent.data_retention.retention_period_months == 24
    assert consent.data_retention.allow_data_sharing is False
    assert consent.data_retention.allow_analytics is True
    assert consent.permissions == ConsentPermissions()
    assert consent.created_at == clock.now


async def test_new_consent_revokes_previous(db, tenant, clock):
    service = ConsentService(db, clock=clock)
    first = await service.create_consent(
        tenant.id,
        ConsentCreate(permissions=ConsentPermissions(employer_verification=True)),
    )
    clock.advance(days=1)
    second = await service.create_consent(
        tenant.id,
        ConsentCreate(
            permissions=ConsentPermissions(kra_credit_check=True),
            data_retention=DataRetention(retention_period_months=12),
        ),
    )

    rows = (
        (await db.execute(select(Consent).where(Consent.tenant_id == tenant.id)))
        .scalars()
        .all()
    )
    active = [row for row in rows if row.status == ConsentStatus.ACTIVE]
    revoked = [row for row in rows if row.status == ConsentStatus.REVOKED]

    assert len(rows) == 2
    assert [row.id for row in active] == [second.id]
    assert [row.id for row in revoked] == [first.id]
    assert revoked[0].revoked_reason == SUPERSEDED_REASON
    assert revoked[0].revoked_at == clock.now

    current = await service.get_active_consent(tenant.id)
    assert current.id == second.id
    assert current.permissions.kra_credit_check is True
    assert current.data_retention.retention_period_months == 12


async def test_explicit_requester_is_recorded(db, tenant, clock):
    requester = uuid.uuid4()
    consent = await ConsentService(db, clock=clock).create_consent(
        tenant.id, ConsentCreate(), requester_id=requester
    )
    assert consent.requester_id == requester


async def test_create_consent_unknown_tenant(db, clock):
    with pytest.raises(NotFoundError) as exc:
        await ConsentService(db, clock=clock).create_consent(
            uuid.uuid4(), ConsentCreate()
        )
    assert exc.value.status_code == 404


async def test_get_active_consent_missing(db, tenant):
    with pytest.raises(NotFoundError):
        await ConsentService(db).get_active_consent(tenant.id)


async def test_index_rejects_second_active_consent(db, tenant):
    for _ in range(2):
        db.add(
            Consent(
                tenant_id=tenant.id,
                requester_id=tenant.id,
                permissions={},
                data_retention={},
                status=ConsentStatus.ACTIVE,
            )
        )
    with pytest.raises(IntegrityError):
        await db.commit()
    await db.rollback()


async def test_index_allows_many_revoked_consents(db, tenant):
    for _ in range(3):
        db.add(
            Consent(
                tenant_id=tenant.id,
                requester_id=tenant.id,
                permissions={},
                data_retention={},
                status=ConsentStatus.REVOKED,
            )
        )
    await db.commit()
    rows = (await db.execute(select(Consent))).scalars().all()
    assert len(rows) == 3


def test_retention_period_bounds():
    with pytest.raises(ValueError):
        DataRetention(retention_period_months=5)
    with pytest.raises(ValueError):
        DataRetention(retention_period_months=61)
    assert DataRetention(retention_period_months=60).retention_period_months == 60


async def test_create_consent_retries_after_index_collision(
    db, tenant, clock, monkeypatch
):
    tenant_id = tenant.id
    original_add = ConsentRepo.add
    calls = []

    async def add_after_rival(self, consent_data):
        calls.append(consent_data)
        if len(calls) == 1:
            # A concurrent request inserts its active consent after our revoke.
            self.db.add(
                Consent(
                    tenant_id=tenant_id,
                    requester_id=uuid.uuid4(),
                    permissions={},
                    data_retention={},
                    status=ConsentStatus.ACTIVE,
                )
            )
            await self.db.flush()
        return await original_add(self, consent_data)

    monkeypatch.setattr(ConsentRepo, "add", add_after_rival)

    consent = await ConsentService(db, clock=clock).create_consent(
        tenant_id, ConsentCreate()
    )

    assert len(calls) == 2
    active = (
        (
            await db.execute(
                select(Consent).where(
                    Consent.tenant_id == tenant_id,
                    Consent.status == ConsentStatus.ACTIVE,
                )
            )
        )
        .scalars()
        .all()
    )
    assert [row.id for row in active] == [consent.id]


async def test_create_consent_gives_up_after_retries(
    db, tenant, clock, monkeypatch
):
    tenant_id = tenant.id
    original_add = ConsentRepo.add

    async def always_collide(self, consent_data):
        self.db.add(
            Consent(
                tenant_id=tenant_id,
                requester_id=uuid.uuid4(),
                permissions={},
                data_retention={},
                status=ConsentStatus.ACTIVE,
            )
        )
        await self.db.flush()
        return await original_add(self, consent_data)

    monkeypatch.setattr(ConsentRepo, "add", always_collide)

    with pytest.raises(IntegrityError):
        await ConsentService(db, clock=clock).create_consent(tenant_id, ConsentCreate())

    rows = (await db.execute(select(Consent))).scalars().all()
    assert rows == []
