"""Tests for tenant verification scoring and status updates."""
import secrets
import uuid
from datetime import timedelta

import pytest
from conftest import RecordingGateway

from core.errors import InvalidStateError, NotFoundError
from models.enums import NotificationKind, ReferenceStatus, ReferenceType
from models.models import ReferenceRequest
from repos.tenant_repo import TenantRepo
from services.verification_service import VerificationService

BILLS_PAID = {
    "rent_payment_history": "On time",
    "rent_amount": 28000,
    "tenancy_length": "2 years",
    "water_bills_paid": True,
    "electrical_bills_paid": True,
}


async def add_reference(
    db, tenant, clock, reference_type, rating, details=None, status=ReferenceStatus.COMPLETED
):
    now = clock()
    reference = ReferenceRequest(
        tenant_id=tenant.id,
        reference_type=reference_type,
        provider_name="Grace Njeri",
        provider_email="grace@example.com",
        provider_relationship="Colleague",
        token=secrets.token_hex(32),
        status=status,
        expires_at=now + timedelta(days=14),
        rating=rating if status == ReferenceStatus.COMPLETED else None,
        verification_details=details,
        completed_at=now if status == ReferenceStatus.COMPLETED else None,
        created_at=now,
        updated_at=now,
    )
    db.add(reference)
    await db.commit()
    clock.advance(minutes=1)
    return reference


@pytest.fixture
def service(db, gateway, clock):
    return VerificationService(db, notifier=gateway, clock=clock)


async def test_unknown_tenant(service):
    with pytest.raises(NotFoundError):
        await service.verify_tenant(uuid.uuid4())


async def test_no_completed_references(service, db, tenant, clock):
    await add_reference(db, tenant, clock, ReferenceType.EMPLOYER, None, status=ReferenceStatus.PENDING)
    await add_reference(db, tenant, clock, ReferenceType.CHARACTER, None, status=ReferenceStatus.DECLINED)

    with pytest.raises(InvalidStateError) as exc:
        await service.verify_tenant(tenant.id)
    assert exc.value.status_code == 400

    stored = await TenantRepo(db).find_tenant(tenant.id)
    assert stored.verification_progress == 0
    assert stored.is_verified is False


async def test_single_landlord_reference_verifies_tenant(service, db, tenant, clock, gateway):
    await add_reference(db, tenant, clock, ReferenceType.PREVIOUS_LANDLORD, 5, BILLS_PAID)

    result = await service.verify_tenant(tenant.id)

    assert result.verification_score == pytest.approx(24.0)
    assert result.total_possible_score == pytest.approx(24.0)
    assert result.verification_percentage == 100
    assert result.is_verified is True
    assert len(result.references) == 1

    stored = await TenantRepo(db).find_tenant(tenant.id)
    assert stored.verification_progress == 100
    assert stored.is_verified is True

    payload = gateway.last(NotificationKind.VERIFICATION_STATUS)
    assert payload["newly_verified"] is True
    assert payload["verification_percentage"] == 100
    assert payload["to_email"] == tenant.email


async def test_pending_and_declined_references_do_not_count(service, db, tenant, clock):
    await add_reference(db, tenant, clock, ReferenceType.CHARACTER, 5)
    await add_reference(db, tenant, clock, ReferenceType.EMPLOYER, None, status=ReferenceStatus.PENDING)
    await add_reference(db, tenant, clock, ReferenceType.SACCOS_MEMBER, None, status=ReferenceStatus.DECLINED)

    result = await service.verify_tenant(tenant.id)
    assert result.total_possible_score == pytest.approx(6.0)
    assert [r.reference_type for r in result.references] == [ReferenceType.CHARACTER]


async def test_verified_flag_is_never_cleared(service, db, tenant, clock):
    await add_reference(db, tenant, clock, ReferenceType.PREVIOUS_LANDLORD, 5, BILLS_PAID)
    await service.verify_tenant(tenant.id)

    await add_reference(db, tenant, clock, ReferenceType.EMPLOYER, 1)
    await add_reference(db, tenant, clock, ReferenceType.EMPLOYER, 1)
    result = await service.verify_tenant(tenant.id)

    # 24 + 3 + 3 over 24 + 15 + 15
    assert result.verification_percentage == 56
    assert result.is_verified is False

    stored = await TenantRepo(db).find_tenant(tenant.id)
    assert stored.verification_progress == 56
    assert stored.is_verified is True


async def test_notifications_follow_threshold_and_delta(service, db, tenant, clock, gateway):
    await add_reference(db, tenant, clock, ReferenceType.CHARACTER, 3)
    first = await service.verify_tenant(tenant.id)
    assert first.verification_percentage == 60
    assert gateway.kinds().count(NotificationKind.VERIFICATION_STATUS) == 1
    assert gateway.last(NotificationKind.VERIFICATION_STATUS)["newly_verified"] is False

    await add_reference(db, tenant, clock, ReferenceType.CHARACTER, 3)
    second = await service.verify_tenant(tenant.id)
    assert second.verification_percentage == 60
    assert gateway.kinds().count(NotificationKind.VERIFICATION_STATUS) == 1

    await add_reference(db, tenant, clock, ReferenceType.PREVIOUS_LANDLORD, 5, BILLS_PAID)
    third = await service.verify_tenant(tenant.id)
    # 3.6 + 3.6 + 24 over 6 + 6 + 24
    assert third.verification_percentage == 87
    assert gateway.kinds().count(NotificationKind.VERIFICATION_STATUS) == 2
    assert gateway.last(NotificationKind.VERIFICATION_STATUS)["newly_verified"] is True

    await add_reference(db, tenant, clock, ReferenceType.EMPLOYER, 1)
    fourth = await service.verify_tenant(tenant.id)
    assert fourth.verification_percentage == 67
    assert gateway.kinds().count(NotificationKind.VERIFICATION_STATUS) == 2


async def test_gateway_failure_does_not_block_update(db, tenant, clock):
    await add_reference(db, tenant, clock, ReferenceType.PREVIOUS_LANDLORD, 5, BILLS_PAID)
    result = await VerificationService(
        db, notifier=RecordingGateway(raise_error=True), clock=clock
    ).verify_tenant(tenant.id)

    assert result.is_verified is True
    stored = await TenantRepo(db).find_tenant(tenant.id)
    assert stored.is_verified is True
