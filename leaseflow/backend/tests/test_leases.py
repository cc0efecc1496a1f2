# tests/test_leases.py
from dataclasses import replace
from datetime import date

import pytest
from sqlalchemy import select

from app.domain.errors import InvalidState, NotFound, Unauthorized, ValidationFailed
from app.domain.types import Caller, LeaseStatus, PaymentStatus, Role
from app.models import OutboxEvent
from app.service_layer import applications, leases, payments
from app.service_layer.availability import is_available
from app.service_layer.properties import get_property_view


async def test_application_to_signed_lease(uow_factory, landlord, tenant, employment, property_p101, lease_options):
    a1 = await applications.submit(uow_factory, tenant, property_p101.id, tenant.user_id, employment)
    assert await is_available(uow_factory, "P101") is True

    a1 = await applications.resolve(uow_factory, landlord, a1.id, "approved")
    assert a1.status.value == "approved"
    assert await is_available(uow_factory, "P101") is False

    l1 = await leases.create(
        uow_factory, landlord, "P101", replace(lease_options, tenant_id=None, application_id=a1.id)
    )
    assert l1.status == LeaseStatus.draft
    assert l1.tenant_id == tenant.user_id

    l1 = await leases.attach_document(uow_factory, landlord, l1.id, "https://docs.example.com/l1.pdf")
    assert l1.status == LeaseStatus.pending_signature

    l1 = await leases.sign(uow_factory, tenant, l1.id)
    assert l1.status == LeaseStatus.pending_signature
    assert (l1.tenant_signed, l1.landlord_signed) == (True, False)

    l1 = await leases.sign(uow_factory, landlord, l1.id)
    assert l1.status == LeaseStatus.signed

    prop, available = await get_property_view(uow_factory, "P101")
    assert prop.tenant_id == tenant.user_id
    assert available is False


async def test_landlord_signs_first(uow_factory, landlord, tenant, pending_lease):
    lease = await leases.sign(uow_factory, landlord, pending_lease.id)
    assert lease.status == LeaseStatus.pending_signature
    lease = await leases.sign(uow_factory, tenant, pending_lease.id)
    assert lease.status == LeaseStatus.signed


async def test_double_sign_is_noop(uow_factory, tenant, pending_lease):
    first = await leases.sign(uow_factory, tenant, pending_lease.id)
    again = await leases.sign(uow_factory, tenant, pending_lease.id)
    assert again.version == first.version
    assert again.status == LeaseStatus.pending_signature


async def test_only_bound_parties_can_sign(uow_factory, other_tenant, pending_lease):
    with pytest.raises(Unauthorized):
        await leases.sign(uow_factory, other_tenant, pending_lease.id)
    with pytest.raises(Unauthorized):
        await leases.sign(uow_factory, Caller("L2", Role.landlord), pending_lease.id)


async def test_acting_role_must_match_caller(uow_factory, tenant, pending_lease):
    with pytest.raises(Unauthorized):
        await leases.sign(uow_factory, tenant, pending_lease.id, acting_role="landlord")
    with pytest.raises(ValidationFailed):
        await leases.sign(uow_factory, tenant, pending_lease.id, acting_role="agent")


async def test_draft_cannot_be_signed(uow_factory, landlord, tenant, property_p101, lease_options):
    draft = await leases.create(uow_factory, landlord, property_p101.id, lease_options)
    with pytest.raises(InvalidState):
        await leases.sign(uow_factory, tenant, draft.id)


async def test_reject_is_terminal(uow_factory, landlord, tenant, pending_lease):
    await leases.sign(uow_factory, tenant, pending_lease.id)
    rejected = await leases.reject(uow_factory, tenant, pending_lease.id)
    assert rejected.status == LeaseStatus.rejected

    with pytest.raises(InvalidState):
        await leases.sign(uow_factory, landlord, pending_lease.id)
    with pytest.raises(InvalidState):
        await leases.reject(uow_factory, landlord, pending_lease.id)
    with pytest.raises(InvalidState):
        await leases.attach_document(uow_factory, landlord, pending_lease.id, "https://docs.example.com/v2.pdf")


async def test_signed_lease_cannot_be_rejected(uow_factory, landlord, tenant, pending_lease):
    await leases.sign(uow_factory, tenant, pending_lease.id)
    await leases.sign(uow_factory, landlord, pending_lease.id)
    with pytest.raises(InvalidState):
        await leases.reject(uow_factory, tenant, pending_lease.id)


async def test_start_must_precede_end(uow_factory, landlord, property_p101, lease_options):
    bad = replace(lease_options, start_date=date(2025, 6, 1), end_date=date(2025, 6, 1))
    with pytest.raises(ValidationFailed):
        await leases.create(uow_factory, landlord, property_p101.id, bad)


async def test_only_owner_creates(uow_factory, tenant, property_p101, lease_options):
    with pytest.raises(Unauthorized):
        await leases.create(uow_factory, Caller("L2", Role.landlord), property_p101.id, lease_options)
    with pytest.raises(Unauthorized):
        await leases.create(uow_factory, tenant, property_p101.id, lease_options)


async def test_unknown_property(uow_factory, landlord, lease_options):
    with pytest.raises(NotFound):
        await leases.create(uow_factory, landlord, "P404", lease_options)


async def test_application_must_be_approved(uow_factory, landlord, tenant, employment, property_p101, lease_options):
    a = await applications.submit(uow_factory, tenant, property_p101.id, tenant.user_id, employment)
    with pytest.raises(InvalidState):
        await leases.create(uow_factory, landlord, property_p101.id, replace(lease_options, application_id=a.id))


async def test_application_tenant_must_match(uow_factory, landlord, approved_application, property_p101, lease_options):
    opts = replace(lease_options, tenant_id="T2", application_id=approved_application.id)
    with pytest.raises(ValidationFailed):
        await leases.create(uow_factory, landlord, property_p101.id, opts)


async def test_document_needs_a_tenant(uow_factory, landlord, property_p101, lease_options):
    opts = replace(lease_options, tenant_id=None, document_url="https://docs.example.com/x.pdf")
    with pytest.raises(ValidationFailed):
        await leases.create(uow_factory, landlord, property_p101.id, opts)


async def test_create_with_document_starts_pending(uow_factory, landlord, property_p101, lease_options):
    opts = replace(lease_options, document_url="https://docs.example.com/x.pdf")
    lease = await leases.create(uow_factory, landlord, property_p101.id, opts)
    assert lease.status == LeaseStatus.pending_signature


async def test_occupied_property_gets_no_second_lease(uow_factory, landlord, tenant, pending_lease, property_p101, lease_options):
    await leases.sign(uow_factory, tenant, pending_lease.id)
    await leases.sign(uow_factory, landlord, pending_lease.id)
    with pytest.raises(InvalidState):
        await leases.create(uow_factory, landlord, property_p101.id, lease_options)


async def test_assign_tenant_then_attach(uow_factory, landlord, property_p101, lease_options):
    draft = await leases.create(uow_factory, landlord, property_p101.id, replace(lease_options, tenant_id=None))
    with pytest.raises(InvalidState):
        await leases.attach_document(uow_factory, landlord, draft.id, "https://docs.example.com/x.pdf")

    draft = await leases.assign_tenant(uow_factory, landlord, draft.id, "T7")
    assert draft.tenant_id == "T7"
    with pytest.raises(ValidationFailed):
        await leases.assign_tenant(uow_factory, landlord, draft.id, landlord.user_id)

    pending = await leases.attach_document(uow_factory, landlord, draft.id, "https://docs.example.com/x.pdf")
    assert pending.status == LeaseStatus.pending_signature
    with pytest.raises(InvalidState):
        await leases.assign_tenant(uow_factory, landlord, draft.id, "T8")


async def test_upload_document_stores_pdf(uow_factory, blob_store, landlord, property_p101, lease_options, tmp_path):
    draft = await leases.create(uow_factory, landlord, property_p101.id, lease_options)
    lease = await leases.upload_document(
        uow_factory, blob_store, landlord, draft.id, "Lease Final (v2).pdf", b"%PDF-1.7 ...", "application/pdf"
    )
    assert lease.status == LeaseStatus.pending_signature
    assert lease.document_url.startswith("file://")
    stored = tmp_path / "blobs" / "leases" / draft.id / "Lease_Final__v2_.pdf"
    assert stored.read_bytes() == b"%PDF-1.7 ..."


async def test_upload_document_rejects_non_pdf(uow_factory, blob_store, landlord, property_p101, lease_options, tmp_path):
    draft = await leases.create(uow_factory, landlord, property_p101.id, lease_options)
    with pytest.raises(ValidationFailed):
        await leases.upload_document(uow_factory, blob_store, landlord, draft.id, "lease.docx", b"PK..", "application/msword")
    assert not (tmp_path / "blobs").exists()


async def test_signing_schedules_rent(uow_factory, landlord, tenant, pending_lease, session_factory):
    await leases.sign(uow_factory, tenant, pending_lease.id)
    await leases.sign(uow_factory, landlord, pending_lease.id)

    due = await payments.list_payments(uow_factory, tenant, lease_id=pending_lease.id)
    assert len(due) == 12
    assert {p.status for p in due} == {PaymentStatus.pending}
    assert min(p.due_date for p in due) == date(2025, 1, 1)

    async with session_factory() as session:
        types = (await session.execute(select(OutboxEvent.event_type).order_by(OutboxEvent.id))).scalars().all()
    assert types[-1] == "lease.signed"
    assert "lease.signature_recorded" in types


async def test_get_and_list_are_party_scoped(uow_factory, landlord, tenant, other_tenant, pending_lease):
    assert (await leases.get_lease(uow_factory, tenant, pending_lease.id)).id == pending_lease.id
    with pytest.raises(Unauthorized):
        await leases.get_lease(uow_factory, other_tenant, pending_lease.id)

    assert [l.id for l in await leases.list_leases(uow_factory, landlord)] == [pending_lease.id]
    assert await leases.list_leases(uow_factory, other_tenant) == []


async def test_second_lease_cannot_be_signed_on_occupied_property(
    uow_factory, landlord, tenant, other_tenant, property_p101, lease_options
):
    first = await leases.create(uow_factory, landlord, "P101", lease_options)
    second = await leases.create(uow_factory, landlord, "P101", replace(lease_options, tenant_id=other_tenant.user_id))
    for lease in (first, second):
        await leases.attach_document(uow_factory, landlord, lease.id, f"https://docs.example.com/{lease.id}.pdf")

    await leases.sign(uow_factory, tenant, first.id)
    assert (await leases.sign(uow_factory, landlord, first.id)).status == LeaseStatus.signed

    await leases.sign(uow_factory, other_tenant, second.id)
    with pytest.raises(InvalidState):
        await leases.sign(uow_factory, landlord, second.id)

    second = await leases.get_lease(uow_factory, landlord, second.id)
    assert second.status == LeaseStatus.pending_signature
    assert (second.tenant_signed, second.landlord_signed) == (True, False)
    assert await payments.list_payments(uow_factory, landlord, lease_id=second.id) == []

    prop, _ = await get_property_view(uow_factory, "P101")
    assert prop.tenant_id == tenant.user_id


async def test_failed_attach_after_upload_logs_where_blob_went(
    uow_factory, blob_store, landlord, property_p101, lease_options, monkeypatch, caplog
):
    draft = await leases.create(uow_factory, landlord, property_p101.id, lease_options)

    async def moved_on(*args, **kwargs):
        raise InvalidState("lease is no longer a draft")

    monkeypatch.setattr(leases, "attach_document", moved_on)
    with pytest.raises(InvalidState):
        await leases.upload_document(uow_factory, blob_store, landlord, draft.id, "lease.pdf", b"%PDF", "application/pdf")

    assert f"leases/{draft.id}/lease.pdf" in caplog.text
    assert "attach failed" in caplog.text
