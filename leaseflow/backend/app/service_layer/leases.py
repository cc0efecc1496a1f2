# app/service_layer/leases.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Awaitable, Callable

from ..adapters.blob_store import BlobStore, safe_filename
from ..adapters.entity_store import Where
from ..config import settings
from ..domain.errors import InvalidState, LeaseflowError, Unauthorized, ValidationFailed, VersionConflict
from ..domain.lease_rules import (
    LeaseState,
    initial_status,
    on_attach_document,
    on_reject,
    on_sign,
    validate_terms,
)
from ..domain.types import ApplicationStatus, Caller, LeaseOptions, LeaseStatus, Role, Signatures
from ..models import Lease, Property
from .availability import occupying_leases
from .guards import party_filter_field, record_party, require_party, require_role
from .outbox import enqueue_event
from .payments import schedule_rent_payments
from .unit_of_work import UnitOfWork, UowFactory

log = logging.getLogger(__name__)


def _state(lease: Lease) -> LeaseState:
    return LeaseState(
        status=lease.status,
        signatures=Signatures(tenant=bool(lease.tenant_signed), landlord=bool(lease.landlord_signed)),
    )


def _event_payload(lease: Lease) -> dict:
    return {
        "lease_id": lease.id,
        "property_id": lease.property_id,
        "tenant_id": lease.tenant_id,
        "landlord_id": lease.landlord_id,
        "status": lease.status.value,
        "signatures": {"tenant": lease.tenant_signed, "landlord": lease.landlord_signed},
    }


def _acting_role(caller: Caller, acting_role: Role | str | None) -> Role:
    if acting_role is None:
        return caller.role
    try:
        role = Role(acting_role)
    except ValueError:
        raise ValidationFailed(f"unknown role {acting_role!r}") from None
    if role != caller.role:
        raise Unauthorized(f"a {caller.role.value} cannot act as {role.value}")
    return role


async def _with_cas_retry(
    uow_factory: UowFactory,
    lease_id: str,
    step: Callable[[UnitOfWork, Lease], Awaitable[Lease]],
    *,
    action: str,
) -> Lease:
    """
    Read-compute-commit loop for lease mutations.

    Each attempt runs in a fresh unit of work and re-reads the lease, so the
    outcome is always computed from the latest committed record. `step` must
    write through `store.update(..., expected_version=lease.version)`; a
    VersionConflict triggers a retry, up to LEASE_CAS_MAX_ATTEMPTS attempts.
    """
    attempts = max(1, int(settings.LEASE_CAS_MAX_ATTEMPTS))
    for attempt in range(1, attempts + 1):
        try:
            async with uow_factory() as uow:
                lease = await uow.store.get("leases", lease_id, fresh=True)
                return await step(uow, lease)
        except VersionConflict:
            if attempt >= attempts:
                log.warning("lease %s: %s gave up after %d conflicting attempts", lease_id, action, attempt)
                raise
            log.info("lease %s: %s hit a concurrent update, retrying (%d/%d)", lease_id, action, attempt, attempts)
    raise AssertionError("unreachable")


async def create(
    uow_factory: UowFactory,
    caller: Caller,
    property_id: str,
    options: LeaseOptions,
) -> Lease:
    """
    Landlord creates a lease, either directly or from an approved application.

    Starts as draft, or pending_signature when a document is supplied. A
    lease is tenant-bound here (explicit tenant_id or the application's
    tenant) or later through assign_tenant while still draft.
    """
    require_role(caller, Role.landlord, "create a lease")
    validate_terms(
        start_date=options.start_date,
        end_date=options.end_date,
        monthly_rent=options.monthly_rent,
        security_deposit=options.security_deposit,
        terms=options.terms,
    )

    async with uow_factory() as uow:
        prop = await uow.store.get("properties", property_id)
        require_party(caller, prop.landlord_id, "create a lease for this property")

        tenant_id = options.tenant_id or None
        if options.application_id:
            application = await uow.store.get("applications", options.application_id)
            if application.property_id != property_id:
                raise ValidationFailed(
                    f"application {application.id} is for property {application.property_id}, not {property_id}"
                )
            if application.status != ApplicationStatus.approved:
                raise InvalidState(f"application {application.id} is {application.status.value}, not approved")
            if tenant_id and tenant_id != application.tenant_id:
                raise ValidationFailed("tenant_id does not match the application's tenant")
            tenant_id = application.tenant_id

        if tenant_id and tenant_id == prop.landlord_id:
            raise ValidationFailed("a landlord cannot be the tenant of their own lease")
        if options.document_url and not tenant_id:
            raise ValidationFailed("a lease sent for signature needs a tenant")

        # re-check right before the write; an earlier availability read may be stale
        if await occupying_leases(uow.store, property_id):
            raise InvalidState(f"property {property_id} already has a signed or active lease")

        lease_id = await uow.store.insert(
            "leases",
            {
                "property_id": property_id,
                "tenant_id": tenant_id,
                "landlord_id": prop.landlord_id,
                "application_id": options.application_id,
                "status": initial_status(options.document_url),
                "start_date": options.start_date,
                "end_date": options.end_date,
                "monthly_rent": options.monthly_rent,
                "security_deposit": options.security_deposit,
                "terms": options.terms.strip(),
                "document_url": options.document_url,
                "tenant_signed": False,
                "landlord_signed": False,
            },
        )
        lease = await uow.store.get("leases", lease_id)
        await enqueue_event(uow.session, "lease.created", _event_payload(lease))

    log.info("lease %s created for property %s (status=%s)", lease.id, property_id, lease.status.value)
    return lease


async def assign_tenant(uow_factory: UowFactory, caller: Caller, lease_id: str, tenant_id: str) -> Lease:
    require_role(caller, Role.landlord, "assign a tenant")
    if not (tenant_id or "").strip():
        raise ValidationFailed("tenant_id is required")

    async def step(uow: UnitOfWork, lease: Lease) -> Lease:
        require_party(caller, lease.landlord_id, "assign a tenant to this lease")
        if lease.status != LeaseStatus.draft:
            raise InvalidState(f"tenant can only be assigned while draft (status={lease.status.value})")
        if tenant_id == lease.landlord_id:
            raise ValidationFailed("a landlord cannot be the tenant of their own lease")
        return await uow.store.update(
            "leases",
            lease.id,
            {"tenant_id": tenant_id, "updated_at": datetime.utcnow()},
            expected_version=lease.version,
        )

    return await _with_cas_retry(uow_factory, lease_id, step, action="assign_tenant")


async def attach_document(uow_factory: UowFactory, caller: Caller, lease_id: str, document_url: str) -> Lease:
    """draft -> pending_signature, recording where the signed-to-be document lives."""
    if not (document_url or "").strip():
        raise ValidationFailed("document_url is required")

    async def step(uow: UnitOfWork, lease: Lease) -> Lease:
        require_party(caller, lease.landlord_id, "attach a document to this lease")
        nxt = on_attach_document(_state(lease))
        if not lease.tenant_id:
            raise InvalidState("assign a tenant before sending the lease for signature")
        lease = await uow.store.update(
            "leases",
            lease.id,
            {"document_url": document_url, "status": nxt.status, "updated_at": datetime.utcnow()},
            expected_version=lease.version,
        )
        await enqueue_event(uow.session, "lease.document_attached", _event_payload(lease))
        return lease

    return await _with_cas_retry(uow_factory, lease_id, step, action="attach_document")


async def upload_document(
    uow_factory: UowFactory,
    blob_store: BlobStore,
    caller: Caller,
    lease_id: str,
    filename: str,
    data: bytes,
    content_type: str,
) -> Lease:
    if content_type not in settings.LEASE_DOCUMENT_CONTENT_TYPES:
        raise ValidationFailed(f"lease documents must be one of {settings.LEASE_DOCUMENT_CONTENT_TYPES}")
    if not data:
        raise ValidationFailed("document is empty")

    # fail before touching storage if the attach would be refused anyway
    async with uow_factory() as uow:
        lease = await uow.store.get("leases", lease_id)
        require_party(caller, lease.landlord_id, "upload a document for this lease")
        on_attach_document(_state(lease))

    locator = await blob_store.store(f"leases/{lease_id}/{safe_filename(filename)}", data, content_type)
    try:
        return await attach_document(uow_factory, caller, lease_id, locator)
    except LeaseflowError as e:
        log.warning("lease %s: attach failed (%s); uploaded document left at %s", lease_id, e.kind, locator)
        raise


async def _claim_property(uow: UnitOfWork, lease: Lease) -> Property:
    """
    Refuse to sign a second occupying lease for the same property.

    The property row is read here and written with its version in
    _on_signed, so two leases racing to `signed` conflict on it and the
    loser re-checks.
    """
    prop = await uow.store.get("properties", lease.property_id, fresh=True)
    others = [o.id for o in await occupying_leases(uow.store, lease.property_id) if o.id != lease.id]
    if others:
        raise InvalidState(f"property {lease.property_id} is already occupied by lease {others[0]}")
    return prop


async def _on_signed(uow: UnitOfWork, lease: Lease, prop: Property) -> None:
    await uow.store.update(
        "properties",
        lease.property_id,
        {"tenant_id": lease.tenant_id, "status": "occupied"},
        expected_version=prop.version,
    )
    created = await schedule_rent_payments(uow.store, lease)
    await enqueue_event(uow.session, "lease.signed", {**_event_payload(lease), "payments_scheduled": created})


async def sign(
    uow_factory: UowFactory,
    caller: Caller,
    lease_id: str,
    acting_role: Role | str | None = None,
) -> Lease:
    """
    Record the caller's signature. The lease is signed once both flags are
    set, whichever party goes second. Signing twice is a no-op.
    """
    role = _acting_role(caller, acting_role)

    async def step(uow: UnitOfWork, lease: Lease) -> Lease:
        require_party(caller, record_party(lease, role), "sign this lease")
        current = _state(lease)
        nxt = on_sign(current, role)
        if nxt == current:
            return lease

        prop = await _claim_property(uow, lease) if nxt.status == LeaseStatus.signed else None
        lease = await uow.store.update(
            "leases",
            lease.id,
            {
                "status": nxt.status,
                "tenant_signed": nxt.signatures.tenant,
                "landlord_signed": nxt.signatures.landlord,
                "updated_at": datetime.utcnow(),
            },
            expected_version=lease.version,
        )
        if prop is not None:
            await _on_signed(uow, lease, prop)
        else:
            await enqueue_event(
                uow.session, "lease.signature_recorded", {**_event_payload(lease), "role": role.value}
            )
        return lease

    lease = await _with_cas_retry(uow_factory, lease_id, step, action="sign")
    log.info("lease %s signed by %s (status=%s)", lease_id, role.value, lease.status.value)
    return lease


async def reject(
    uow_factory: UowFactory,
    caller: Caller,
    lease_id: str,
    acting_role: Role | str | None = None,
) -> Lease:
    """Either party rejects a pending lease. Terminal."""
    role = _acting_role(caller, acting_role)

    async def step(uow: UnitOfWork, lease: Lease) -> Lease:
        require_party(caller, record_party(lease, role), "reject this lease")
        nxt = on_reject(_state(lease), role)
        lease = await uow.store.update(
            "leases",
            lease.id,
            {"status": nxt.status, "updated_at": datetime.utcnow()},
            expected_version=lease.version,
        )
        await enqueue_event(uow.session, "lease.rejected", {**_event_payload(lease), "role": role.value})
        return lease

    lease = await _with_cas_retry(uow_factory, lease_id, step, action="reject")
    log.info("lease %s rejected by %s", lease_id, role.value)
    return lease


async def get_lease(uow_factory: UowFactory, caller: Caller, lease_id: str) -> Lease:
    async with uow_factory() as uow:
        lease = await uow.store.get("leases", lease_id)
    require_party(caller, record_party(lease, caller.role), "view this lease")
    return lease


async def list_leases(uow_factory: UowFactory, caller: Caller) -> list[Lease]:
    async with uow_factory() as uow:
        return await uow.store.query(
            "leases",
            Where(party_filter_field(caller), "==", caller.user_id),
            order_by="created_at",
            descending=True,
        )
