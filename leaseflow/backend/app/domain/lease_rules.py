# app/domain/lease_rules.py
"""
Pure lease state machine.

    draft -> pending_signature -> signed
                               -> rejected

Nothing here touches storage; the service layer reads a record, asks these
functions for the next state and commits it with a compare-and-set write.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from .errors import InvalidState, ValidationFailed
from .types import LeaseStatus, Role, Signatures


@dataclass(frozen=True)
class LeaseState:
    status: LeaseStatus
    signatures: Signatures


def validate_terms(
    *,
    start_date: date | None,
    end_date: date | None,
    monthly_rent: Decimal | None,
    security_deposit: Decimal | None,
    terms: str | None,
) -> None:
    if start_date is None or end_date is None:
        raise ValidationFailed("start_date and end_date are required")
    if start_date >= end_date:
        raise ValidationFailed(f"start_date {start_date} must be before end_date {end_date}")
    if monthly_rent is None or monthly_rent <= 0:
        raise ValidationFailed("monthly_rent must be greater than zero")
    if security_deposit is None or security_deposit <= 0:
        raise ValidationFailed("security_deposit must be greater than zero")
    if not (terms or "").strip():
        raise ValidationFailed("terms must not be empty")


def initial_status(document_url: str | None) -> LeaseStatus:
    return LeaseStatus.pending_signature if document_url else LeaseStatus.draft


def on_attach_document(state: LeaseState) -> LeaseState:
    if state.status != LeaseStatus.draft:
        raise InvalidState(f"documents can only be attached to draft leases (status={state.status.value})")
    return LeaseState(status=LeaseStatus.pending_signature, signatures=state.signatures)


def on_sign(state: LeaseState, role: Role) -> LeaseState:
    """
    Record one party's signature.

    Order-independent: whichever party signs second moves the lease to
    signed. Signing again when the flag is already set returns the state
    unchanged.
    """
    if state.status != LeaseStatus.pending_signature:
        raise InvalidState(f"lease cannot be signed in status {state.status.value}")

    sigs = state.signatures
    if role == Role.tenant:
        if sigs.tenant:
            return state
        sigs = Signatures(tenant=True, landlord=sigs.landlord)
    else:
        if sigs.landlord:
            return state
        sigs = Signatures(tenant=sigs.tenant, landlord=True)

    status = LeaseStatus.signed if sigs.both() else LeaseStatus.pending_signature
    return LeaseState(status=status, signatures=sigs)


def on_reject(state: LeaseState, role: Role) -> LeaseState:
    # Either party may reject; existing signatures do not matter.
    if state.status != LeaseStatus.pending_signature:
        raise InvalidState(f"lease cannot be rejected in status {state.status.value}")
    return LeaseState(status=LeaseStatus.rejected, signatures=state.signatures)
