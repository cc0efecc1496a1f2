from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from .models import Application, Lease, MaintenanceRequest, Payment, Property

Decision = Literal["approved", "rejected"]
PartyRole = Literal["landlord", "tenant"]


# ----- Properties -----

class PropertyIn(BaseModel):
    id: str | None = Field(default=None, max_length=64)
    name: str
    address: str
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    monthly_rent: Decimal = Field(..., gt=0)
    security_deposit: Decimal | None = Field(default=None, ge=0)
    description: str | None = None
    property_type: Literal["apartment", "house", "condo", "townhouse"] = "apartment"
    bedrooms: int | None = Field(default=None, ge=0)
    bathrooms: float | None = Field(default=None, ge=0)
    square_feet: int | None = Field(default=None, ge=0)
    pet_policy: Literal["no-pets", "cats-only", "dogs-only", "both-allowed", "case-by-case"] = "no-pets"
    amenities: list[str] = Field(default_factory=list)


class PropertyPatch(BaseModel):
    name: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    monthly_rent: Decimal | None = Field(default=None, gt=0)
    security_deposit: Decimal | None = Field(default=None, ge=0)
    description: str | None = None
    property_type: Literal["apartment", "house", "condo", "townhouse"] | None = None
    bedrooms: int | None = Field(default=None, ge=0)
    bathrooms: float | None = Field(default=None, ge=0)
    square_feet: int | None = Field(default=None, ge=0)
    pet_policy: Literal["no-pets", "cats-only", "dogs-only", "both-allowed", "case-by-case"] | None = None
    amenities: list[str] | None = None


class PropertyOut(BaseModel):
    id: str
    landlord_id: str
    tenant_id: str | None = None
    name: str
    address: str
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    monthly_rent: Decimal
    security_deposit: Decimal | None = None
    description: str | None = None
    property_type: str
    bedrooms: int | None = None
    bathrooms: float | None = None
    square_feet: int | None = None
    pet_policy: str
    amenities: list[str]
    available: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, p: Property, available: bool) -> "PropertyOut":
        return cls(
            id=p.id,
            landlord_id=p.landlord_id,
            tenant_id=p.tenant_id,
            name=p.name,
            address=p.address,
            city=p.city,
            state=p.state,
            zip_code=p.zip_code,
            monthly_rent=p.monthly_rent,
            security_deposit=p.security_deposit,
            description=p.description,
            property_type=p.property_type,
            bedrooms=p.bedrooms,
            bathrooms=p.bathrooms,
            square_feet=p.square_feet,
            pet_policy=p.pet_policy,
            amenities=json.loads(p.amenities_json or "[]"),
            available=available,
            created_at=p.created_at,
            updated_at=p.updated_at,
        )


class AvailabilityOut(BaseModel):
    property_id: str
    available: bool


# ----- Applications -----

class ReferenceIn(BaseModel):
    name: str = Field(..., min_length=1)
    relationship: str | None = None
    phone: str | None = None


class ApplicationCreate(BaseModel):
    property_id: str
    employment_status: Literal["full-time", "part-time", "self-employed", "unemployed"] | None = None
    employer: str | None = None
    monthly_income: Decimal | None = Field(default=None, ge=0)
    employment_length: str | None = None
    previous_address: str | None = None
    references: list[ReferenceIn] = Field(default_factory=list)
    additional_info: str | None = None


class ApplicationResolve(BaseModel):
    decision: Decision


class ApplicationOut(BaseModel):
    id: str
    property_id: str
    tenant_id: str
    landlord_id: str
    employment_status: str | None = None
    employer: str | None = None
    monthly_income: Decimal | None = None
    employment_length: str | None = None
    previous_address: str | None = None
    references: list[ReferenceIn]
    additional_info: str | None = None
    status: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, a: Application) -> "ApplicationOut":
        return cls(
            id=a.id,
            property_id=a.property_id,
            tenant_id=a.tenant_id,
            landlord_id=a.landlord_id,
            employment_status=a.employment_status,
            employer=a.employer,
            monthly_income=a.monthly_income,
            employment_length=a.employment_length,
            previous_address=a.previous_address,
            references=[ReferenceIn(**r) for r in json.loads(a.references_json or "[]")],
            additional_info=a.additional_info,
            status=a.status.value,
            created_at=a.created_at,
            updated_at=a.updated_at,
        )


# ----- Leases -----

class LeaseCreate(BaseModel):
    property_id: str
    tenant_id: str | None = None
    application_id: str | None = None
    terms: str
    monthly_rent: Decimal
    security_deposit: Decimal
    start_date: date
    end_date: date
    document_url: str | None = None


class LeaseTenantAssign(BaseModel):
    tenant_id: str = Field(..., min_length=1)


class LeaseDocumentAttach(BaseModel):
    document_url: str = Field(..., min_length=1)


class LeaseAction(BaseModel):
    acting_role: PartyRole | None = None


class SignaturesOut(BaseModel):
    tenant: bool
    landlord: bool


class LeaseOut(BaseModel):
    id: str
    property_id: str
    tenant_id: str | None = None
    landlord_id: str
    application_id: str | None = None
    status: str
    start_date: date
    end_date: date
    monthly_rent: Decimal
    security_deposit: Decimal
    terms: str
    document_url: str | None = None
    signatures: SignaturesOut
    version: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, lease: Lease) -> "LeaseOut":
        return cls(
            id=lease.id,
            property_id=lease.property_id,
            tenant_id=lease.tenant_id,
            landlord_id=lease.landlord_id,
            application_id=lease.application_id,
            status=lease.status.value,
            start_date=lease.start_date,
            end_date=lease.end_date,
            monthly_rent=lease.monthly_rent,
            security_deposit=lease.security_deposit,
            terms=lease.terms,
            document_url=lease.document_url,
            signatures=SignaturesOut(tenant=lease.tenant_signed, landlord=lease.landlord_signed),
            version=lease.version,
            created_at=lease.created_at,
            updated_at=lease.updated_at,
        )


# ----- Payments -----

class PaymentOut(BaseModel):
    id: str
    lease_id: str
    property_id: str
    tenant_id: str
    landlord_id: str
    amount: Decimal
    due_date: date
    status: str
    paid_at: datetime | None = None

    @classmethod
    def from_record(cls, p: Payment) -> "PaymentOut":
        return cls(
            id=p.id,
            lease_id=p.lease_id,
            property_id=p.property_id,
            tenant_id=p.tenant_id,
            landlord_id=p.landlord_id,
            amount=p.amount,
            due_date=p.due_date,
            status=p.status.value,
            paid_at=p.paid_at,
        )


# ----- Maintenance -----

class MaintenanceCreate(BaseModel):
    property_id: str
    title: str
    description: str
    priority: Literal["low", "normal", "high", "emergency"] = "normal"
    category: Literal["general", "plumbing", "electrical", "hvac", "appliance", "structural"] = "general"


class MaintenanceStatusUpdate(BaseModel):
    status: Literal["open", "in_progress", "completed"]


class MaintenanceOut(BaseModel):
    id: str
    property_id: str
    tenant_id: str
    landlord_id: str
    title: str
    description: str
    priority: str
    category: str
    images: list[str]
    status: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, r: MaintenanceRequest) -> "MaintenanceOut":
        return cls(
            id=r.id,
            property_id=r.property_id,
            tenant_id=r.tenant_id,
            landlord_id=r.landlord_id,
            title=r.title,
            description=r.description,
            priority=r.priority.value,
            category=r.category.value,
            images=json.loads(r.images_json or "[]"),
            status=r.status.value,
            created_at=r.created_at,
            updated_at=r.updated_at,
        )


# ----- Dashboard -----

class MonthlyRevenue(BaseModel):
    month: str
    amount: Decimal


class LandlordSummary(BaseModel):
    total_properties: int
    occupied: int
    vacant: int
    total_revenue: Decimal
    revenue_by_month: list[MonthlyRevenue]
    maintenance: dict[str, int]


class TenantSummary(BaseModel):
    active_leases: int
    leases_awaiting_signature: int
    pending_payments: int
    amount_due: Decimal
    next_due_date: date | None = None
    open_maintenance: int


class TenantOut(BaseModel):
    tenant_id: str
    lease_id: str
    lease_status: str
    property_id: str
    property_name: str | None = None
    property_address: str | None = None
    start_date: date
    end_date: date
    monthly_rent: Decimal


# ----- Integrations / jobs -----

class IntegrationCreate(BaseModel):
    name: str
    type: Literal["webhook"] = "webhook"
    enabled: bool = True
    url: str
    secret: str | None = None


class IntegrationOut(BaseModel):
    id: int
    name: str
    type: str
    enabled: bool
    created_at: datetime


class DispatchResult(BaseModel):
    delivered: int
    failed: int
    sinks: int | None = None
    events: int | None = None
    skipped_no_sinks: int | None = None
