# app/domain/types.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum


class Role(str, Enum):
    landlord = "landlord"
    tenant = "tenant"


class ApplicationStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class LeaseStatus(str, Enum):
    draft = "draft"
    pending_signature = "pending_signature"
    signed = "signed"
    rejected = "rejected"
    # imported leases already in force; no lifecycle operation produces it
    active = "active"


class PaymentStatus(str, Enum):
    pending = "pending"
    completed = "completed"


class MaintenanceStatus(str, Enum):
    open = "open"
    in_progress = "in_progress"
    completed = "completed"


class MaintenancePriority(str, Enum):
    low = "low"
    normal = "normal"
    high = "high"
    emergency = "emergency"


class MaintenanceCategory(str, Enum):
    general = "general"
    plumbing = "plumbing"
    electrical = "electrical"
    hvac = "hvac"
    appliance = "appliance"
    structural = "structural"


@dataclass(frozen=True)
class Caller:
    """Identity of whoever invokes a use case. Always passed explicitly."""

    user_id: str
    role: Role


@dataclass(frozen=True)
class EmploymentInfo:
    employment_status: str | None = None
    employer: str | None = None
    monthly_income: Decimal | None = None
    employment_length: str | None = None


@dataclass(frozen=True)
class Reference:
    name: str
    relationship: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class LeaseOptions:
    terms: str
    monthly_rent: Decimal
    security_deposit: Decimal
    start_date: date
    end_date: date
    tenant_id: str | None = None
    application_id: str | None = None
    document_url: str | None = None


@dataclass(frozen=True)
class Signatures:
    tenant: bool = False
    landlord: bool = False

    def both(self) -> bool:
        return self.tenant and self.landlord


@dataclass(frozen=True)
class PropertyFilters:
    text: str | None = None
    city: str | None = None
    min_rent: Decimal | None = None
    max_rent: Decimal | None = None
    property_type: str | None = None
    min_bedrooms: int | None = None
    include_unavailable: bool = False
