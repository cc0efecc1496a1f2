# app/domain/policies.py
from __future__ import annotations

from .types import ApplicationStatus, LeaseStatus, MaintenanceStatus


# A lease in one of these states occupies its property.
OCCUPYING_LEASE_STATUSES: tuple[LeaseStatus, ...] = (LeaseStatus.active, LeaseStatus.signed)

# An application in one of these states holds its property.
HOLDING_APPLICATION_STATUSES: tuple[ApplicationStatus, ...] = (ApplicationStatus.approved,)

RESOLUTIONS: set[ApplicationStatus] = {ApplicationStatus.approved, ApplicationStatus.rejected}

_MAINTENANCE_ORDER: dict[MaintenanceStatus, int] = {
    MaintenanceStatus.open: 1,
    MaintenanceStatus.in_progress: 2,
    MaintenanceStatus.completed: 3,
}


def is_available(approved_applications: int, occupying_leases: int) -> bool:
    return approved_applications == 0 and occupying_leases == 0


def maintenance_transition_allowed(current: MaintenanceStatus, new: MaintenanceStatus) -> bool:
    """Forward-only: open -> in_progress -> completed (open -> completed allowed)."""
    return _MAINTENANCE_ORDER[new] > _MAINTENANCE_ORDER[current]
