# app/service_layer/guards.py
from __future__ import annotations

from typing import Any

from ..domain.errors import Unauthorized
from ..domain.types import Caller, Role


def require_role(caller: Caller, role: Role, action: str) -> None:
    if caller.role != role:
        raise Unauthorized(f"only a {role.value} may {action}")


def require_party(caller: Caller, expected_user_id: str | None, action: str) -> None:
    if not expected_user_id or caller.user_id != expected_user_id:
        raise Unauthorized(f"user {caller.user_id!r} may not {action}")


def party_filter_field(caller: Caller) -> str:
    """Column that scopes list views to the caller's own records."""
    return "landlord_id" if caller.role == Role.landlord else "tenant_id"


def record_party(record: Any, role: Role) -> str | None:
    return getattr(record, "landlord_id" if role == Role.landlord else "tenant_id", None)
