# app/domain/errors.py
from __future__ import annotations


class LeaseflowError(Exception):
    """
    Base for every failure a use case reports to its caller.

    `kind` is the stable machine-readable failure name; `detail` is the
    human-readable explanation the UI layer may show.
    """

    kind = "error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def as_dict(self) -> dict[str, str]:
        return {"error": self.kind, "detail": self.detail}


class NotFound(LeaseflowError):
    kind = "not_found"


class Unauthorized(LeaseflowError):
    kind = "unauthorized"


class InvalidState(LeaseflowError):
    kind = "invalid_state"


class ValidationFailed(LeaseflowError):
    kind = "validation_failed"


class VersionConflict(LeaseflowError):
    kind = "version_conflict"
