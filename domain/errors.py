"""
Domain: error taxonomy.

Every core operation fails with exactly one of these. They are reported to the
caller and never swallowed by the core.
"""

from __future__ import annotations


class LeadDeskError(Exception):
    """Base class for failures raised by the lead management core."""


class ValidationError(LeadDeskError):
    """Malformed or missing required input. Recoverable by resubmission."""


class AuthorizationError(LeadDeskError):
    """
    The actor may not perform the operation.

    The message is always the same generic text so callers cannot learn whether
    the resource exists or which rule failed. The internal reason is kept on
    the instance for logging only.
    """

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason
        super().__init__("Not authorized")


class NotFoundError(LeadDeskError):
    """An id does not resolve to an existing record."""

    def __init__(self, resource: str, resource_id: object) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found")


class ConflictError(LeadDeskError):
    """The operation would break a system invariant (e.g. removing the last admin)."""


class InvalidCredentialsError(LeadDeskError):
    """Login failed. Unknown email and wrong password are reported identically."""

    def __init__(self) -> None:
        super().__init__("Invalid email or password")


class PersistenceError(RuntimeError):
    """
    Unexpected failure reported by the store.

    Distinct from the four caller-facing errors above; logged internally and
    surfaced to callers as an opaque internal error.
    """


__all__ = [
    "LeadDeskError",
    "ValidationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "InvalidCredentialsError",
    "PersistenceError",
]
