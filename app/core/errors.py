"""Error taxonomy for the contact deletion pipeline.

Every stage of a deletion request fails with exactly one of the kinds defined
here. Each kind carries the HTTP status it maps to and a short message that is
safe to return to the caller; store exceptions are chained through
``__cause__`` for server-side logging only.
"""

from __future__ import annotations

from enum import Enum

__all__ = [
    "CascadeStep",
    "CascadeStepError",
    "ContactDeletionError",
    "ForbiddenError",
    "InternalError",
    "InvalidRequestError",
    "NotFoundError",
    "UnauthenticatedError",
]


class ContactDeletionError(Exception):
    """Base class for terminal outcomes of a deletion request."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, str]:
        return {"error": self.message}


class InvalidRequestError(ContactDeletionError):
    """Malformed or missing request input."""

    status_code = 400


class UnauthenticatedError(ContactDeletionError):
    """Missing, malformed or unverifiable credential."""

    status_code = 401


class ForbiddenError(ContactDeletionError):
    """Valid credential without a permitted role."""

    status_code = 403


class NotFoundError(ContactDeletionError):
    """The target conversation does not exist."""

    status_code = 404


class InternalError(ContactDeletionError):
    """Unexpected collaborator failure or misconfiguration."""

    status_code = 500


class CascadeStep(str, Enum):
    """Steps of the cascading delete, in execution order."""

    MESSAGES = "messages"
    READS = "reads"
    CONVERSATION = "conversation"
    LEAD = "lead"


class CascadeStepError(InternalError):
    """A delete step failed after the previous steps were committed.

    Attributes:
        step: The step that raised.
        completed: Row counts of the steps that had already committed. They
            are not rolled back.
    """

    def __init__(self, step: CascadeStep, completed: dict[CascadeStep, int]) -> None:
        super().__init__(f"Failed to delete {step.value}")
        self.step = step
        self.completed = dict(completed)
