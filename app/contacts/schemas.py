"""Pydantic schemas for the contact deletion API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, StrictBool, ValidationError

from ..core.errors import InvalidRequestError
from .models import DeletionResult

_FIELD_ERRORS = {
    "conversation_id": "conversation_id must be a string",
    "delete_lead": "delete_lead must be a boolean",
}


class DeleteContactRequest(BaseModel):
    """Body of a deletion request.

    ``delete_lead`` keeps the three states of the wire format: ``True``,
    ``False`` or ``None`` when the caller omitted it. Use
    :meth:`should_delete_lead` to apply the default.
    """

    model_config = ConfigDict(extra="ignore")

    conversation_id: str | None = None
    delete_lead: StrictBool | None = None

    def should_delete_lead(self) -> bool:
        """Absent means yes; only an explicit ``false`` keeps the lead."""

        return self.delete_lead is not False

    @classmethod
    def from_body(cls, body: Any) -> DeleteContactRequest:
        """Validate a decoded JSON body.

        Anything that is not a JSON object is treated as an empty body, which
        later fails the ``conversation_id`` requirement.

        Raises:
            InvalidRequestError: If a field has the wrong type.
        """

        if not isinstance(body, dict):
            body = {}
        try:
            return cls.model_validate(body)
        except ValidationError as exc:
            field = str(exc.errors()[0]["loc"][0])
            raise InvalidRequestError(
                _FIELD_ERRORS.get(field, f"{field} is invalid")
            ) from exc


class DeleteContactResponse(BaseModel):
    ok: bool = True
    messages_deleted: int
    reads_deleted: int
    conversations_deleted: int
    lead_deleted: int

    @classmethod
    def from_result(cls, result: DeletionResult) -> DeleteContactResponse:
        return cls(
            messages_deleted=result.messages_deleted,
            reads_deleted=result.reads_deleted,
            conversations_deleted=result.conversations_deleted,
            lead_deleted=result.lead_deleted,
        )


class ErrorResponse(BaseModel):
    error: str
