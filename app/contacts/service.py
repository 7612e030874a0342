"""Permanent deletion of a WhatsApp contact and its dependent records.

A request goes through four stages, each of which can end it:

1. Identity Resolution (done by :mod:`app.core.auth` before the service runs)
2. Authorization Check: the caller needs any one of :data:`DELETION_ROLES`.
3. Target Resolution: the conversation must exist.
4. Cascading Delete: messages, read markers, the conversation and then,
   optionally, the linked lead.

The cascade is not atomic. Every step commits on its own and a failure at
step N leaves steps 1..N-1 applied; :class:`~app.core.errors.CascadeStepError`
names the failed step and the server log records the committed counts.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from ..core.auth import CallerIdentity
from ..core.errors import (
    CascadeStep,
    CascadeStepError,
    ForbiddenError,
    InternalError,
    InvalidRequestError,
    NotFoundError,
)
from .models import ConversationTarget, DeletionResult
from .repository import ContactStore
from .schemas import DeleteContactRequest

logger = logging.getLogger(__name__)

DELETION_ROLES: frozenset[str] = frozenset({"admin", "broker", "attendant"})


class ContactDeletionService:
    """Runs the authorization, target resolution and cascade stages."""

    def __init__(
        self,
        store: ContactStore,
        *,
        permitted_roles: Iterable[str] = DELETION_ROLES,
    ) -> None:
        self._store = store
        self._permitted_roles = frozenset(permitted_roles)

    @property
    def permitted_roles(self) -> frozenset[str]:
        return self._permitted_roles

    def delete_contact(
        self, identity: CallerIdentity, request: DeleteContactRequest
    ) -> DeletionResult:
        """Delete the requested conversation on behalf of ``identity``."""

        conversation_id = self._require_conversation_id(request)
        self.authorize(identity)
        delete_lead = request.should_delete_lead()
        target = self.resolve_target(identity, conversation_id, delete_lead=delete_lead)
        return self.cascade_delete(target, delete_lead=delete_lead)

    # ------------------------------------------------------------------
    # Stages

    def authorize(self, identity: CallerIdentity) -> str:
        """Return one permitted role held by the caller.

        Which role matched carries no meaning; holding one is the same as
        holding all of them.

        Raises:
            ForbiddenError: When the caller holds none of the permitted roles.
            InternalError: When the role lookup itself fails.
        """

        try:
            role = self._store.find_role(identity.subject, self._permitted_roles)
        except Exception as exc:
            logger.exception(
                "Role check failed", extra={"requested_by": identity.subject}
            )
            raise InternalError("Permission check failed") from exc
        if role is None:
            raise ForbiddenError("Forbidden")
        return role

    def resolve_target(
        self,
        identity: CallerIdentity,
        conversation_id: str,
        *,
        delete_lead: bool,
    ) -> ConversationTarget:
        """Load the conversation and record the deletion intent.

        The audit entry is written before any delete is issued so the intent
        is on record even if the cascade fails later.

        Raises:
            NotFoundError: When no conversation has ``conversation_id``.
            InternalError: When the lookup fails.
        """

        try:
            target = self._store.fetch_conversation(conversation_id)
        except Exception as exc:
            logger.exception(
                "Failed to fetch conversation",
                extra={"conversation_id": conversation_id},
            )
            raise InternalError("Failed to fetch conversation") from exc
        if target is None:
            raise NotFoundError("Conversation not found")

        logger.info(
            "Deleting contact",
            extra={
                "requested_by": identity.subject,
                "conversation_id": target.id,
                "phone": target.phone,
                "whatsapp_id": target.whatsapp_id,
                "lead_id": target.lead_id,
                "delete_lead": delete_lead,
            },
        )
        return target

    def cascade_delete(
        self, target: ConversationTarget, *, delete_lead: bool
    ) -> DeletionResult:
        """Delete dependents, then the conversation, then optionally the lead.

        Steps run strictly in order and each one waits for the previous
        outcome. The lead step only runs when ``delete_lead`` is set and the
        conversation carried a ``lead_id``.

        Raises:
            CascadeStepError: When a step fails. Earlier steps stay committed.
        """

        steps: list[tuple[CascadeStep, Callable[[str], int], str]] = [
            (CascadeStep.MESSAGES, self._store.delete_messages, target.id),
            (CascadeStep.READS, self._store.delete_reads, target.id),
            (CascadeStep.CONVERSATION, self._store.delete_conversation, target.id),
        ]
        if delete_lead and target.lead_id:
            steps.append((CascadeStep.LEAD, self._store.delete_lead, target.lead_id))

        counts: dict[CascadeStep, int] = {}
        for step, operation, key in steps:
            try:
                counts[step] = operation(key)
            except Exception as exc:
                logger.exception(
                    "Cascade delete failed",
                    extra={
                        "conversation_id": target.id,
                        "failed_step": step.value,
                        "committed": {s.value: n for s, n in counts.items()},
                    },
                )
                raise CascadeStepError(step, counts) from exc

        result = DeletionResult(
            messages_deleted=counts.get(CascadeStep.MESSAGES, 0),
            reads_deleted=counts.get(CascadeStep.READS, 0),
            conversations_deleted=counts.get(CascadeStep.CONVERSATION, 0),
            lead_deleted=counts.get(CascadeStep.LEAD, 0),
        )
        logger.info(
            "Contact deleted",
            extra={
                "conversation_id": target.id,
                "messages_deleted": result.messages_deleted,
                "reads_deleted": result.reads_deleted,
                "conversations_deleted": result.conversations_deleted,
                "lead_deleted": result.lead_deleted,
            },
        )
        return result

    # ------------------------------------------------------------------
    # Helpers

    @staticmethod
    def _require_conversation_id(request: DeleteContactRequest) -> str:
        # Blank means missing; anything else is an opaque key used verbatim.
        if request.conversation_id is None or not request.conversation_id.strip():
            raise InvalidRequestError("conversation_id is required")
        return request.conversation_id
