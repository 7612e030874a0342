"""Contact deletion service, store and schemas."""

from . import schemas
from .models import ConversationTarget, DeletionResult
from .repository import ContactStore, SqlAlchemyContactStore
from .service import DELETION_ROLES, ContactDeletionService

__all__ = [
    "ContactDeletionService",
    "ContactStore",
    "ConversationTarget",
    "DELETION_ROLES",
    "DeletionResult",
    "SqlAlchemyContactStore",
    "schemas",
]
