"""Contact deletion API route."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response

from ..contacts.repository import ContactStore, SqlAlchemyContactStore
from ..contacts.schemas import DeleteContactRequest, DeleteContactResponse, ErrorResponse
from ..contacts.service import ContactDeletionService
from ..core.auth import CallerIdentity, get_caller_identity
from ..core.errors import InternalError
from ..models.session import get_default_engine
from ..rate_limit import DELETE_CONTACT_RATE_LIMIT, limiter

router = APIRouter(tags=["contacts"])

logger = logging.getLogger(__name__)

DELETE_CONTACT_PATH = "/api/delete-whatsapp-contact"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def get_contact_store() -> ContactStore:
    """Return a store bound to the lazily created shared engine."""

    try:
        engine = get_default_engine()
    except RuntimeError as exc:
        logger.error("Contact store unavailable: %s", exc)
        raise InternalError("Server misconfigured") from exc
    return SqlAlchemyContactStore(engine)


def get_contact_service(
    store: ContactStore = Depends(get_contact_store),
) -> ContactDeletionService:
    return ContactDeletionService(store)


async def read_delete_request(request: Request) -> DeleteContactRequest:
    """Decode the JSON body; an unreadable body counts as empty."""

    try:
        body = await request.json()
    except ValueError:
        body = {}
    return DeleteContactRequest.from_body(body)


CallerDep = Annotated[CallerIdentity, Depends(get_caller_identity)]
DeleteRequestDep = Annotated[DeleteContactRequest, Depends(read_delete_request)]
ServiceDep = Annotated[ContactDeletionService, Depends(get_contact_service)]


@router.options(DELETE_CONTACT_PATH, include_in_schema=False)
def delete_contact_preflight() -> Response:
    """Answer bare preflight requests with an empty body and permissive CORS headers."""

    return Response(status_code=200, headers=CORS_HEADERS)


@router.post(
    DELETE_CONTACT_PATH,
    response_model=DeleteContactResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
@limiter.limit(DELETE_CONTACT_RATE_LIMIT)
def delete_whatsapp_contact(
    request: Request,
    identity: CallerDep,
    payload: DeleteRequestDep,
    service: ServiceDep,
) -> DeleteContactResponse:
    """Delete a conversation, its messages and read markers, and optionally its lead.

    Dependencies resolve in declaration order: the caller is authenticated
    before the body is validated, and the store is only touched once both
    succeeded. The route runs in the worker thread pool, so a client
    disconnect does not interrupt a delete that is already in flight.
    """

    result = service.delete_contact(identity, payload)
    return DeleteContactResponse.from_result(result)
