"""
Acting identity

Authentication happens upstream; the authenticator forwards the caller as
X-User-Id / X-User-Role headers. This module turns those headers into an
ActingIdentity and hands routes the application's LedgerService.
"""
import logging
from typing import Optional

from fastapi import Header, Request

from ledger.errors import LedgerError
from ledger.schemas import ActingIdentity, parse_payload
from ledger.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"
USER_ROLE_HEADER = "X-User-Role"


class IdentityRequiredError(LedgerError):
    """The request carries no acting identity."""

    code = "UNAUTHENTICATED"
    status_code = 401


async def get_actor(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> ActingIdentity:
    """
    Build the acting identity from the forwarded headers.

    Raises:
        IdentityRequiredError: If either header is missing
        ValidationFailedError: If the id is not an integer or the role is unknown
    """
    if x_user_id is None or x_user_role is None:
        raise IdentityRequiredError(
            "Acting identity missing",
            {"headers": [USER_ID_HEADER, USER_ROLE_HEADER]},
        )
    return parse_payload(ActingIdentity, {"user_id": x_user_id, "role": x_user_role.lower()})


def get_service(request: Request) -> LedgerService:
    return request.app.state.service
