"""API dependencies for authentication and service wiring.

The authorization decision itself is made once per request by
:class:`~sleepplanet.middleware.auth.AuthGuardMiddleware`. The dependencies
here turn the stored decision into either Claims or the matching error, the
same way for every endpoint.
"""
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from sleepplanet.database import get_db
from sleepplanet.errors import ForbiddenError, InternalError, UnauthorizedError
from sleepplanet.middleware.auth import Authorized, Forbidden, Unauthorized
from sleepplanet.services.account_store import AccountStore
from sleepplanet.services.admin_lifecycle import AdminLifecycleService
from sleepplanet.utils.jwt_utils import Claims, TokenErrorKind

UNAUTHORIZED_MESSAGE = "credential missing, please log in"

FORBIDDEN_MESSAGES = {
    TokenErrorKind.EXPIRED: "credential expired, please log in again",
    TokenErrorKind.BAD_SIGNATURE: "invalid credential, please log in again",
    TokenErrorKind.MALFORMED: "malformed credential, please check the request format",
}


def require_authorized(request: Request) -> Claims:
    """Return the caller's Claims or raise the error matching the auth state.

    Unauthorized → 401; Forbidden(expired | bad_signature | malformed) → 403
    with a tailored message; Forbidden(other) → internal error.
    """
    state = getattr(request.state, "auth", None) or Unauthorized()

    if isinstance(state, Authorized):
        return state.claims

    if isinstance(state, Forbidden):
        message = FORBIDDEN_MESSAGES.get(state.kind)
        if message is None:
            raise InternalError(f"authentication processing failed ({state.kind.value})")
        raise ForbiddenError(message, kind=state.kind.value)

    raise UnauthorizedError(UNAUTHORIZED_MESSAGE)


def get_account_store(db: Session = Depends(get_db)) -> AccountStore:
    return AccountStore(db)


def get_lifecycle_service(
    request: Request,
    store: AccountStore = Depends(get_account_store),
) -> AdminLifecycleService:
    return AdminLifecycleService(
        store=store,
        hasher=request.app.state.password_hasher,
        tokens=request.app.state.token_service,
    )
