"""Authorization guard.

Decides once per request whether the caller presented a usable credential and
stores the outcome on ``request.state.auth`` as one of three variants:

* :class:`Unauthorized`: no credential found (header, query or cookie).
* :class:`Forbidden`: a credential was found but rejected; ``kind`` says why.
* :class:`Authorized`: the credential verified; ``claims`` holds its payload.

Handlers never look at tokens themselves; they consume the stored variant
through :func:`sleepplanet.api.deps.require_authorized`.
"""
from dataclasses import dataclass
from typing import Callable, Optional, Union

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from sleepplanet.middleware.monitoring import record_auth_failure
from sleepplanet.utils.jwt_utils import Claims, TokenError, TokenErrorKind, TokenService
from sleepplanet.utils.logger import logger


@dataclass(frozen=True)
class Authorized:
    claims: Claims


@dataclass(frozen=True)
class Unauthorized:
    pass


@dataclass(frozen=True)
class Forbidden:
    kind: TokenErrorKind


AuthState = Union[Authorized, Unauthorized, Forbidden]


def extract_token(request: Request, query_param: str, cookie_name: str) -> Optional[str]:
    """Find the bearer credential: ``Authorization`` header, then query parameter, then cookie."""
    header = request.headers.get("authorization")
    if header:
        scheme, _, value = header.partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            return value.strip()

    token = request.query_params.get(query_param)
    if token:
        return token

    return request.cookies.get(cookie_name) or None


def decide(token: Optional[str], tokens: TokenService) -> AuthState:
    """Classify a (possibly absent) credential into one of the three auth states."""
    if token is None:
        return Unauthorized()
    try:
        return Authorized(tokens.validate(token))
    except TokenError as exc:
        return Forbidden(exc.kind)


class AuthGuardMiddleware(BaseHTTPMiddleware):
    """Attach the request's :data:`AuthState` to ``request.state.auth``."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        settings = request.app.state.settings
        token = extract_token(request, settings.JWT_QUERY_PARAM, settings.JWT_COOKIE_NAME)
        state = decide(token, request.app.state.token_service)

        if isinstance(state, Forbidden):
            record_auth_failure(state.kind.value)
            logger.warning(
                f"Credential rejected: {state.kind.value}",
                extra={"path": request.url.path, "reason": state.kind.value},
            )

        request.state.auth = state
        return await call_next(request)
