"""Login, logout and current-admin endpoints"""
from fastapi import APIRouter, Depends, Request, Response
from slowapi import Limiter

from sleepplanet.api.deps import get_lifecycle_service, require_authorized
from sleepplanet.schemas.admin_user import CurrentAdmin, LoginRequest, LoginResult, MessageResponse
from sleepplanet.services.admin_lifecycle import AdminLifecycleService
from sleepplanet.utils.jwt_utils import Claims
from sleepplanet.utils.logger import logger

router = APIRouter(prefix="/sys", tags=["authentication"])


def build_login_router(limiter: Limiter, login_limit: str) -> APIRouter:
    """Router for ``POST /sys/login`` throttled by the application's own limiter."""
    login_router = APIRouter(prefix="/sys", tags=["authentication"])

    @login_router.post("/login", response_model=LoginResult)
    @limiter.limit(login_limit)
    def login(
        request: Request,
        response: Response,
        data: LoginRequest,
        service: AdminLifecycleService = Depends(get_lifecycle_service),
    ) -> LoginResult:
        """Exchange username and password for a signed token.

        The token is returned in the body and also set as an http-only cookie so
        browser clients need not handle it.
        """
        result = service.login(data.username, data.password)

        settings = request.app.state.settings
        response.set_cookie(
            key=settings.JWT_COOKIE_NAME,
            value=result.token,
            max_age=service.tokens.expires_in,
            path="/",
            httponly=True,
        )
        return result

    return login_router


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    response: Response,
    claims: Claims = Depends(require_authorized),
) -> MessageResponse:
    """Clear the credential cookie. The token itself stays valid until it expires."""
    response.delete_cookie(key=request.app.state.settings.JWT_COOKIE_NAME, path="/")
    logger.info(
        "Admin logged out",
        extra={"admin_id": claims.admin_id, "username": claims.username, "action": "logout"},
    )
    return MessageResponse(message="logged out")


@router.get("/me", response_model=CurrentAdmin)
def current_admin(claims: Claims = Depends(require_authorized)) -> CurrentAdmin:
    """Return the identity carried by the caller's token."""
    return CurrentAdmin(
        admin_id=claims.admin_id,
        username=claims.username,
        roles=claims.roles,
        exp=claims.exp,
    )
