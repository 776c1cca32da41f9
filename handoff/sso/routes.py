"""Hand-off endpoints: assertion in, one-time login link out, session on redeem."""

import logging
import secrets
from typing import Annotated
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel
from starlette.responses import JSONResponse

from handoff.api.deps import bearer_assertion, get_settings, get_sso_service
from handoff.api.schemas import (
    LegacyErrorResponse,
    LegacyTokenResponse,
    LoginRedirectResponse,
    MessageResponse,
)
from handoff.core.settings import SsoSettings
from handoff.sso.errors import (
    InvalidClaimError,
    KeyFetchError,
    MalformedAssertionError,
    SignatureInvalidError,
    TokenCollisionError,
    TokenNotFoundError,
    UnsupportedAlgorithmError,
    UserNotFoundError,
)
from handoff.sso.service import SsoService

logger = logging.getLogger(__name__)

router = APIRouter()

HTTP_BAD_REQUEST = 400
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_SERVER_ERROR = 500
HTTP_NOT_IMPLEMENTED = 501
HTTP_FOUND = 302

LOGIN_ROUTE_NAME = "sso_login"
INTENDED_URL_KEY = "url.intended"


def _message(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        MessageResponse(message=message).model_dump(), status_code=status_code
    )


def _login_path(request: Request, token: str) -> str:
    return str(request.app.url_path_for(LOGIN_ROUTE_NAME, token=token))


@router.post("/request-sso", response_model=None)
async def request_login(
    request: Request,
    service: Annotated[SsoService, Depends(get_sso_service)],
    assertion: Annotated[str | None, Depends(bearer_assertion)],
) -> LoginRedirectResponse | JSONResponse:
    """POST /request-sso -- trade a signed assertion for a login link."""
    if not assertion:
        return _message(
            "No JWS token provided in Authorization header.", HTTP_BAD_REQUEST
        )

    try:
        token = await service.request_login(assertion)
    except KeyFetchError:
        return _message("Failed to fetch public key", HTTP_NOT_IMPLEMENTED)
    except InvalidClaimError as exc:
        return _message(
            f'Invalid token. Claim "{exc.claim}" is invalid.', HTTP_FORBIDDEN
        )
    except (UnsupportedAlgorithmError, SignatureInvalidError):
        return _message("Invalid token", HTTP_FORBIDDEN)
    except MalformedAssertionError as exc:
        logger.error("Malformed JWS: %s", exc)
        return _message("Token validation failed", HTTP_FORBIDDEN)
    except TokenCollisionError:
        logger.error("Could not mint a unique exchange token")
        return _message("Something went wrong, please try again.", HTTP_SERVER_ERROR)

    return LoginRedirectResponse(redirect=_login_path(request, token))


def _error_redirect(settings: SsoSettings, message: str) -> RedirectResponse:
    query = urlencode({"error": message})
    return RedirectResponse(
        url=f"{settings.error_redirect_path}?{query}", status_code=HTTP_FOUND
    )


def _safe_intended(value: object) -> str | None:
    """Accept only same-origin absolute paths as post-login targets."""
    if isinstance(value, str) and value.startswith("/") and not value.startswith("//"):
        return value
    return None


@router.get("/sso/{token}", name=LOGIN_ROUTE_NAME)
async def handle(
    token: str,
    request: Request,
    service: Annotated[SsoService, Depends(get_sso_service)],
    settings: Annotated[SsoSettings, Depends(get_settings)],
) -> RedirectResponse:
    """GET /sso/{token} -- redeem a login link and start the session."""
    try:
        user = await service.redeem(token)
        intended = _safe_intended(request.session.get(INTENDED_URL_KEY))
        # Drop any pre-login session state before binding the user.
        request.session.clear()
        request.session["user_id"] = user.id
    except TokenNotFoundError:
        return _error_redirect(settings, "Token does not exist or has expired.")
    except UserNotFoundError:
        return _error_redirect(settings, "User not found.")
    except Exception:
        logger.exception("Unexpected error during SSO login")
        return _error_redirect(settings, "Something went wrong, please try again.")

    if intended is not None:
        return RedirectResponse(url=intended, status_code=HTTP_FOUND)
    if user.is_admin:
        return RedirectResponse(url=settings.admin_redirect_path, status_code=HTTP_FOUND)
    return RedirectResponse(url=settings.home_redirect_path, status_code=HTTP_FOUND)


class _LegacyTokenQuery(BaseModel):
    """Query params of the shared-secret token endpoint."""

    sso_secret: str = ""
    user_id: str = ""


def _legacy_error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        LegacyErrorResponse(message=message).model_dump(), status_code=status_code
    )


@router.get("/request-token", response_model=None, deprecated=True)
async def request_token(
    request: Request,
    service: Annotated[SsoService, Depends(get_sso_service)],
    settings: Annotated[SsoSettings, Depends(get_settings)],
    q: Annotated[_LegacyTokenQuery, Query()],
) -> LegacyTokenResponse | JSONResponse:
    """GET /request-token -- shared-secret login link (superseded by JWS)."""
    if not settings.shared_secret:
        return _legacy_error("Please configure a SSO Secret.", HTTP_FORBIDDEN)
    if not secrets.compare_digest(
        q.sso_secret.encode(), settings.shared_secret.encode()
    ):
        return _legacy_error("Please provide valid credentials.", HTTP_FORBIDDEN)
    if not (q.user_id.isascii() and q.user_id.isdigit()):
        return _legacy_error("Invalid user ID.", HTTP_BAD_REQUEST)

    user = await service.find_user(int(q.user_id))
    if user is None:
        return _legacy_error("User not found.", HTTP_NOT_FOUND)
    if user.use_totp:
        return _legacy_error(
            "Logging into accounts with 2 Factor Authentication enabled "
            "is not supported.",
            HTTP_NOT_IMPLEMENTED,
        )

    token = await service.issue_token(user.id)
    return LegacyTokenResponse(redirect=_login_path(request, token))
