"""FastAPI dependencies exposing the process-wide hand-off components."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from handoff.core.settings import SsoSettings
from handoff.sso.service import SsoService

_security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> SsoSettings:
    return request.app.state.settings


def get_sso_service(request: Request) -> SsoService:
    return request.app.state.sso_service


async def bearer_assertion(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_security)],
) -> str | None:
    """Return the Bearer token from the Authorization header, if any."""
    if credentials is None or not credentials.credentials:
        return None
    return credentials.credentials
