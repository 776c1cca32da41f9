"""Response bodies of the hand-off endpoints."""

from pydantic import BaseModel


class LoginRedirectResponse(BaseModel):
    """Successful POST /request-sso: where to send the browser."""

    redirect: str


class LegacyTokenResponse(BaseModel):
    """Successful GET /request-token."""

    success: bool = True
    redirect: str


class MessageResponse(BaseModel):
    """Error body for the JSON endpoints."""

    message: str


class LegacyErrorResponse(MessageResponse):
    """Error body for GET /request-token."""

    success: bool = False
