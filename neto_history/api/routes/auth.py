"""
Neto OAuth installation routes.

Handles:
- GET /auth/install: Initiate OAuth flow
- GET /auth/callback: Complete OAuth flow and store the credential
- GET /auth/success: Confirmation page

SECURITY: These routes carry no store Origin; the OAuth state provides
CSRF protection.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import PlainTextResponse, RedirectResponse

from neto_history.api.dependencies import get_oauth_service
from neto_history.platform.errors import OAuthError
from neto_history.services.oauth_service import NetoOAuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/install")
async def install(oauth_service: NetoOAuthService = Depends(get_oauth_service)):
    """Redirect the merchant to Neto's authorization page."""
    auth_url = await oauth_service.create_authorization_url()
    logger.info("Redirecting to Neto OAuth")
    return RedirectResponse(url=auth_url, status_code=status.HTTP_302_FOUND)


@router.get("/callback")
async def callback(
    code: Optional[str] = Query(default=None),
    state: Optional[str] = Query(default=None),
    error: Optional[str] = Query(default=None),
    oauth_service: NetoOAuthService = Depends(get_oauth_service),
):
    """Complete the authorization-code exchange."""
    if error or not code:
        logger.warning("OAuth callback without code", extra={"oauth_error": error})
        raise OAuthError("Authorization was not granted", details={"reason": error or "missing_code"})

    await oauth_service.complete_authorization(code, state)
    return RedirectResponse(url="/auth/success", status_code=status.HTTP_302_FOUND)


@router.get("/success", response_class=PlainTextResponse)
async def success():
    return "Successfully authenticated!"
