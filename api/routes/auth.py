"""Fitbit OAuth routes - start the consent flow and receive its callback"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse, RedirectResponse
import logging

from api.dependencies import get_token_manager
from api.middleware import error_body
from app.exceptions import ServiceValidationError, UpstreamAuthError
from services.token_service import TokenManager

router = APIRouter(prefix="/auth", tags=["Auth"])
logger = logging.getLogger("mealbridge.api.auth")


@router.get("/start")
def start_authorization(tokens: TokenManager = Depends(get_token_manager)):
    """Redirect the browser to the Fitbit consent screen"""
    return RedirectResponse(tokens.build_authorization_url(), status_code=status.HTTP_302_FOUND)


@router.get("/callback")
def authorization_callback(
    code: Optional[str] = Query(None, description="Authorization code from Fitbit"),
    error: Optional[str] = Query(None, description="Set by Fitbit when consent was denied"),
    tokens: TokenManager = Depends(get_token_manager),
):
    """Exchange the authorization code for the first token pair"""
    if error:
        raise ServiceValidationError(f"Authorization was not granted: {error}")
    if not code:
        raise ServiceValidationError("Missing code parameter")

    try:
        tokens.exchange_authorization_code(code)
    except UpstreamAuthError as exc:
        logger.error("Token exchange failed with HTTP %s", exc.status)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(
                {
                    "code": "TOKEN_EXCHANGE_FAILED",
                    "message": exc.message,
                    "details": exc.details,
                }
            ),
        )
    return {"success": True, "message": "Tokens saved successfully"}
