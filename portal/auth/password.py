# portal/auth/password.py
from fastapi import APIRouter, Depends, HTTPException

from portal.auth.dependencies import get_authorization_context, get_portal_session
from portal.auth.identity import AuthorizationContext
from portal.auth.registry import PortalSession, SessionRegistry, get_registry
from portal.auth.signup import MIN_PASSWORD_LENGTH
from portal.config import PORTAL_BASE_URL
from portal.errors import AuthorizationDenied
from portal.schemas.auth_schema import (
    PasswordChangeSchema,
    PasswordResetCompleteSchema,
    PasswordResetRequestSchema,
)

router = APIRouter(prefix="/auth", tags=["auth"])


def _check_length(password: str):
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


@router.post("/password")
async def change_password(
    body: PasswordChangeSchema,
    portal: PortalSession = Depends(get_portal_session),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    if context.is_dev_bypass:
        raise AuthorizationDenied("This account has no password to change")
    _check_length(body.new_password)
    await portal.auth.update_password(body.new_password)
    return {"status": "updated"}


@router.post("/password-reset")
async def request_password_reset(
    body: PasswordResetRequestSchema,
    registry: SessionRegistry = Depends(get_registry),
):
    await registry.auth_client().reset_password_for_email(body.email, PORTAL_BASE_URL + "/reset-password")
    # same answer whether or not the address exists
    return {"status": "sent"}


@router.post("/password-reset/complete")
async def complete_password_reset(
    body: PasswordResetCompleteSchema,
    registry: SessionRegistry = Depends(get_registry),
):
    _check_length(body.new_password)
    await registry.auth_client().complete_password_reset(body.token, body.new_password)
    return {"status": "updated", "redirect": "/auth/login"}
