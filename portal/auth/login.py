# portal/auth/login.py
import logging

from fastapi import APIRouter, Depends, Request

from portal.auth.dependencies import SESSION_KEY, session_handle, get_portal_session
from portal.auth.registry import PortalSession, SessionRegistry, get_registry
from portal.errors import PortalError
from portal.schemas.auth_schema import LoginSchema

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _login_response(context):
    return {
        "redirect": "/dashboard",
        "role": context.role.value,
        "name": context.profile.name,
        "dev_bypass": context.is_dev_bypass,
    }


@router.post("/login")
async def login_post(
    request: Request,
    body: LoginSchema,
    registry: SessionRegistry = Depends(get_registry),
):
    # a new login always starts from a fresh portal session
    registry.discard(session_handle(request))
    request.session.pop(SESSION_KEY, None)

    portal = registry.create()
    try:
        context = await portal.sign_in(body.email, body.password)
    except PortalError:
        registry.discard(portal.handle)
        raise

    request.session[SESSION_KEY] = portal.handle
    logger.info("login ok role=%s bypass=%s", context.role.value, context.is_dev_bypass)
    return _login_response(context)


@router.post("/refresh")
async def refresh_post(portal: PortalSession = Depends(get_portal_session)):
    context = await portal.refresh()
    return _login_response(context)
