# portal/auth/dependencies.py
import logging
from typing import Callable, Optional

from fastapi import Depends, Request

from portal.auth.identity import AuthorizationContext
from portal.auth.registry import PortalSession, SessionRegistry, get_registry
from portal.errors import AuthenticationFailed
from portal.policy import Action, Scope, Screen, authorize, authorize_action

logger = logging.getLogger(__name__)

SESSION_KEY = "portal_sid"


def session_handle(request: Request) -> Optional[str]:
    try:
        return request.session.get(SESSION_KEY)
    except AssertionError:
        # SessionMiddleware not installed
        return None


async def get_optional_portal_session(
    request: Request,
    registry: SessionRegistry = Depends(get_registry),
) -> Optional[PortalSession]:
    return registry.get(session_handle(request))


async def get_portal_session(portal: Optional[PortalSession] = Depends(get_optional_portal_session)) -> PortalSession:
    if portal is None:
        raise AuthenticationFailed("Not authenticated. Please login.")
    return portal


async def get_authorization_context(portal: PortalSession = Depends(get_portal_session)) -> AuthorizationContext:
    """
    Resolved context for this request. Raises instead of returning a
    partially resolved identity, so no screen queries while not ready.
    """
    await portal.current_context()
    return portal.require_context()


def require_screen(screen: Screen) -> Callable:
    async def dependency(context: AuthorizationContext = Depends(get_authorization_context)) -> Scope:
        return authorize(context, screen)
    return dependency


def require_action(action: Action) -> Callable:
    async def dependency(context: AuthorizationContext = Depends(get_authorization_context)) -> AuthorizationContext:
        return authorize_action(context, action)
    return dependency
