# portal/auth/registry.py
"""
Per-client portal state.

A ``PortalSession`` is the explicit context object handed to every screen:
it owns one ``AuthClient`` and one ``IdentityResolver``, is initialised at
sign-in and torn down at sign-out. The ``SessionRegistry`` maps the opaque
handle kept in the signed session cookie to its ``PortalSession``.
"""
import logging
import secrets
import time
from datetime import timedelta
from typing import Callable, Dict, Optional, Tuple

from portal.auth.identity import AuthorizationContext, IdentityResolver, ResolverState
from portal.auth.profiles import ProfileStore
from portal.auth.service import AuthClient, AuthEvent
from portal.config import SESSION_IDLE_MINUTES, dev_bypass_credentials
from portal.errors import AuthenticationFailed, IdentityNotReady, ProfileResolutionFailed

logger = logging.getLogger(__name__)


class PortalSession:
    def __init__(
        self,
        handle: str,
        auth: AuthClient,
        resolver: IdentityResolver,
        profiles: ProfileStore,
        last_seen: float = 0.0,
    ):
        self.handle = handle
        self.auth = auth
        self.resolver = resolver
        self.profiles = profiles
        self.last_seen = last_seen
        self._unsubscribe: Optional[Callable[[], None]] = None

    def init(self):
        self._unsubscribe = self.auth.on_auth_state_change(self._on_auth_event)

    def teardown(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.resolver.teardown()

    async def _on_auth_event(self, event: AuthEvent, session):
        if event in (AuthEvent.SIGNED_IN, AuthEvent.TOKEN_REFRESHED):
            await self.resolver.on_session_change(session)
        elif event is AuthEvent.SIGNED_OUT:
            await self.resolver.on_session_change(None)

    @property
    def context(self) -> Optional[AuthorizationContext]:
        return self.resolver.get_authorization_context()

    async def sign_in(self, email: str, password: str) -> AuthorizationContext:
        context = self.resolver.resolve_special_admin(email, password)
        if context is not None:
            return context

        try:
            await self.auth.sign_in_with_password(email, password)
        except ProfileResolutionFailed:
            await self.auth.sign_out()
            raise

        context = self.resolver.get_authorization_context()
        if context is None:
            raise IdentityNotReady()
        return context

    async def sign_up(self, email: str, password: str, name: str, employee_ref: str) -> AuthorizationContext:
        user = await self.auth.sign_up(email, password)
        try:
            await self.profiles.create_profile(user["id"], user["email"], name, employee_ref)
        except Exception:
            # credentials without a profile could never sign in again
            logger.warning("profile creation failed; removing auth user %s", user["id"])
            await self.auth.delete_user(user["id"])
            raise
        return await self.sign_in(email, password)

    async def sign_out(self):
        context = self.resolver.get_authorization_context()
        # clear first so nothing can read a stale context while signing out
        self.resolver.teardown()
        if context is not None and context.is_dev_bypass:
            logger.info("dev bypass identity signed out locally")
            return
        await self.auth.sign_out()

    async def refresh(self) -> AuthorizationContext:
        if self.context is not None and self.context.is_dev_bypass:
            raise AuthenticationFailed("Bypass identities have no session to refresh")
        try:
            await self.auth.refresh_session()
        except ProfileResolutionFailed:
            await self.auth.sign_out()
            raise
        return self.require_context()

    async def current_context(self) -> Optional[AuthorizationContext]:
        """Context for an incoming request; an expired real session signs out."""
        context = self.resolver.get_authorization_context()
        if context is not None and not context.is_dev_bypass and self.auth.get_session() is None:
            logger.info("session %s expired", context.principal.session_id)
            await self.sign_out()
            return None
        return context

    def require_context(self) -> AuthorizationContext:
        context = self.resolver.get_authorization_context()
        if context is not None:
            return context
        if self.resolver.state is ResolverState.RESOLVING:
            raise IdentityNotReady()
        if self.resolver.state is ResolverState.FAILED:
            raise ProfileResolutionFailed(self.resolver.failure)
        raise AuthenticationFailed("Not authenticated. Please login.")

    def is_stale(self, now: float, idle_seconds: float) -> bool:
        """Idle for too long, or holding a real session that has expired."""
        if now - self.last_seen > idle_seconds:
            return True
        context = self.resolver.get_authorization_context()
        return context is not None and not context.is_dev_bypass and self.auth.get_session() is None


class SessionRegistry:
    def __init__(
        self,
        auth_factory: Callable[[], AuthClient] = AuthClient,
        profile_store: ProfileStore = None,
        bypass_credentials: Optional[Tuple[str, str]] = None,
        idle_timeout: timedelta = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._auth_factory = auth_factory
        self._profiles = profile_store or ProfileStore()
        self._bypass = bypass_credentials
        self._idle_seconds = (idle_timeout or timedelta(minutes=SESSION_IDLE_MINUTES)).total_seconds()
        self._clock = clock
        self._sessions: Dict[str, PortalSession] = {}

    def auth_client(self) -> AuthClient:
        """A detached client for calls that need no session (password reset)."""
        return self._auth_factory()

    def __len__(self):
        return len(self._sessions)

    def sweep(self) -> int:
        """Drop every stale portal session; returns how many were dropped."""
        now = self._clock()
        stale = [h for h, p in self._sessions.items() if p.is_stale(now, self._idle_seconds)]
        for handle in stale:
            self.discard(handle)
        if stale:
            logger.info("swept %d stale portal sessions", len(stale))
        return len(stale)

    def create(self) -> PortalSession:
        self.sweep()
        handle = secrets.token_urlsafe(32)
        portal = PortalSession(
            handle=handle,
            auth=self._auth_factory(),
            resolver=IdentityResolver(self._profiles.fetch_profile, self._bypass),
            profiles=self._profiles,
            last_seen=self._clock(),
        )
        portal.init()
        self._sessions[handle] = portal
        return portal

    def get(self, handle: Optional[str]) -> Optional[PortalSession]:
        if not handle:
            return None
        portal = self._sessions.get(handle)
        if portal is None:
            return None
        now = self._clock()
        if portal.is_stale(now, self._idle_seconds):
            logger.info("dropping stale portal session")
            self.discard(handle)
            return None
        portal.last_seen = now
        return portal

    def discard(self, handle: Optional[str]):
        portal = self._sessions.pop(handle, None) if handle else None
        if portal is not None:
            portal.teardown()


_registry: Optional[SessionRegistry] = None


def get_registry() -> SessionRegistry:
    global _registry
    if _registry is None:
        _registry = SessionRegistry(bypass_credentials=dev_bypass_credentials())
    return _registry
