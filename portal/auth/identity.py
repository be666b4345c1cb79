# portal/auth/identity.py
"""
Session -> identity resolution.

The resolver turns auth-state transitions into the ``{role, employee_ref}``
pair every screen scopes its queries with. It fails closed: a missing
profile, an unreadable profile or a profile without a valid role leaves the
client unauthenticated and raises ``ProfileResolutionFailed``.

Session changes may overlap while a profile fetch is in flight. Each
transition bumps a generation counter and a fetch only publishes its result
if its generation is still the latest one.
"""
import hmac
import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Awaitable, Callable, Optional, Tuple, Union

from portal.errors import ProfileResolutionFailed

logger = logging.getLogger(__name__)


class Role(str, Enum):
    ADMIN = "admin"
    EMPLOYEE = "employee"

    @classmethod
    def parse(cls, value) -> Optional["Role"]:
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class ResolverState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    RESOLVING = "resolving"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class RealPrincipal:
    """Identity backed by a verified session from the auth service."""
    user_id: str
    email: str
    session_id: str


@dataclass(frozen=True)
class DevBypassPrincipal:
    """Identity fabricated from the configured bypass credential; no session."""
    email: str


Principal = Union[RealPrincipal, DevBypassPrincipal]


@dataclass(frozen=True)
class ProfileSnapshot:
    id: str
    email: str
    name: str
    role: Optional[str]
    department: Optional[str] = None
    position: Optional[str] = None
    join_date: Optional[date] = None
    employee_ref: Optional[str] = None


@dataclass(frozen=True)
class AuthorizationContext:
    principal: Principal
    role: Role
    employee_ref: Optional[str]
    profile: ProfileSnapshot

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_dev_bypass(self) -> bool:
        return isinstance(self.principal, DevBypassPrincipal)


DEV_BYPASS_PROFILE_ID = "dev-bypass-admin"

ProfileFetcher = Callable[[str], Awaitable[Optional[ProfileSnapshot]]]


class IdentityResolver:
    def __init__(self, fetch_profile: ProfileFetcher, bypass_credentials: Optional[Tuple[str, str]] = None):
        self._fetch_profile = fetch_profile
        self._bypass = bypass_credentials
        self._generation = 0
        self._state = ResolverState.UNAUTHENTICATED
        self._context: Optional[AuthorizationContext] = None
        self._failure: Optional[str] = None
        # (session_id, role) the current session resolved to; role may not change under it
        self._pinned: Optional[Tuple[str, Role]] = None

    @property
    def state(self) -> ResolverState:
        return self._state

    @property
    def failure(self) -> Optional[str]:
        return self._failure

    def get_authorization_context(self) -> Optional[AuthorizationContext]:
        """The resolved context, or None while not ready (see ``state``)."""
        if self._state is not ResolverState.READY:
            return None
        return self._context

    def _clear(self, state: ResolverState):
        self._context = None
        self._pinned = None
        self._state = state

    def teardown(self):
        self._generation += 1
        self._failure = None
        self._clear(ResolverState.UNAUTHENTICATED)

    async def on_session_change(self, session) -> Optional[AuthorizationContext]:
        """
        Resolve ``session`` (an auth ``Session`` or None) into a context.

        Returns the new context, or None when the session was cleared or the
        fetch was superseded by a later transition.
        """
        if session is None:
            self.teardown()
            logger.info("session cleared")
            return None

        self._generation += 1
        generation = self._generation

        if self._pinned and self._pinned[0] != session.session_id:
            self._pinned = None
        self._context = None
        self._failure = None
        self._state = ResolverState.RESOLVING

        try:
            snapshot = await self._fetch_profile(session.user_id)
        except Exception as exc:
            return self._fail(generation, "Profile could not be loaded", exc)

        if generation != self._generation:
            logger.debug("discarding stale profile fetch for user %s", session.user_id)
            return None

        if snapshot is None:
            return self._fail(generation, "No profile found for this account")
        role = Role.parse(snapshot.role)
        if role is None:
            return self._fail(generation, "Profile has no valid role")
        if self._pinned and self._pinned[1] is not role:
            return self._fail(generation, "Role changed during the session")

        self._pinned = (session.session_id, role)
        self._context = AuthorizationContext(
            principal=RealPrincipal(user_id=session.user_id, email=session.email, session_id=session.session_id),
            role=role,
            employee_ref=snapshot.employee_ref,
            profile=snapshot,
        )
        self._state = ResolverState.READY
        logger.info("session resolved: user=%s role=%s", session.user_id, role.value)
        return self._context

    def _fail(self, generation: int, reason: str, cause: Exception = None):
        if generation != self._generation:
            logger.debug("ignoring failure of superseded profile fetch: %s", reason)
            return None
        self._clear(ResolverState.FAILED)
        self._failure = reason
        logger.warning("profile resolution failed: %s", reason)
        raise ProfileResolutionFailed(reason) from cause

    def resolve_special_admin(self, email: str, password: str) -> Optional[AuthorizationContext]:
        """
        Recognise the configured bypass credential and fabricate an admin
        context without contacting the auth service. Returns None when the
        bypass is disabled or the credential does not match.
        """
        if self._bypass is None:
            return None
        bypass_email, bypass_password = self._bypass
        email = (email or "").strip().lower()
        if email != bypass_email:
            return None
        if not hmac.compare_digest((password or "").encode("utf-8"), bypass_password.encode("utf-8")):
            return None

        self._generation += 1
        self._failure = None
        self._pinned = None
        profile = ProfileSnapshot(id=DEV_BYPASS_PROFILE_ID, email=email, name="Administrator", role=Role.ADMIN.value)
        self._context = AuthorizationContext(
            principal=DevBypassPrincipal(email=email),
            role=Role.ADMIN,
            employee_ref=None,
            profile=profile,
        )
        self._state = ResolverState.READY
        logger.warning("dev bypass admin identity issued for %s", email)
        return self._context
