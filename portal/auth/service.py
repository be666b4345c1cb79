# portal/auth/service.py
"""
Authentication service client.

One ``AuthClient`` per browser, the way a hosted auth SDK hands each client
its own instance: it holds the current session, verifies credentials against
``auth_users`` and notifies subscribers of auth-state transitions.
"""
import inspect
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.concurrency import run_in_threadpool
from werkzeug.security import check_password_hash, generate_password_hash

from portal.auth.jwt_handler import (
    PURPOSE_ACCESS,
    PURPOSE_RESET,
    create_token,
    decode_token,
)
from portal.auth.models import AuthUser
from portal.config import ACCESS_TOKEN_EXPIRE_MINUTES, PASSWORD_RESET_EXPIRE_MINUTES
from portal.database import SessionLocal
from portal.errors import AuthenticationFailed, UpstreamRequestFailed
from portal.utils.email_service import send_email

logger = logging.getLogger(__name__)


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


@dataclass(frozen=True)
class Session:
    access_token: str
    user_id: str
    email: str
    session_id: str
    expires_at: datetime

    @property
    def expired(self) -> bool:
        return datetime.utcnow() >= self.expires_at


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class AuthClient:
    def __init__(self, session_factory=SessionLocal, token_ttl: timedelta = None):
        self._session_factory = session_factory
        self._token_ttl = token_ttl or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
        self._session: Optional[Session] = None
        self._listeners: List[Callable] = []

    # ------------------------------------------------------------------
    # subscriptions
    # ------------------------------------------------------------------
    def on_auth_state_change(self, callback: Callable) -> Callable[[], None]:
        """
        Register ``callback(event, session)``; it may be sync or async.
        Returns a function that removes the subscription.
        """
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def _emit(self, event: AuthEvent, session: Optional[Session]):
        logger.debug("auth event %s (sid=%s)", event.value, session.session_id if session else None)
        for callback in list(self._listeners):
            result = callback(event, session)
            if inspect.isawaitable(result):
                await result

    # ------------------------------------------------------------------
    # data store helpers (run in the thread pool)
    # ------------------------------------------------------------------
    def _find_user(self, email: str) -> Optional[Dict[str, str]]:
        with self._session_factory() as db:
            try:
                user = db.query(AuthUser).filter(AuthUser.email == email).first()
            except SQLAlchemyError as exc:
                raise UpstreamRequestFailed("Authentication service unavailable") from exc
            if not user:
                return None
            return {"id": user.id, "email": user.email, "password_hash": user.password_hash}

    def _create_user(self, email: str, password: str) -> Dict[str, str]:
        with self._session_factory() as db:
            user = AuthUser(email=email, password_hash=generate_password_hash(password))
            try:
                db.add(user)
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise AuthenticationFailed("Email already registered") from exc
            except SQLAlchemyError as exc:
                db.rollback()
                raise UpstreamRequestFailed("Could not create account") from exc
            return {"id": user.id, "email": user.email}

    def _delete_user(self, user_id: str):
        with self._session_factory() as db:
            try:
                db.query(AuthUser).filter(AuthUser.id == user_id).delete()
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise UpstreamRequestFailed("Could not remove account") from exc

    def _set_password(self, user_id: str, password: str) -> bool:
        with self._session_factory() as db:
            try:
                user = db.query(AuthUser).filter(AuthUser.id == user_id).first()
                if not user:
                    return False
                user.password_hash = generate_password_hash(password)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise UpstreamRequestFailed("Could not update password") from exc
            return True

    def _issue(self, user_id: str, email: str, session_id: str) -> Session:
        token = create_token({"sub": user_id, "sid": session_id, "email": email}, PURPOSE_ACCESS, self._token_ttl)
        return Session(
            access_token=token,
            user_id=user_id,
            email=email,
            session_id=session_id,
            expires_at=datetime.utcnow() + self._token_ttl,
        )

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def get_session(self) -> Optional[Session]:
        session = self._session
        if session is None or session.expired:
            return None
        return session

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        email = _normalize_email(email)
        user = await run_in_threadpool(self._find_user, email)
        if not user or not check_password_hash(user["password_hash"], password or ""):
            logger.info("sign-in rejected for %s", email)
            raise AuthenticationFailed()

        session = self._issue(user["id"], user["email"], uuid.uuid4().hex)
        self._session = session
        await self._emit(AuthEvent.SIGNED_IN, session)
        return session

    async def sign_up(self, email: str, password: str) -> Dict[str, str]:
        """Create credentials only; the caller signs in afterwards."""
        email = _normalize_email(email)
        if not email or not password:
            raise AuthenticationFailed("Email and password are required")
        user = await run_in_threadpool(self._create_user, email, password)
        logger.info("created auth user id=%s", user["id"])
        return user

    async def delete_user(self, user_id: str):
        """Remove credentials created by ``sign_up`` whose signup did not complete."""
        await run_in_threadpool(self._delete_user, user_id)
        logger.info("removed auth user id=%s", user_id)

    async def sign_out(self):
        if self._session is None:
            return
        self._session = None
        await self._emit(AuthEvent.SIGNED_OUT, None)

    async def refresh_session(self) -> Session:
        current = self._session
        if current is None:
            raise AuthenticationFailed("No active session")
        if current.expired:
            await self.sign_out()
            raise AuthenticationFailed("Session expired. Please login again.")

        session = self._issue(current.user_id, current.email, current.session_id)
        self._session = session
        await self._emit(AuthEvent.TOKEN_REFRESHED, session)
        return session

    async def update_password(self, new_password: str):
        session = self.get_session()
        if session is None:
            raise AuthenticationFailed("No active session")
        updated = await run_in_threadpool(self._set_password, session.user_id, new_password)
        if not updated:
            raise AuthenticationFailed("User not found")
        await self._emit(AuthEvent.USER_UPDATED, session)

    async def reset_password_for_email(self, email: str, redirect_to: str):
        """
        Mail a short-lived reset link. Unknown addresses are accepted silently
        so the endpoint can't be used to probe for accounts.
        """
        email = _normalize_email(email)
        user = await run_in_threadpool(self._find_user, email)
        if not user:
            logger.info("password reset requested for unknown address")
            return

        token = create_token(
            {"sub": user["id"]},
            PURPOSE_RESET,
            timedelta(minutes=PASSWORD_RESET_EXPIRE_MINUTES),
        )
        link = f"{redirect_to}?token={token}"
        body = (
            "We received a request to reset your Employee Portal password.\n\n"
            f"Open this link within {PASSWORD_RESET_EXPIRE_MINUTES} minutes to choose a new one:\n{link}\n\n"
            "If you did not ask for this, you can ignore this email."
        )
        try:
            await run_in_threadpool(send_email, user["email"], "Reset your password", body)
        except RuntimeError as exc:
            raise UpstreamRequestFailed("Failed to send reset email") from exc

    async def complete_password_reset(self, token: str, new_password: str):
        payload = decode_token(token or "", PURPOSE_RESET)
        if not payload or not payload.get("sub"):
            raise AuthenticationFailed("Reset link is invalid or has expired")
        updated = await run_in_threadpool(self._set_password, payload["sub"], new_password)
        if not updated:
            raise AuthenticationFailed("Reset link is invalid or has expired")
