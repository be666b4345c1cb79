# portal/auth/profiles.py
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from portal.auth.identity import ProfileSnapshot, Role
from portal.auth.models import Profile
from portal.database import SessionLocal
from portal.errors import UpstreamRequestFailed

logger = logging.getLogger(__name__)


def snapshot_from_row(row: Profile) -> ProfileSnapshot:
    return ProfileSnapshot(
        id=row.id,
        email=row.email,
        name=row.name or "",
        role=row.role,
        department=row.department,
        position=row.position,
        join_date=row.join_date,
        employee_ref=row.employee_ref,
    )


class ProfileStore:
    """Reads and creates ``profiles`` rows outside of a request's db session."""

    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    def _fetch(self, user_id: str) -> Optional[ProfileSnapshot]:
        with self._session_factory() as db:
            try:
                row = db.query(Profile).filter(Profile.id == user_id).first()
            except SQLAlchemyError as exc:
                raise UpstreamRequestFailed("Profile lookup failed") from exc
            return snapshot_from_row(row) if row else None

    async def fetch_profile(self, user_id: str) -> Optional[ProfileSnapshot]:
        return await run_in_threadpool(self._fetch, user_id)

    def _create(self, user_id: str, email: str, name: str, employee_ref: Optional[str]) -> ProfileSnapshot:
        with self._session_factory() as db:
            row = Profile(
                id=user_id,
                email=email,
                name=name or "",
                role=Role.EMPLOYEE.value,
                employee_ref=employee_ref,
            )
            try:
                db.add(row)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise UpstreamRequestFailed("Could not create profile") from exc
            return snapshot_from_row(row)

    async def create_profile(self, user_id: str, email: str, name: str, employee_ref: Optional[str]) -> ProfileSnapshot:
        """New accounts always start as employees."""
        snapshot = await run_in_threadpool(self._create, user_id, email, name, employee_ref)
        logger.info("created profile id=%s employee_ref=%s", user_id, employee_ref)
        return snapshot
