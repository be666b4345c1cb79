# portal/employees/profile_router.py
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.auth.dependencies import require_action
from portal.auth.models import Profile
from portal.database import get_db
from portal.employees.models import EmployeeRecord
from portal.errors import UpstreamRequestFailed
from portal.policy import Action
from portal.schemas.employee_schema import ProfileOut, ProfileUpdateSchema

router = APIRouter(
    prefix="/admin/profiles",
    tags=["Admin Profiles"]
)
logger = logging.getLogger(__name__)


@router.get("/", response_model=List[ProfileOut])
def list_profiles(
    db: Session = Depends(get_db),
    admin=Depends(require_action(Action.EDIT_PROFILES)),
):
    return db.query(Profile).order_by(Profile.name).all()


@router.patch("/{profile_id}", response_model=ProfileOut)
def update_profile(
    profile_id: str,
    body: ProfileUpdateSchema,
    db: Session = Depends(get_db),
    admin=Depends(require_action(Action.EDIT_PROFILES)),
):
    profile = db.query(Profile).filter(Profile.id == profile_id).first()
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")

    changes = body.model_dump(exclude_unset=True)
    ref = changes.get("employee_ref")
    if ref and not db.query(EmployeeRecord).filter(EmployeeRecord.id == ref).first():
        raise HTTPException(status_code=400, detail="Employee record not found")

    for field, value in changes.items():
        setattr(profile, field, value)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise UpstreamRequestFailed("Could not update profile") from exc
    db.refresh(profile)

    # an active session picks the change up on its next refresh; a role change fails it closed
    logger.info("profile %s updated by %s: %s", profile_id, admin.profile.email, sorted(changes))
    return profile
