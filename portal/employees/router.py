# portal/employees/router.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.auth.dependencies import require_action, require_screen
from portal.database import get_db
from portal.employees.models import EmployeeRecord
from portal.errors import UpstreamRequestFailed
from portal.policy import Action, Scope, Screen
from portal.schemas.employee_schema import (
    EmployeeCreateSchema,
    EmployeeOut,
    EmployeeUpdateSchema,
    RosterEntry,
)

router = APIRouter(prefix="/employees", tags=["employees"])
logger = logging.getLogger(__name__)


def _commit(db: Session, what: str):
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("employee %s failed", what)
        raise UpstreamRequestFailed(f"Could not {what} employee") from exc


def _get_or_404(db: Session, employee_id: str) -> EmployeeRecord:
    emp = db.query(EmployeeRecord).filter(EmployeeRecord.id == employee_id).first()
    if not emp:
        raise HTTPException(status_code=404, detail="Employee not found")
    return emp


# Roster used by the signup form; no login yet at that point
@router.get("/roster", response_model=List[RosterEntry])
def employee_roster(db: Session = Depends(get_db)):
    return db.query(EmployeeRecord).order_by(EmployeeRecord.name).all()


@router.get("/", response_model=List[EmployeeOut])
def list_employees(
    q: Optional[str] = None,
    db: Session = Depends(get_db),
    scope: Scope = Depends(require_screen(Screen.EMPLOYEES)),
):
    query = db.query(EmployeeRecord)
    term = (q or "").strip()
    if term:
        like = f"%{term}%"
        query = query.filter(
            or_(
                EmployeeRecord.name.ilike(like),
                EmployeeRecord.code.ilike(like),
                EmployeeRecord.phone.ilike(like),
                EmployeeRecord.address.ilike(like),
            )
        )
    return query.order_by(EmployeeRecord.name).all()


@router.get("/{employee_id}", response_model=EmployeeOut)
def get_employee(
    employee_id: str,
    db: Session = Depends(get_db),
    scope: Scope = Depends(require_screen(Screen.EMPLOYEES)),
):
    return _get_or_404(db, employee_id)


@router.post("/", response_model=EmployeeOut, status_code=201)
def create_employee(
    body: EmployeeCreateSchema,
    db: Session = Depends(get_db),
    user=Depends(require_action(Action.MANAGE_EMPLOYEES)),
):
    name = body.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Name is required")

    emp = EmployeeRecord(
        name=name,
        code=(body.code or "").strip() or None,
        phone=body.phone,
        address=body.address,
        status=body.status,
    )
    db.add(emp)
    _commit(db, "create")
    db.refresh(emp)
    logger.info("employee %s created by %s", emp.id, user.profile.email)
    return emp


@router.patch("/{employee_id}", response_model=EmployeeOut)
def update_employee(
    employee_id: str,
    body: EmployeeUpdateSchema,
    db: Session = Depends(get_db),
    user=Depends(require_action(Action.MANAGE_EMPLOYEES)),
):
    emp = _get_or_404(db, employee_id)
    changes = body.model_dump(exclude_unset=True)
    if "name" in changes and not (changes["name"] or "").strip():
        raise HTTPException(status_code=400, detail="Name is required")

    for field, value in changes.items():
        setattr(emp, field, value.strip() if isinstance(value, str) else value)
    _commit(db, "update")
    db.refresh(emp)
    return emp


@router.delete("/{employee_id}", status_code=204)
def delete_employee(
    employee_id: str,
    db: Session = Depends(get_db),
    user=Depends(require_action(Action.MANAGE_EMPLOYEES)),
):
    # profiles linked to this record keep their (now dangling) employee_ref
    emp = _get_or_404(db, employee_id)
    db.delete(emp)
    _commit(db, "delete")
    logger.info("employee %s deleted by %s", employee_id, user.profile.email)
    return Response(status_code=204)
