# portal/auth/signup.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from portal.auth.dependencies import SESSION_KEY, session_handle
from portal.auth.registry import SessionRegistry, get_registry
from portal.database import SessionLocal
from portal.employees.models import EmployeeRecord
from portal.errors import PortalError, UpstreamRequestFailed
from portal.schemas.auth_schema import SignupSchema

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def _find_employee(employee_id: str) -> Optional[dict]:
    with SessionLocal() as db:
        try:
            emp = db.query(EmployeeRecord).filter(EmployeeRecord.id == employee_id).first()
        except SQLAlchemyError as exc:
            raise UpstreamRequestFailed("Could not load the employee roster") from exc
        if not emp:
            return None
        return {"id": emp.id, "name": emp.name}


@router.post("/signup")
async def signup_post(
    request: Request,
    body: SignupSchema,
    registry: SessionRegistry = Depends(get_registry),
):
    email = (body.email or "").strip().lower()
    if not email or not body.password:
        raise HTTPException(status_code=400, detail="Email and password are required")
    if body.password != body.confirm_password:
        raise HTTPException(status_code=400, detail="Passwords do not match")
    if len(body.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if not body.employee_id:
        raise HTTPException(status_code=400, detail="Please select an employee")

    employee = await run_in_threadpool(_find_employee, body.employee_id)
    if employee is None:
        raise HTTPException(status_code=400, detail="Selected employee not found.")

    registry.discard(session_handle(request))
    request.session.pop(SESSION_KEY, None)

    portal = registry.create()
    try:
        context = await portal.sign_up(email, body.password, employee["name"], employee["id"])
    except PortalError:
        registry.discard(portal.handle)
        raise

    request.session[SESSION_KEY] = portal.handle
    logger.info("signup ok employee_ref=%s", context.employee_ref)
    return {"redirect": "/dashboard", "role": context.role.value, "name": context.profile.name}
