# portal/dashboard_router.py

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from portal.auth.dependencies import get_authorization_context
from portal.auth.identity import AuthorizationContext
from portal.auth.models import Profile
from portal.database import get_db
from portal.employees.models import EmployeeRecord
from portal.policy import Screen, authorize, can_view
from portal.salary.models import MONTHS, SalarySlip

router = APIRouter(tags=["dashboard"])


def _profile_card(context: AuthorizationContext):
    profile = context.profile
    return {
        "name": profile.name,
        "email": profile.email,
        "role": context.role.value,
        "department": profile.department,
        "position": profile.position,
        "join_date": profile.join_date,
    }


def dashboard_stats(db: Session, context: AuthorizationContext):
    """
    Admin => total employees, total slips, department count.
    Employee => own slip count only.
    """
    scope = authorize(context, Screen.DASHBOARD)
    if scope.unrestricted:
        departments = (
            db.query(func.count(func.distinct(Profile.department)))
            .filter(Profile.department.isnot(None), Profile.department != "")
            .scalar()
        )
        return {
            "total_employees": db.query(EmployeeRecord).count(),
            "active_employees": db.query(EmployeeRecord).filter(EmployeeRecord.status == "active").count(),
            "total_salary_slips": db.query(SalarySlip).count(),
            "departments": departments or 0,
        }

    own = scope.filter_query(db.query(SalarySlip), SalarySlip.employee_ref)
    return {"my_salary_slips": own.count()}


@router.get("/dashboard")
def dashboard(
    db: Session = Depends(get_db),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    today = date.today()
    quick_actions = [s.value for s in (Screen.SALARY_SLIPS, Screen.EMPLOYEES) if can_view(context, s)]
    return {
        "welcome": f"Welcome back, {context.profile.name}",
        "profile": _profile_card(context),
        "stats": dashboard_stats(db, context),
        "current_period": f"{MONTHS[today.month - 1]} {today.year}",
        "quick_actions": quick_actions,
    }
