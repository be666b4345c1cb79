# portal/policy.py
"""
Role-scoped access policy.

Every screen asks ``authorize`` for its scope instead of branching on the
role itself. The returned ``Scope`` filters both the store query and the
rows that come back, so an employee only ever sees their own rows even if
the query side were misconfigured.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from sqlalchemy import false

from portal.auth.identity import AuthorizationContext, Role
from portal.errors import AuthenticationFailed, AuthorizationDenied

logger = logging.getLogger(__name__)


class Screen(str, Enum):
    DASHBOARD = "dashboard"
    EMPLOYEES = "employees"
    SALARY_SLIPS = "salary_slips"


class Action(str, Enum):
    MANAGE_EMPLOYEES = "manage_employees"
    UPLOAD_SALARY_SLIPS = "upload_salary_slips"
    EDIT_PROFILES = "edit_profiles"


class Visibility(str, Enum):
    ALL = "all"
    OWN = "own"
    DENIED = "denied"


POLICY = {
    (Screen.EMPLOYEES, Role.ADMIN): Visibility.ALL,
    (Screen.EMPLOYEES, Role.EMPLOYEE): Visibility.DENIED,
    (Screen.SALARY_SLIPS, Role.ADMIN): Visibility.ALL,
    (Screen.SALARY_SLIPS, Role.EMPLOYEE): Visibility.OWN,
    (Screen.DASHBOARD, Role.ADMIN): Visibility.ALL,
    (Screen.DASHBOARD, Role.EMPLOYEE): Visibility.OWN,
}

ACTION_POLICY = {
    Action.MANAGE_EMPLOYEES: {Role.ADMIN},
    Action.UPLOAD_SALARY_SLIPS: {Role.ADMIN},
    Action.EDIT_PROFILES: {Role.ADMIN},
}


@dataclass(frozen=True)
class Scope:
    screen: Screen
    visibility: Visibility
    employee_ref: Optional[str] = None

    @property
    def unrestricted(self) -> bool:
        return self.visibility is Visibility.ALL

    def permits(self, employee_ref: Optional[str]) -> bool:
        if self.unrestricted:
            return True
        # an unlinked employee owns nothing
        return self.employee_ref is not None and employee_ref == self.employee_ref

    def filter_query(self, query, column):
        if self.unrestricted:
            return query
        if self.employee_ref is None:
            return query.filter(false())
        return query.filter(column == self.employee_ref)

    def filter_rows(self, rows: Iterable, attr: str = "employee_ref") -> List:
        return [row for row in rows if self.permits(getattr(row, attr, None))]


def authorize(context: Optional[AuthorizationContext], screen: Screen) -> Scope:
    if context is None:
        raise AuthenticationFailed("Not authenticated. Please login.")
    visibility = POLICY.get((screen, context.role), Visibility.DENIED)
    if visibility is Visibility.DENIED:
        logger.info("denied %s screen to role %s", screen.value, context.role.value)
        raise AuthorizationDenied()
    if visibility is Visibility.ALL:
        return Scope(screen=screen, visibility=visibility)
    return Scope(screen=screen, visibility=visibility, employee_ref=context.employee_ref)


def authorize_action(context: Optional[AuthorizationContext], action: Action) -> AuthorizationContext:
    if context is None:
        raise AuthenticationFailed("Not authenticated. Please login.")
    if context.role not in ACTION_POLICY.get(action, set()):
        logger.info("denied action %s to role %s", action.value, context.role.value)
        raise AuthorizationDenied()
    return context


def can_view(context: Optional[AuthorizationContext], screen: Screen) -> bool:
    if context is None:
        return False
    return POLICY.get((screen, context.role), Visibility.DENIED) is not Visibility.DENIED
