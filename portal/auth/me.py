# portal/auth/me.py
from fastapi import APIRouter, Depends

from portal.auth.dependencies import get_authorization_context
from portal.auth.identity import AuthorizationContext
from portal.schemas.auth_schema import MeOut

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=MeOut)
async def read_me(context: AuthorizationContext = Depends(get_authorization_context)):
    """
    The caller's resolved identity. Accepts only a fully resolved session.
    """
    profile = context.profile
    return MeOut(
        id=profile.id,
        email=profile.email,
        name=profile.name,
        role=context.role.value,
        employee_ref=context.employee_ref,
        department=profile.department,
        position=profile.position,
        join_date=profile.join_date,
        dev_bypass=context.is_dev_bypass,
    )
