# portal/auth/logout.py
from fastapi import APIRouter, Depends, Request

from portal.auth.dependencies import session_handle
from portal.auth.registry import SessionRegistry, get_registry

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/logout")
@router.post("/logout/")
async def logout_post(request: Request, registry: SessionRegistry = Depends(get_registry)):
    handle = session_handle(request)
    portal = registry.get(handle)
    if portal is not None:
        await portal.sign_out()
    registry.discard(handle)
    request.session.clear()
    return {"redirect": "/auth/login"}
