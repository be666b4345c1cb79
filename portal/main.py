# portal/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from portal.config import CORS_ORIGINS, LOG_LEVEL, SESSION_SECRET
from portal.database import init_db
from portal.errors import register_exception_handlers

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("portal")

# Create app immediately (safer for circular imports)
app = FastAPI(title="Employee Portal")

# ---------------------------------------------------------------------
# Import routers AFTER app creation (avoids early eval / circular import)
# ---------------------------------------------------------------------
from portal.auth.login import router as login_router
from portal.auth.signup import router as signup_router
from portal.auth.logout import router as logout_router
from portal.auth.me import router as me_router
from portal.auth.password import router as password_router
from portal.dashboard_router import router as dashboard_router
from portal.employees.router import router as employee_router
from portal.employees.profile_router import router as admin_profile_router
from portal.salary.router import router as salary_router, storage_router

# -------------------- Middleware --------------------
app.add_middleware(
    SessionMiddleware,
    secret_key=SESSION_SECRET,
    session_cookie="portal_session",
    https_only=False,
    same_site="lax",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.get("/")
def home():
    return {
        "message": "Employee Portal running!",
        "endpoints": {
            "login": "/auth/login",
            "signup": "/auth/signup",
            "dashboard": "/dashboard",
            "employees": "/employees/",
            "salary_slips": "/salary-slips/",
        }
    }


# ------------------- ROUTERS -------------------
app.include_router(login_router)
app.include_router(signup_router)
app.include_router(logout_router)
app.include_router(me_router)
app.include_router(password_router)

app.include_router(dashboard_router)
app.include_router(employee_router)
app.include_router(admin_profile_router)
app.include_router(salary_router)
app.include_router(storage_router)


# ------------------- STARTUP -------------------
@app.on_event("startup")
def _init_db_and_log_routes():
    init_db()
    logger.info("registered routes:")
    for r in app.routes:
        if hasattr(r, "path"):
            methods = sorted(list(getattr(r, "methods", None) or []))
            logger.info("  %-45s %s", r.path, methods)
