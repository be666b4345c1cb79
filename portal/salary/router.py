# portal/salary/router.py
import logging
import re
from datetime import datetime
from typing import Iterable, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.auth.dependencies import require_action, require_screen
from portal.config import SIGNED_URL_TTL_SECONDS
from portal.database import get_db
from portal.employees.models import EmployeeRecord
from portal.errors import AuthorizationDenied, UpstreamRequestFailed
from portal.policy import Action, Scope, Screen
from portal.salary.models import MONTHS, SalarySlip, slip_storage_path
from portal.salary.storage import SIGNED_ROUTE, ObjectStorage, get_storage
from portal.schemas.salary_schema import SalarySlipOut, SignedUrlOut

router = APIRouter(prefix="/salary-slips", tags=["salary"])
storage_router = APIRouter(tags=["storage"])
logger = logging.getLogger(__name__)

MIN_YEAR = 2000
MAX_YEAR = 2100
PDF_CONTENT_TYPES = ("application/pdf", "application/octet-stream")


# -------------------- helpers --------------------
def normalize_month(value) -> Optional[str]:
    """'november', 'Nov' and '11' all become 'November'; anything else is None."""
    if value is None:
        return None
    text = str(value).strip()
    if text.isdigit():
        n = int(text)
        return MONTHS[n - 1] if 1 <= n <= 12 else None
    lowered = text.lower()
    for name in MONTHS:
        if lowered == name.lower() or (len(lowered) >= 3 and name.lower().startswith(lowered)):
            return name
    return None


def filter_slips(
    slips: Iterable[SalarySlip],
    month: Optional[str] = None,
    year: Optional[int] = None,
    employee_ref: Optional[str] = None,
) -> List[SalarySlip]:
    """Month/year/employee filtering applied on rows already scoped by policy."""
    out = []
    for slip in slips:
        if month and slip.month != month:
            continue
        if year and slip.year != year:
            continue
        if employee_ref and slip.employee_ref != employee_ref:
            continue
        out.append(slip)
    # newest period first
    out.sort(key=lambda s: (s.year, MONTHS.index(s.month) if s.month in MONTHS else -1), reverse=True)
    return out


def _download_name(slip: SalarySlip) -> str:
    who = slip.employee.code if slip.employee and slip.employee.code else slip.employee_ref
    safe = re.sub(r"[^A-Za-z0-9_.-]", "_", str(who))
    return f"salary_{safe}_{slip.month.lower()}_{slip.year}.pdf"


def _slip_out(slip: SalarySlip, with_employee: bool) -> SalarySlipOut:
    out = SalarySlipOut(
        id=slip.id,
        employee_ref=slip.employee_ref,
        month=slip.month,
        year=slip.year,
        file_name=slip.file_name,
        file_size=slip.file_size,
        uploaded_by=slip.uploaded_by,
        uploaded_at=slip.uploaded_at,
    )
    if with_employee and slip.employee is not None:
        out.employee_name = slip.employee.name
        out.employee_code = slip.employee.code
    return out


# ------------------------- SALARY LIST VIEW -------------------------
@router.get("/", response_model=List[SalarySlipOut])
def list_salary_slips(
    month: Optional[str] = None,
    year: Optional[int] = None,
    employee_id: Optional[str] = None,
    db: Session = Depends(get_db),
    scope: Scope = Depends(require_screen(Screen.SALARY_SLIPS)),
):
    """
    Admin => all slips, joined with the roster.
    Employee => only slips for their own employee record.
    """
    month_name = None
    if month:
        month_name = normalize_month(month)
        if month_name is None:
            raise HTTPException(status_code=400, detail="Invalid month")

    query = scope.filter_query(db.query(SalarySlip), SalarySlip.employee_ref)
    slips = scope.filter_rows(query.all())

    # only admins may narrow by another employee; employees are already narrowed
    wanted_ref = employee_id if scope.unrestricted else None
    slips = filter_slips(slips, month=month_name, year=year, employee_ref=wanted_ref)
    return [_slip_out(s, scope.unrestricted) for s in slips]


# ------------------------- UPLOAD SALARY (ADMIN) -------------------------
@router.post("/", response_model=SalarySlipOut, status_code=201)
def upload_salary_slip(
    employee_id: str = Form(...),
    month: str = Form(...),
    year: int = Form(...),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    user=Depends(require_action(Action.UPLOAD_SALARY_SLIPS)),
    storage: ObjectStorage = Depends(get_storage),
):
    month_name = normalize_month(month)
    if month_name is None:
        raise HTTPException(status_code=400, detail="Invalid month")
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise HTTPException(status_code=400, detail=f"Year must be between {MIN_YEAR} and {MAX_YEAR}")

    filename = (file.filename or "").strip()
    if file.content_type not in PDF_CONTENT_TYPES or not filename.lower().endswith(".pdf"):
        raise HTTPException(status_code=400, detail="Only PDF files are allowed")

    try:
        data = file.file.read()
    finally:
        file.file.close()
    if not data.startswith(b"%PDF-"):
        raise HTTPException(status_code=400, detail="Only PDF files are allowed")

    employee = db.query(EmployeeRecord).filter(EmployeeRecord.id == employee_id).first()
    if not employee:
        raise HTTPException(status_code=404, detail="Employee not found")

    # same (employee, month, year) -> same path; a re-upload replaces the file
    path = slip_storage_path(employee.id, year, month_name)
    storage.upload(path, data, upsert=True)

    slip = db.query(SalarySlip).filter(
        SalarySlip.employee_ref == employee.id,
        SalarySlip.month == month_name,
        SalarySlip.year == year,
    ).first()
    if slip is None:
        slip = SalarySlip(employee_ref=employee.id, month=month_name, year=year)
        db.add(slip)
    slip.file_ref = path
    slip.file_name = filename
    slip.file_size = len(data)
    slip.uploaded_by = user.profile.email
    slip.uploaded_at = datetime.utcnow()

    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("could not record salary slip %s", path)
        raise UpstreamRequestFailed("Could not save salary slip") from exc
    db.refresh(slip)

    logger.info("salary slip %s %s uploaded for %s by %s", month_name, year, employee.id, user.profile.email)
    return _slip_out(slip, with_employee=True)


# ------------------------- DOWNLOAD SALARY -------------------------
@router.get("/{slip_id}/download", response_model=SignedUrlOut)
def salary_slip_download_url(
    slip_id: str,
    db: Session = Depends(get_db),
    scope: Scope = Depends(require_screen(Screen.SALARY_SLIPS)),
    storage: ObjectStorage = Depends(get_storage),
):
    # out-of-scope slips look exactly like missing ones
    query = scope.filter_query(db.query(SalarySlip).filter(SalarySlip.id == slip_id), SalarySlip.employee_ref)
    slip = query.first()
    if not slip or not scope.permits(slip.employee_ref):
        raise HTTPException(status_code=404, detail="Salary slip not found")
    if not storage.exists(slip.file_ref):
        logger.warning("salary slip %s has no stored file at %s", slip.id, slip.file_ref)
        raise HTTPException(status_code=404, detail="Salary file not found")

    url = storage.create_signed_url(slip.file_ref, SIGNED_URL_TTL_SECONDS, download_name=_download_name(slip))
    return SignedUrlOut(url=url, expires_in=SIGNED_URL_TTL_SECONDS, file_name=slip.file_name)


@storage_router.get(SIGNED_ROUTE + "/{token}", name="signed_download")
def signed_download(token: str, storage: ObjectStorage = Depends(get_storage)):
    granted = storage.verify_signed_token(token)
    if granted is None:
        raise AuthorizationDenied("Download link is invalid or has expired")
    path, name = granted
    try:
        data = storage.download(path)
    except (FileNotFoundError, ValueError):
        raise HTTPException(status_code=404, detail="Salary file not found")
    return Response(
        content=data,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{name}"'},
    )
