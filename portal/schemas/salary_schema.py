# portal/schemas/salary_schema.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class SalarySlipOut(BaseModel):
    id: str
    employee_ref: str
    month: str
    year: int
    file_name: str
    file_size: Optional[int] = None
    uploaded_by: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    # filled only for admins (joined from the roster)
    employee_name: Optional[str] = None
    employee_code: Optional[str] = None


class SignedUrlOut(BaseModel):
    url: str
    expires_in: int
    file_name: str
