# portal/schemas/employee_schema.py
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

EmployeeStatus = Literal["active", "inactive"]


class EmployeeCreateSchema(BaseModel):
    name: str
    code: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    status: EmployeeStatus = "active"


class EmployeeUpdateSchema(BaseModel):
    name: Optional[str] = None
    code: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    status: Optional[EmployeeStatus] = None


class EmployeeOut(BaseModel):
    id: str
    code: Optional[str]
    name: str
    phone: Optional[str]
    address: Optional[str]
    status: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    model_config = {"from_attributes": True}


class RosterEntry(BaseModel):
    id: str
    name: str
    code: Optional[str]

    model_config = {"from_attributes": True}


class ProfileUpdateSchema(BaseModel):
    name: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    role: Optional[Literal["admin", "employee"]] = None
    employee_ref: Optional[str] = None


class ProfileOut(BaseModel):
    id: str
    email: str
    name: str
    role: Optional[str]
    department: Optional[str]
    position: Optional[str]
    employee_ref: Optional[str]

    model_config = {"from_attributes": True}
