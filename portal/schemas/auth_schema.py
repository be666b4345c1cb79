# portal/schemas/auth_schema.py
from datetime import date
from typing import Optional

from pydantic import BaseModel


class LoginSchema(BaseModel):
    email: str
    password: str


class SignupSchema(BaseModel):
    email: str
    password: str
    confirm_password: str
    employee_id: str


class PasswordChangeSchema(BaseModel):
    new_password: str


class PasswordResetRequestSchema(BaseModel):
    email: str


class PasswordResetCompleteSchema(BaseModel):
    token: str
    new_password: str


class MeOut(BaseModel):
    id: str
    email: str
    name: str
    role: str
    employee_ref: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    join_date: Optional[date] = None
    dev_bypass: bool = False
