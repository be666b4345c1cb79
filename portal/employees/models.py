# portal/employees/models.py
import uuid
from datetime import datetime

from sqlalchemy import Column, String, DateTime

from portal.database import Base

EMPLOYEE_STATUSES = ("active", "inactive")


class EmployeeRecord(Base):
    __tablename__ = "employees"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # expected unique; enforced by the data store, not here
    code = Column(String(50), nullable=True, index=True)
    name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=True)
    address = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default="active")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<EmployeeRecord id={self.id} code={self.code} name={self.name}>"
