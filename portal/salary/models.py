# portal/salary/models.py
import uuid
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from portal.database import Base
from portal.employees.models import EmployeeRecord

MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


class SalarySlip(Base):
    __tablename__ = "salary_slips"
    __table_args__ = (
        UniqueConstraint("employee_ref", "month", "year", name="uq_salary_slip_period"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    employee_ref = Column(String(36), ForeignKey("employees.id"), nullable=False, index=True)
    month = Column(String(20), nullable=False)
    year = Column(Integer, nullable=False)

    # object storage path, derived from (employee_ref, year, month)
    file_ref = Column(String(255), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=True)

    uploaded_by = Column(String(150), nullable=True)
    uploaded_at = Column(DateTime, default=datetime.utcnow)

    employee = relationship(EmployeeRecord, lazy="joined")

    def __repr__(self):
        return f"<SalarySlip id={self.id} employee_ref={self.employee_ref} {self.month} {self.year}>"


def slip_storage_path(employee_ref: str, year: int, month: str) -> str:
    return f"{employee_ref}/{int(year)}/{month.lower()}.pdf"
