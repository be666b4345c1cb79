# portal/auth/models.py
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Date, DateTime

from portal.database import Base


def _uuid():
    return str(uuid.uuid4())


class AuthUser(Base):
    """Credential row owned by the authentication service."""
    __tablename__ = "auth_users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(150), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<AuthUser id={self.id} email={self.email}>"


class Profile(Base):
    """Login identity row; ``employee_ref`` weakly points at an EmployeeRecord."""
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)
    email = Column(String(150), nullable=False)
    name = Column(String(100), nullable=False, default="")

    # nullable on purpose: a missing role must not resolve to anything
    role = Column(String(20), nullable=True)
    department = Column(String(100), nullable=True)
    position = Column(String(100), nullable=True)
    join_date = Column(Date, nullable=True)

    # no FK: set at signup, never re-validated except by re-query
    employee_ref = Column(String(36), nullable=True, index=True)

    def __repr__(self):
        return f"<Profile id={self.id} email={self.email} role={self.role}>"
