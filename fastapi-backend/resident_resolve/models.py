from typing import Optional
from datetime import datetime, timezone
from sqlmodel import SQLModel, Field
import uuid

from .constants import ComplaintStatus


def _new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    __tablename__ = "users"
    uid: str = Field(default_factory=_new_id, primary_key=True)
    name: str
    email: str = Field(sa_column_kwargs={"unique": True}, index=True)
    # 'resident', 'administrator' or 'worker'; see schemas.UserProfile for the per-role shape
    role: str
    # Optional: accounts without a hash accept any password
    password_hash: Optional[str] = None
    # Resident-only
    student_id: Optional[str] = None
    room_number: Optional[str] = None
    facility_name: Optional[str] = None
    # Worker-only
    profession: Optional[str] = None
    created_at: Optional[datetime] = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None


class Complaint(SQLModel, table=True):
    __tablename__ = "complaints"
    id: str = Field(default_factory=_new_id, primary_key=True)
    title: str
    description: str
    category: str = Field(index=True)
    priority: str
    status: str = Field(default=ComplaintStatus.SUBMITTED.value, index=True)
    # Resident identity is copied onto the complaint at creation time
    student_id: str = Field(index=True)
    student_name: str
    room_number: str
    facility_name: str
    assigned_worker_id: Optional[str] = Field(default=None, index=True)
    assigned_worker_name: Optional[str] = None
    created_at: Optional[datetime] = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = Field(default_factory=utcnow)
    feedback: Optional[str] = None
    remarks: Optional[str] = None


class ActiveSession(SQLModel, table=True):
    """Pointer from a login session to the user it belongs to."""
    __tablename__ = "active_sessions"
    id: str = Field(default_factory=_new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.uid", index=True)
    created_at: Optional[datetime] = Field(default_factory=utcnow)


class AssignmentAudit(SQLModel, table=True):
    __tablename__ = "assignment_audits"
    id: Optional[int] = Field(default=None, primary_key=True)
    complaint_id: str = Field(foreign_key="complaints.id", index=True)
    assigned_by: str
    # None records a revocation
    assigned_to: Optional[str] = None
    created_at: Optional[datetime] = Field(default_factory=utcnow)
