"""Request/response schemas and the per-role user variants."""

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, EmailStr, Field, constr, field_validator

from .constants import (
    ComplaintCategory,
    DEFAULT_FACILITY_NAME,
    DEFAULT_ROOM_NUMBER,
    Priority,
    Role,
)
from .errors import ResidentResolveError
from .models import Complaint, User


# --- Users: one variant per role -------------------------------------------

class ResidentProfile(BaseModel):
    role: Literal["resident"] = "resident"
    uid: str
    name: str
    email: str
    student_id: str
    room_number: str = DEFAULT_ROOM_NUMBER
    facility_name: str = DEFAULT_FACILITY_NAME


class WorkerProfile(BaseModel):
    role: Literal["worker"] = "worker"
    uid: str
    name: str
    email: str
    profession: Optional[ComplaintCategory] = None


class AdministratorProfile(BaseModel):
    role: Literal["administrator"] = "administrator"
    uid: str
    name: str
    email: str


UserProfile = Annotated[
    Union[ResidentProfile, WorkerProfile, AdministratorProfile],
    Field(discriminator="role"),
]


def to_profile(user: User) -> Union[ResidentProfile, WorkerProfile, AdministratorProfile]:
    """Build the role-specific view of a stored user row."""
    if user.role == Role.RESIDENT.value:
        return ResidentProfile(
            uid=user.uid,
            name=user.name,
            email=user.email,
            student_id=user.student_id or "",
            room_number=user.room_number or DEFAULT_ROOM_NUMBER,
            facility_name=user.facility_name or DEFAULT_FACILITY_NAME,
        )
    if user.role == Role.WORKER.value:
        return WorkerProfile(uid=user.uid, name=user.name, email=user.email, profession=user.profession)
    if user.role == Role.ADMINISTRATOR.value:
        return AdministratorProfile(uid=user.uid, name=user.name, email=user.email)
    raise ValueError(f"Unknown role on user {user.uid}: {user.role!r}")


class _RegistrationBase(BaseModel):
    name: constr(strip_whitespace=True, min_length=1)
    email: EmailStr
    password: Optional[str] = None


class ResidentRegistration(_RegistrationBase):
    role: Literal["resident"] = "resident"
    student_id: constr(strip_whitespace=True, min_length=1)
    room_number: Optional[str] = None
    facility_name: Optional[str] = None


class WorkerRegistration(_RegistrationBase):
    role: Literal["worker"] = "worker"
    profession: Optional[ComplaintCategory] = None


class AdministratorRegistration(_RegistrationBase):
    role: Literal["administrator"] = "administrator"


RegistrationRequest = Union[ResidentRegistration, WorkerRegistration, AdministratorRegistration]


class LoginRequest(BaseModel):
    email: EmailStr
    password: Optional[str] = None


class SessionResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserProfile


class ProfileUpdate(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=1)] = None
    student_id: Optional[str] = None
    room_number: Optional[str] = None
    facility_name: Optional[str] = None
    profession: Optional[ComplaintCategory] = None

    @field_validator("name", "student_id", "room_number", "facility_name")
    @classmethod
    def _not_null(cls, value):
        # Omit a field to leave it unchanged; only the profession can be cleared
        if value is None:
            raise ValueError("may be omitted but not set to null")
        return value


_ROLE_FIELDS = {
    Role.RESIDENT.value: {"name", "student_id", "room_number", "facility_name"},
    Role.WORKER.value: {"name", "profession"},
    Role.ADMINISTRATOR.value: {"name"},
}


def apply_profile_update(user: User, update: ProfileUpdate) -> User:
    """Copy the fields set on ``update`` onto ``user``; reject fields of other roles."""
    changes = update.model_dump(exclude_unset=True)
    foreign = set(changes) - _ROLE_FIELDS[user.role]
    if foreign:
        raise ResidentResolveError(
            f"Fields not applicable to role '{user.role}': {', '.join(sorted(foreign))}"
        )
    for key, value in changes.items():
        if isinstance(value, ComplaintCategory):
            value = value.value
        setattr(user, key, value)
    return user


# --- Complaints ------------------------------------------------------------

class ComplaintDraft(BaseModel):
    title: constr(strip_whitespace=True, min_length=1)
    description: constr(strip_whitespace=True, min_length=1)
    category: ComplaintCategory
    # Manual choice; used as-is when classification is off or fails
    priority: Priority = Priority.MEDIUM
    auto_classify: bool = True


class AssignRequest(BaseModel):
    # Empty or missing revokes the current assignment
    worker_id: Optional[str] = None


class ResolveRequest(BaseModel):
    remarks: Optional[str] = None


class CloseRequest(BaseModel):
    feedback: constr(strip_whitespace=True, min_length=1)


class ReopenRequest(BaseModel):
    feedback: Optional[str] = None


class AssignmentRecord(BaseModel):
    id: int
    complaint_id: str
    assigned_by: str
    assigned_to: Optional[str] = None
    created_at: Optional[datetime] = None


class TaskBoard(BaseModel):
    specialty: ComplaintCategory
    assigned: List[Complaint]
    claimable: List[Complaint]


class CategoryCount(BaseModel):
    name: str
    count: int


class DashboardSummary(BaseModel):
    total: int
    unassigned: int
    pending: int
    in_progress: int
    resolved: int
    urgent: int
    by_category: List[CategoryCount]
