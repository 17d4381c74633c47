# Constants shared by the ResidentResolve backend modules

from enum import Enum
from typing import Dict, FrozenSet, List


class Role(str, Enum):
    RESIDENT = "resident"
    ADMINISTRATOR = "administrator"
    WORKER = "worker"


class ComplaintStatus(str, Enum):
    SUBMITTED = "Submitted"
    ASSIGNED = "Assigned"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"
    CLOSED = "Closed"


class ComplaintCategory(str, Enum):
    PLUMBING = "Plumbing"
    ELECTRICITY = "Electricity"
    CLEANLINESS = "Cleanliness"
    INTERNET = "Internet"
    ROOM_ISSUE = "Room Issue"
    OTHER = "Other"


class Priority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


# The assignee is set exactly when the complaint is in one of these
ASSIGNED_STATUSES: FrozenSet[str] = frozenset(
    {
        ComplaintStatus.ASSIGNED.value,
        ComplaintStatus.IN_PROGRESS.value,
        ComplaintStatus.RESOLVED.value,
        ComplaintStatus.CLOSED.value,
    }
)

# Counted as "resolved" for facility ratings and dashboards
RESOLVED_STATUSES: FrozenSet[str] = frozenset(
    {ComplaintStatus.RESOLVED.value, ComplaintStatus.CLOSED.value}
)

# Still being worked on from the resident's point of view
OPEN_STATUSES: FrozenSet[str] = frozenset(
    {
        ComplaintStatus.SUBMITTED.value,
        ComplaintStatus.ASSIGNED.value,
        ComplaintStatus.IN_PROGRESS.value,
    }
)

PRIORITY_WEIGHT: Dict[str, int] = {
    Priority.HIGH.value: 3,
    Priority.MEDIUM.value: 2,
    Priority.LOW.value: 1,
}

CATEGORIES: List[str] = [c.value for c in ComplaintCategory]
PRIORITIES: List[str] = [p.value for p in Priority]

# Resident fields missing at registration are stored with these placeholders
DEFAULT_ROOM_NUMBER = "N/A"
DEFAULT_FACILITY_NAME = "Unknown Hostel"
# Complaints with a blank facility are rated under this name
UNNAMED_FACILITY = "General"

REOPEN_DEFAULT_FEEDBACK = "Needs improvement"

CONNECTIVITY_COMPLAINT_TITLE = "System Detected: Internet Connection Lost"
