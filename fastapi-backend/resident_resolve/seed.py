"""Demo accounts created on first start so every dashboard can be tried out."""

import logging
from typing import List

from .constants import Role
from .models import User
from .store import USERS, RecordStore

logger = logging.getLogger(__name__)

DEMO_USERS = [
    {"uid": "w1", "name": "Admin Warden", "email": "warden@test.com", "role": Role.ADMINISTRATOR.value},
    # Picks a specialty per session instead of a fixed profession
    {"uid": "wk1", "name": "Demo Worker", "email": "worker@test.com", "role": Role.WORKER.value},
    {
        "uid": "s1",
        "name": "Demo Student",
        "email": "student@test.com",
        "role": Role.RESIDENT.value,
        "student_id": "STU001",
        "room_number": "101",
        "facility_name": "Emerald Hall",
    },
]


async def seed_demo_users(store: RecordStore) -> List[User]:
    """Create the demo accounts, but only into an empty user collection."""
    if await store.get_all(USERS):
        return []
    created = []
    for fields in DEMO_USERS:
        created.append(await store.upsert(USERS, User(**fields)))
    logger.info("Seeded %d demo users", len(created))
    return created
