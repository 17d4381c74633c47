"""
Record store: flat persistence of users and complaints keyed by collection.

Every write is a read-modify-write of one record inside its own transaction.
Database failures surface as ``StoreUnavailable``; unknown ids as
``MissingReference``.
"""
import logging
from contextlib import contextmanager
from typing import Dict, List, Optional, Type

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

from .database import get_session
from .errors import MissingReference, StoreUnavailable
from .models import ActiveSession, AssignmentAudit, Complaint, User, utcnow

logger = logging.getLogger(__name__)

USERS = "users"
COMPLAINTS = "complaints"

COLLECTIONS: Dict[str, Type[SQLModel]] = {
    USERS: User,
    COMPLAINTS: Complaint,
}


@contextmanager
def _reading(what: str):
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error(f"Store read failed for {what}: {exc}")
        raise StoreUnavailable(f"Could not read {what}") from exc


class RecordStore:
    """Async record store bound to one database session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _model(collection: str) -> Type[SQLModel]:
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}") from None

    async def _write_failed(self, action: str, exc: SQLAlchemyError) -> None:
        await self.session.rollback()
        logger.error(f"Store write failed during {action}: {exc}")
        raise StoreUnavailable(f"Could not {action}") from exc

    async def _save(self, action: str, record: SQLModel, *extra: SQLModel) -> SQLModel:
        """Merge ``record`` (plus ``extra`` new rows) and commit them together."""
        try:
            merged = await self.session.merge(record)
            for row in extra:
                self.session.add(row)
            await self.session.commit()
            await self.session.refresh(merged)
        except SQLAlchemyError as exc:
            await self._write_failed(action, exc)
        return merged

    async def get_all(self, collection: str, **filters) -> List[SQLModel]:
        """Return every record of a collection, optionally filtered by equality."""
        model = self._model(collection)
        statement = select(model)
        for column, value in filters.items():
            statement = statement.where(getattr(model, column) == value)
        with _reading(collection):
            result = await self.session.exec(statement)
            return list(result.all())

    async def get(self, collection: str, record_id: str) -> SQLModel:
        model = self._model(collection)
        with _reading(f"{collection}/{record_id}"):
            record = await self.session.get(model, record_id)
        if record is None:
            raise MissingReference(collection, record_id)
        return record

    async def find_user_by_email(self, email: str) -> Optional[User]:
        users = await self.get_all(USERS, email=email.strip().lower())
        return users[0] if users else None

    async def upsert(self, collection: str, record: SQLModel) -> SQLModel:
        """Replace the record with the same id, or append it."""
        self._model(collection)
        return await self._save(f"save {collection}", record)

    async def record_assignment(self, complaint: Complaint, assigned_by: str) -> Complaint:
        """Persist an assignment change together with its audit row."""
        audit = AssignmentAudit(
            complaint_id=complaint.id,
            assigned_by=assigned_by,
            assigned_to=complaint.assigned_worker_id,
        )
        return await self._save("save assignment", complaint, audit)

    async def list_assignments(self, complaint_id: str) -> List[AssignmentAudit]:
        statement = (
            select(AssignmentAudit)
            .where(AssignmentAudit.complaint_id == complaint_id)
            .order_by(AssignmentAudit.created_at.desc(), AssignmentAudit.id.desc())
        )
        with _reading(f"assignments of {complaint_id}"):
            result = await self.session.exec(statement)
            return list(result.all())

    async def get_active_session(self, session_id: str) -> Optional[User]:
        """Return the user a login session points to, or None once logged out."""
        with _reading(f"session {session_id}"):
            pointer = await self.session.get(ActiveSession, session_id)
            if pointer is None:
                return None
            return await self.session.get(User, pointer.user_id)

    async def set_active_session(self, session_id: Optional[str], user: Optional[User]) -> Optional[str]:
        """Point a session at a user, or clear it when ``user`` is None.

        Returns the session id (a new one when ``session_id`` is None).
        """
        pointer = None
        if session_id:
            with _reading(f"session {session_id}"):
                pointer = await self.session.get(ActiveSession, session_id)

        if user is None:
            if pointer is not None:
                try:
                    await self.session.delete(pointer)
                    await self.session.commit()
                except SQLAlchemyError as exc:
                    await self._write_failed("end session", exc)
            return None

        if pointer is None:
            pointer = ActiveSession(user_id=user.uid)
            if session_id:
                pointer.id = session_id
        else:
            pointer.user_id = user.uid
            pointer.created_at = utcnow()
        saved = await self._save("start session", pointer)
        return saved.id


async def get_store(session: AsyncSession = Depends(get_session)) -> RecordStore:
    return RecordStore(session)


__all__ = ["RecordStore", "get_store", "USERS", "COMPLAINTS", "COLLECTIONS"]
