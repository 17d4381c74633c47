"""
Dashboard push channel.

Administrator and worker dashboards keep one WebSocket open and re-fetch
the view they show when an event names a complaint that changed.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import WebSocket
from pydantic import BaseModel, Field

from .constants import Role
from .observability import active_websocket_connections

logger = logging.getLogger(__name__)

DASHBOARD_ROLES = (Role.ADMINISTRATOR.value, Role.WORKER.value)


class WebSocketEvent(BaseModel):
    event_type: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data: Dict[str, Any] = {}


class NewComplaintEvent(WebSocketEvent):
    event_type: str = "new_complaint"

    def __init__(self, complaint_id: str, facility_name: str, category: str, priority: str, **kwargs):
        super().__init__(
            data={
                "complaint_id": complaint_id,
                "facility_name": facility_name,
                "category": category,
                "priority": priority,
            },
            **kwargs,
        )


class StatusUpdateEvent(WebSocketEvent):
    event_type: str = "status_update"

    def __init__(self, complaint_id: str, old_status: str, new_status: str, updated_by: str, **kwargs):
        super().__init__(
            data={
                "complaint_id": complaint_id,
                "old_status": old_status,
                "new_status": new_status,
                "updated_by": updated_by,
            },
            **kwargs,
        )


class AssignmentEvent(WebSocketEvent):
    """Assignment, claim or revocation; ``assigned_to`` is None for a revocation."""

    event_type: str = "assignment_update"

    def __init__(self, complaint_id: str, assigned_to: Optional[str], assigned_by: str, **kwargs):
        super().__init__(
            data={"complaint_id": complaint_id, "assigned_to": assigned_to, "assigned_by": assigned_by},
            **kwargs,
        )


@dataclass
class DashboardClient:
    user_id: str
    role: str
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ConnectionManager:
    """Tracks open dashboard sockets and fans events out to them."""

    def __init__(self):
        self.clients: Dict[WebSocket, DashboardClient] = {}

    async def connect(self, websocket: WebSocket, user_id: str, user_role: str) -> None:
        await websocket.accept()
        self.clients[websocket] = DashboardClient(user_id=user_id, role=user_role)
        active_websocket_connections.labels(role=user_role).inc()
        logger.info(f"Dashboard connected: user_id={user_id}, role={user_role}")

    def disconnect(self, websocket: WebSocket) -> None:
        client = self.clients.pop(websocket, None)
        if client is None:
            return
        active_websocket_connections.labels(role=client.role).dec()
        logger.info(f"Dashboard disconnected: user_id={client.user_id}")

    async def broadcast(self, event: WebSocketEvent) -> None:
        """Send ``event`` to every connected dashboard."""
        targets = list(self.clients)
        if not targets:
            logger.debug(f"No dashboards listening for {event.event_type}")
            return

        message = event.model_dump_json()
        dead = []
        for websocket in targets:
            try:
                await websocket.send_text(message)
            except Exception as e:
                logger.warning(f"Dropping dashboard connection after send failure: {e}")
                dead.append(websocket)

        for websocket in dead:
            self.disconnect(websocket)
        logger.debug(f"Sent {event.event_type} to {len(targets) - len(dead)} dashboards")

    async def broadcast_new_complaint(self, complaint_id: str, facility_name: str, category: str, priority: str):
        # Workers see it as claimable work, administrators as unassigned work
        await self.broadcast(NewComplaintEvent(complaint_id, facility_name, category, priority))

    async def broadcast_status_update(self, complaint_id: str, old_status: str, new_status: str, updated_by: str):
        await self.broadcast(StatusUpdateEvent(complaint_id, old_status, new_status, updated_by))

    async def broadcast_assignment(self, complaint_id: str, assigned_to: Optional[str], assigned_by: str):
        await self.broadcast(AssignmentEvent(complaint_id, assigned_to, assigned_by))

    def get_connection_count(self) -> int:
        return len(self.clients)

    def get_connections_by_role(self) -> Dict[str, int]:
        counts = {role: 0 for role in DASHBOARD_ROLES}
        for client in self.clients.values():
            counts[client.role] = counts.get(client.role, 0) + 1
        return counts


manager = ConnectionManager()
