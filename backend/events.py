import logging
from datetime import datetime

from fastapi import WebSocket

logger = logging.getLogger(__name__)

APPOINTMENT_NEW = 'appointment:new'
APPOINTMENT_BOOKED = 'appointment:booked'
APPOINTMENT_STATUS_UPDATED = 'appointment:status_updated'
APPOINTMENT_RESCHEDULED = 'appointment:rescheduled'
APPOINTMENT_CANCELLED = 'appointment:cancelled'


def user_channel(user_id: str) -> str:
    return f'user:{user_id}'


def status_event(appointment_id: str, new_status: str) -> dict:
    if new_status == 'cancelled':
        return {'type': APPOINTMENT_CANCELLED, 'session_id': appointment_id, 'new_status': new_status}
    return {'type': APPOINTMENT_STATUS_UPDATED, 'session_id': appointment_id, 'new_status': new_status}


def rescheduled_event(appointment_id: str, starts_at: datetime, ends_at: datetime | None, status: str) -> dict:
    return {
        'type': APPOINTMENT_RESCHEDULED,
        'session_id': appointment_id,
        'new_scheduled_at': starts_at.isoformat(),
        'new_ends_at': ends_at.isoformat() if ends_at else None,
        'status': status,
    }


class ConnectionManager:
    def __init__(self) -> None:
        self.active_connections: dict[str, list[WebSocket]] = {}

    async def connect(self, channel: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.setdefault(channel, []).append(websocket)

    def disconnect(self, channel: str, websocket: WebSocket) -> None:
        connections = self.active_connections.get(channel, [])
        if websocket in connections:
            connections.remove(websocket)
        if not connections:
            self.active_connections.pop(channel, None)

    async def broadcast(self, channel: str, payload: dict) -> None:
        for websocket in list(self.active_connections.get(channel, [])):
            try:
                await websocket.send_json(payload)
            except Exception:
                logger.warning('Dropping connection on %s after a failed send', channel, exc_info=True)
                self.disconnect(channel, websocket)

    async def publish(self, user_ids: list[str], payload: dict) -> None:
        logger.info('Publishing %s for appointment %s', payload['type'], payload['session_id'])
        for user_id in dict.fromkeys(user_ids):
            await self.broadcast(user_channel(user_id), payload)


manager = ConnectionManager()
