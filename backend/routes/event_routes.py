from datetime import datetime

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from backend.events import manager, user_channel

router = APIRouter(tags=['events'])


@router.websocket('/{user_id}')
async def appointment_events(user_id: str, websocket: WebSocket) -> None:
    channel = user_channel(user_id)
    await manager.connect(channel, websocket)
    try:
        while True:
            message = await websocket.receive_json()
            if message.get('type') == 'ping':
                await websocket.send_json({'type': 'pong', 'at': datetime.now().isoformat()})
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(channel, websocket)
