import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.services.notifications import hub

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws/worksheets")
async def worksheet_updates(websocket: WebSocket):
    """Broadcast-only channel; anything the client sends is ignored."""
    await hub.connect(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Dashboard client closed the connection")
    finally:
        hub.disconnect(websocket)
