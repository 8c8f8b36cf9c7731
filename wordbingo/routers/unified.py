from fastapi import APIRouter, WebSocket

from wordbingo.manager import ConnectionManager
from wordbingo.services.unified_handler import UnifiedHandler

unified_router = APIRouter()


@unified_router.websocket("/")
@unified_router.websocket("/admin")
async def game_socket(websocket: WebSocket):
    """Admin and player sockets of the single-process server.

    Whichever socket sends create_session becomes the admin.
    """
    manager: ConnectionManager = websocket.app.state.manager
    handler: UnifiedHandler = websocket.app.state.handler
    await manager.serve(websocket, on_message=handler.handle_message, on_close=handler.handle_close)
