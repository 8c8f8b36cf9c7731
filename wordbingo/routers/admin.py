from fastapi import APIRouter, WebSocket

from wordbingo.manager import ConnectionManager
from wordbingo.services.admin_handler import AdminHandler
from wordbingo.services.admin_relay_client import AdminRelayClient

admin_router = APIRouter()


@admin_router.websocket("/admin")
async def admin_ui_socket(websocket: WebSocket):
    """Local admin UI. A new connection takes over from the previous one."""
    manager: ConnectionManager = websocket.app.state.manager
    handler: AdminHandler = websocket.app.state.handler
    relay_client: AdminRelayClient = websocket.app.state.relay_client

    def open_admin(connection_id: str) -> bool:
        handler.handle_admin_connection(connection_id)
        handler.handle_relay_status(relay_client.status)
        return True

    await manager.serve(
        websocket,
        on_message=handler.handle_admin_message,
        on_close=handler.handle_admin_disconnect,
        on_open=open_admin,
    )
