from fastapi import APIRouter, Request, WebSocket

from wordbingo.manager import ConnectionManager
from wordbingo.services.relay_handler import RelayHandler

relay_router = APIRouter()


@relay_router.websocket("/")
async def player_socket(websocket: WebSocket):
    manager: ConnectionManager = websocket.app.state.manager
    relay: RelayHandler = websocket.app.state.relay
    await manager.serve(
        websocket,
        on_message=relay.handle_player_message,
        on_close=relay.handle_player_close,
        on_open=relay.handle_player_connection,
    )


@relay_router.websocket("/admin")
async def admin_socket(websocket: WebSocket):
    """The admin process's relay link.

    A second admin while one is registered gets admin_error and stays open,
    but its frames are ignored.
    """
    manager: ConnectionManager = websocket.app.state.manager
    relay: RelayHandler = websocket.app.state.relay

    def claim_admin(connection_id: str) -> bool:
        relay.handle_admin_connection(connection_id)
        return True

    await manager.serve(
        websocket,
        on_message=relay.handle_admin_message,
        on_close=relay.handle_admin_close,
        on_open=claim_admin,
    )


@relay_router.get("/version")
async def version(request: Request) -> dict:
    """Deploy verification: commit and start time of this relay process."""
    return {"sha": request.app.state.git_commit, "startedAt": request.app.state.started_at}
