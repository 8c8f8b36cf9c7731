import logging
from contextlib import asynccontextmanager

import uvicorn
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI

from wordbingo.load_secrets import port, reconnect_delay, relay_secret, relay_url, session_label
from wordbingo.manager import ConnectionManager
from wordbingo.routers import admin
from wordbingo.services.admin_handler import AdminHandler
from wordbingo.services.admin_relay_client import AdminRelayClient

logging.basicConfig(level=logging.INFO)


def create_app(relay_url: str = relay_url, secret: str = relay_secret) -> FastAPI:
    """Admin process for distributed mode.

    The admin UI connects locally at /admin; players are reached through the
    relay, which this process dials out to. Without a relay URL and secret
    the process runs local-only.
    """
    manager = ConnectionManager()
    relay_client = AdminRelayClient(
        scheduler=None,
        on_player_command=lambda connection_id, raw: handler.handle_player_command(
            connection_id, raw
        ),
        on_player_connected=lambda connection_id: handler.handle_player_connected(connection_id),
        on_player_disconnected=lambda connection_id: handler.handle_player_disconnected(
            connection_id
        ),
        on_player_roster=lambda connections: handler.handle_player_roster(connections),
        on_status_change=lambda status: handler.handle_relay_status(status),
        reconnect_delay=reconnect_delay,
    )
    handler = AdminHandler(relay_client, manager)

    @asynccontextmanager
    async def lifespan(app):
        """Start the reconnect scheduler and dial the relay.
        This function is called to start the server.
        """
        scheduler = AsyncIOScheduler()
        scheduler.start()
        relay_client.scheduler = scheduler
        if relay_url and secret:
            logging.info(f"Connecting to relay at {relay_url}...")
            relay_client.connect(f"{relay_url.rstrip('/')}/admin", session_label, secret)
        else:
            logging.info("No RELAY_URL/RELAY_SECRET set, running in local-only mode")
        try:
            yield
        finally:
            relay_client.disconnect()
            scheduler.shutdown()
            logging.info("Stop Server")

    app = FastAPI(lifespan=lifespan)
    app.state.manager = manager
    app.state.handler = handler
    app.state.relay_client = relay_client
    app.include_router(admin.admin_router)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=int(port or 3000))
