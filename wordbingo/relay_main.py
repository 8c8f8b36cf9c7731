import logging
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI

from wordbingo.load_secrets import git_commit, port, relay_secret
from wordbingo.manager import ConnectionManager
from wordbingo.routers import relay
from wordbingo.services.relay_handler import RelayHandler

logging.basicConfig(level=logging.INFO)


def create_app(secret: str = relay_secret, commit: str = git_commit) -> FastAPI:
    """Public relay: players connect at /, the admin process at /admin.

    Run with ``uvicorn --factory wordbingo.relay_main:create_app``.
    """
    if not secret:
        raise RuntimeError("RELAY_SECRET environment variable is required")

    app = FastAPI()
    manager = ConnectionManager()
    app.state.manager = manager
    app.state.relay = RelayHandler(secret, manager)
    app.state.git_commit = commit
    app.state.started_at = datetime.now(timezone.utc).isoformat()
    app.include_router(relay.relay_router)
    return app


if __name__ == "__main__":
    uvicorn.run(create_app(), host="0.0.0.0", port=int(port or 10000))
