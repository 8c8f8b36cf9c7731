import logging

import uvicorn
from fastapi import FastAPI

from wordbingo.load_secrets import port
from wordbingo.manager import ConnectionManager
from wordbingo.routers import unified
from wordbingo.services.unified_handler import UnifiedHandler

logging.basicConfig(level=logging.INFO)


def create_app() -> FastAPI:
    """Single-process server: the admin and every player connect here directly."""
    app = FastAPI()
    manager = ConnectionManager()
    app.state.manager = manager
    app.state.handler = UnifiedHandler(manager)
    app.include_router(unified.unified_router)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=int(port or 3000))
