"""Keep-alive HTTP listener for hosts that require an open port."""

import logging
import threading

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from .config import KeepAliveConfig

logger = logging.getLogger(__name__)

LIVENESS_MESSAGE = "Gmail alert agent is running"


def create_app() -> FastAPI:
    app = FastAPI(title="Gmail Alert Agent", docs_url=None, redoc_url=None)

    @app.get("/", response_class=PlainTextResponse)
    def health() -> str:
        return LIVENESS_MESSAGE

    return app


def start_keepalive_server(config: KeepAliveConfig) -> threading.Thread:
    """Serve the liveness route on a daemon thread and return the thread."""
    server = uvicorn.Server(
        uvicorn.Config(create_app(), host=config.host, port=config.port, log_level="warning")
    )
    thread = threading.Thread(target=server.run, name="keepalive", daemon=True)
    thread.start()
    logger.info(f"Keep-alive listener on {config.host}:{config.port}")
    return thread
