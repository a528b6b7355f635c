import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from . import __version__
from .registry import NODE_TYPES
from .routes import nodes


log = logging.getLogger("upstage_nodes.main")


def configure_logging() -> None:
    """Set the root log level from UPSTAGE_LOG_LEVEL (default INFO)."""
    level = os.environ.get("UPSTAGE_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and report the registered node types on startup."""
    configure_logging()
    if not os.environ.get("UPSTAGE_API_KEY"):
        log.warning("UPSTAGE_API_KEY not set; requests must send X-Upstage-Api-Key")
    log.info("Registered nodes: %s", ", ".join(sorted(NODE_TYPES)))
    yield


app = FastAPI(title="Upstage Workflow Nodes", version=__version__, lifespan=lifespan)

app.include_router(nodes.router)


@app.get("/api/health")
def health():
    """Minimal liveness endpoint for workflow host checks."""
    return {"status": "ok"}
