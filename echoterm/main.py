from __future__ import annotations

import logging

from fastapi import FastAPI

from echoterm.api import terminals
from echoterm.config import settings
from echoterm.services import session_registry

app = FastAPI(title="Local Echo Terminal", version="0.1.0")

app.include_router(terminals.router)


@app.on_event("startup")
async def setup_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )


@app.on_event("shutdown")
async def close_sessions() -> None:
    session_registry.close_all()
