"""HTTP status API for operators.

Mounted next to the TCP game listener when ``--status-port`` is given, so
the session can be inspected without a game client.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from .server import GameServer


def create_app(server: GameServer) -> FastAPI:
    app = FastAPI(title="Pong server", version="1.0.0")
    app.state.game_server = server

    @app.get("/health")
    async def healthcheck() -> JSONResponse:
        """Simple readiness probe."""

        status = "ok" if server.running else "stopped"
        return JSONResponse({"status": status})

    @app.get("/status")
    async def session_status() -> JSONResponse:
        return JSONResponse(server.status())

    return app


__all__ = ["create_app"]
