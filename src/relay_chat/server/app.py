from __future__ import annotations

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from relay_chat.app_config import AppConfig
from relay_chat.server.socket_service import SocketService

HEALTH_PAYLOAD = {"status": "ok", "message": "Server is running"}


def create_http_app(config: AppConfig) -> FastAPI:
    app = FastAPI(title="relay-chat", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.allowed_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.get("/health")
    def health() -> dict[str, str]:
        return dict(HEALTH_PAYLOAD)

    return app


def create_asgi_app(service: SocketService, http_app: FastAPI) -> socketio.ASGIApp:
    """Serve Socket.IO on its default path and hand every other request to ``http_app``."""
    return socketio.ASGIApp(service.io, other_asgi_app=http_app)
