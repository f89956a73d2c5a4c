from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import socketio
from loguru import logger

from relay_chat.app_config import AppConfig, RuntimeEnv
from relay_chat.chat.state import ChatStateMachine
from relay_chat.client.connection import ConnectionManager
from relay_chat.client.repl import ChatRepl
from relay_chat.client.session import ChatSession
from relay_chat.logging_config import setup_logging
from relay_chat.provider import CompletionSource, create_provider
from relay_chat.server.app import create_asgi_app, create_http_app
from relay_chat.server.relay import StreamingRelay
from relay_chat.server.socket_service import SocketService
from relay_chat.storage import ChatStorage, LocalStorage


@dataclass
class ServerRuntime:
    asgi_app: socketio.ASGIApp
    socket_service: SocketService
    relay: StreamingRelay
    log_descriptions: list[str]


@dataclass
class ClientRuntime:
    state: ChatStateMachine
    connection: ConnectionManager
    session: ChatSession
    repl: ChatRepl
    local_storage: LocalStorage
    log_descriptions: list[str]


def bootstrap_server(
    app: AppConfig,
    env: RuntimeEnv,
    *,
    provider: CompletionSource | None = None,
) -> ServerRuntime:
    log_descriptions = setup_logging(level=app.log_level, consumers=app.log_consumers)

    if provider is None:
        provider = create_provider(
            app.provider_name,
            env.require_api_key(),
            model=app.model,
            max_tokens=app.max_tokens,
            temperature=app.temperature,
        )

    io = socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=list(app.allowed_origins),
        cors_credentials=True,
    )
    relay = StreamingRelay(provider, io.emit)
    socket_service = SocketService(io, relay)
    asgi_app = create_asgi_app(socket_service, create_http_app(app))
    logger.info(f"Relay ready: provider={app.provider_name}, origins={', '.join(app.allowed_origins)}")

    return ServerRuntime(
        asgi_app=asgi_app,
        socket_service=socket_service,
        relay=relay,
        log_descriptions=log_descriptions,
    )


def bootstrap_client(app: AppConfig, *, connection: ConnectionManager | None = None) -> ClientRuntime:
    log_descriptions = setup_logging(level=app.log_level, consumers=app.log_consumers, process="client")

    storage_path = app.storage_path
    if storage_path != ":memory:" and not Path(storage_path).is_absolute():
        storage_path = str(Path.cwd() / storage_path)
    local_storage = LocalStorage(storage_path, quota_bytes=app.storage_quota_bytes)
    state = ChatStateMachine(ChatStorage(local_storage))

    if connection is None:
        connection = ConnectionManager(app.server_url)

    session = ChatSession(state, connection)
    repl = ChatRepl(session, connection)

    return ClientRuntime(
        state=state,
        connection=connection,
        session=session,
        repl=repl,
        local_storage=local_storage,
        log_descriptions=log_descriptions,
    )
