import asyncio
import sys

import uvicorn
from dotenv import load_dotenv
from loguru import logger

from relay_chat.app_config import (
    AppConfig,
    MissingCredentialError,
    load_json_config,
    parse_app_config,
    resolve_runtime_env,
)
from relay_chat.bootstrap import bootstrap_client, bootstrap_server

_USAGE = "usage: python -m relay_chat [serve|chat]"


def _load_app_config() -> AppConfig:
    load_dotenv()
    return parse_app_config(load_json_config())


def serve() -> None:
    app = _load_app_config()
    env = resolve_runtime_env(app.provider_name)
    try:
        runtime = bootstrap_server(app, env)
    except MissingCredentialError as ex:
        logger.error(str(ex))
        sys.exit(1)

    logger.info(f"Server is running on http://localhost:{app.port}")
    if runtime.log_descriptions:
        logger.info(f"Logging: {', '.join(runtime.log_descriptions)}")
    uvicorn.run(runtime.asgi_app, host=app.host, port=app.port, log_config=None)


async def run_chat(app: AppConfig) -> None:
    runtime = bootstrap_client(app)

    print("relay-chat (type 'exit' to quit, '/help' for commands)")
    print(f"Server: {app.server_url}")
    active = runtime.state.active_chat
    if active is not None:
        print(f"Active chat: {active.title} ({len(runtime.state.chats)} chat(s) stored)")
    if runtime.log_descriptions:
        print(f"Logging: {', '.join(runtime.log_descriptions)}")
    print()

    await runtime.connection.start()
    try:
        await runtime.repl.run()
    finally:
        await runtime.connection.close()
        runtime.local_storage.close()


def chat() -> None:
    app = _load_app_config()
    asyncio.run(run_chat(app))


def main(argv: list[str] | None = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    command = args[0] if args else "serve"
    if command == "serve":
        serve()
    elif command == "chat":
        chat()
    else:
        print(_USAGE, file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
