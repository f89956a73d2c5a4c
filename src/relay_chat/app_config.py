from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from relay_chat.storage.local_storage import DEFAULT_QUOTA_BYTES

DEFAULT_PORT = 3000
DEFAULT_ALLOWED_ORIGINS = ("http://localhost:5173",)

_API_KEY_ENV_VARS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


class MissingCredentialError(RuntimeError):
    """Raised at startup when the upstream API key is not configured."""


@dataclass
class RuntimeEnv:
    provider_api_key: str
    provider_env_var: str

    def require_api_key(self) -> str:
        if not self.provider_api_key:
            raise MissingCredentialError(f"{self.provider_env_var} environment variable is required.")
        return self.provider_api_key


@dataclass
class AppConfig:
    provider_name: str
    model: str | None
    max_tokens: int
    temperature: float
    host: str
    port: int
    allowed_origins: tuple[str, ...]
    server_url: str
    storage_path: str
    storage_quota_bytes: int
    log_level: str
    log_consumers: list | None


def load_json_config() -> dict:
    config_path = Path.cwd() / "config.json"
    if config_path.exists():
        with open(config_path) as f:
            return json.load(f)
    return {}


def _resolve_port(config: dict) -> int:
    env_port = os.environ.get("PORT", "").strip()
    if env_port:
        return int(env_port)
    return int(config.get("Port", DEFAULT_PORT))


def parse_app_config(config: dict) -> AppConfig:
    origins = config.get("AllowedOrigins", DEFAULT_ALLOWED_ORIGINS)
    if isinstance(origins, str):
        origins = [origins]
    return AppConfig(
        provider_name=str(config.get("Provider", "openai")).strip().lower(),
        model=str(config.get("Model", "")).strip() or None,
        max_tokens=int(config.get("MaxTokens", 4096)),
        temperature=float(config.get("Temperature", 1.0)),
        host=str(config.get("Host", "0.0.0.0")),
        port=_resolve_port(config),
        allowed_origins=tuple(origins),
        server_url=str(config.get("ServerUrl", f"http://localhost:{DEFAULT_PORT}")),
        storage_path=str(config.get("StoragePath", ".relay_chat/storage.db")),
        storage_quota_bytes=int(config.get("StorageQuotaBytes", DEFAULT_QUOTA_BYTES)),
        log_level=config.get("LogLevel", "INFO"),
        log_consumers=config.get("LogConsumers"),
    )


def resolve_runtime_env(provider_name: str) -> RuntimeEnv:
    env_var = _API_KEY_ENV_VARS.get(provider_name, "OPENAI_API_KEY")
    return RuntimeEnv(
        provider_api_key=os.environ.get(env_var, ""),
        provider_env_var=env_var,
    )
