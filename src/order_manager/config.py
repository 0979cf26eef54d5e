from __future__ import annotations

from pathlib import Path

import orjson
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from order_manager.cache.keys import TTL
from order_manager.errors import ConfigError
from order_manager.pagination import DEFAULT_MAX_PAGES, DEFAULT_PAGE_SIZE


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ORDER_MANAGER_", env_file=".env", extra="ignore")

    # Bridge server definition (command, args, env, store domain)
    config_file: Path = Path("config.json")

    # Cache
    cache_enabled: bool = True
    cache_namespace: str = "shopify-order-manager"
    cache_default_ttl: int = TTL.FIVE_MINUTES

    # Pagination
    max_pages: int = Field(default=DEFAULT_MAX_PAGES, ge=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=250)

    # Logging
    log_level: str = "WARNING"
    log_json: bool = False


class McpServerConfig(BaseModel):
    """How to launch the bridge server process."""

    command: str
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)


class ServerConfig(BaseModel):
    """Contents of config.json."""

    model_config = {"populate_by_name": True}

    mcp_server: McpServerConfig = Field(alias="mcpServer")
    store_domain: str = Field(alias="storeDomain")


def load_server_config(path: Path | str) -> ServerConfig:
    """Load and validate the bridge server configuration file.

    Raises:
        ConfigError: If the file is missing, not JSON, or incomplete.
    """
    config_path = Path(path)
    try:
        raw = config_path.read_bytes()
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}") from e

    try:
        return ServerConfig.model_validate(orjson.loads(raw))
    except orjson.JSONDecodeError as e:
        raise ConfigError(f"Config file {config_path} is not valid JSON: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"Config file {config_path} is invalid: {e}") from e

