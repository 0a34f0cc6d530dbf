from __future__ import annotations

import logging
import os
from typing import Any, Dict

from dotenv import load_dotenv

from shared.protocol.constants import (
    DEFAULT_HEARTBEAT_CALL_TIMEOUT,
    DEFAULT_HEARTBEAT_INTERVAL,
    MAX_CONSECUTIVE_EMPTY_READS,
    MAX_MESSAGE_SIZE,
)

DEFAULT_CONFIG: Dict[str, Any] = {
    "server_host": "127.0.0.1",
    "server_port": 9000,
    "client_id": 0,
    "connect_timeout": 5.0,
    "heartbeat_interval": float(DEFAULT_HEARTBEAT_INTERVAL),
    "heartbeat_call_timeout": DEFAULT_HEARTBEAT_CALL_TIMEOUT,
    "max_empty_reads": MAX_CONSECUTIVE_EMPTY_READS,
    "request_buffer_size": 16,
    "response_buffer_size": 512,
    "max_message_size": MAX_MESSAGE_SIZE,
    "log_level": "INFO",
    "store_path": "",
}

CLIENT_CONFIG: Dict[str, Any] = DEFAULT_CONFIG.copy()


class ConfigError(Exception):
    """Raised when configuration values are invalid."""

    pass


def load_config(env_path: str = ".env") -> Dict[str, Any]:
    """Load client configuration from env file/environment variables."""
    if os.path.exists(env_path):
        load_dotenv(env_path)

    for key, default_value in DEFAULT_CONFIG.items():
        env_key = f"CLIENT_{key.upper()}"
        value = os.getenv(env_key, default_value)
        CLIENT_CONFIG[key] = _coerce_type(value, type(default_value))

    validate_config(CLIENT_CONFIG)
    logging.getLogger().setLevel(CLIENT_CONFIG["log_level"])
    return CLIENT_CONFIG


def _coerce_type(value: Any, target_type: type) -> Any:
    if isinstance(value, target_type):
        return value
    try:
        if target_type is bool:
            return str(value).lower() in ("1", "true", "yes", "on")
        return target_type(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Cannot convert {value} to {target_type}") from exc


def validate_config(config: Dict[str, Any]) -> None:
    if not (1 <= int(config["server_port"]) <= 65535):
        raise ConfigError("server_port must be between 1 and 65535")
    for key in ("connect_timeout", "heartbeat_interval", "heartbeat_call_timeout"):
        if config[key] <= 0:
            raise ConfigError(f"{key} must be positive")
    if config["max_empty_reads"] <= 0:
        raise ConfigError("max_empty_reads must be positive")
    if config["client_id"] < 0:
        raise ConfigError("client_id must not be negative")
    for key in ("request_buffer_size", "response_buffer_size"):
        if not (0 < config[key] <= config["max_message_size"]):
            raise ConfigError(f"{key} must be positive and at most max_message_size")


__all__ = ["CLIENT_CONFIG", "DEFAULT_CONFIG", "ConfigError", "load_config", "validate_config"]
