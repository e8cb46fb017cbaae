# services/config.py
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

import constants


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_str(name: str, default: Optional[str]) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip()


@dataclass(frozen=True)
class Settings:
    """
    Runtime configuration for the relay server.

    Values come from the process environment, after loading a ``.env`` file
    if one is present. See constants.py for the defaults.
    """
    host: str = constants.DEFAULT_HOST
    port: int = constants.DEFAULT_PORT
    ssl_cert_file: Optional[str] = None
    ssl_key_file: Optional[str] = None
    log_level: str = "INFO"
    log_dir: str = "logs"
    heartbeat_interval: int = constants.HEARTBEAT_INTERVAL
    heartbeat_timeout: int = constants.HEARTBEAT_TIMEOUT
    max_message_bytes: int = constants.MAX_MESSAGE_BYTES
    rate_limit_window: int = constants.RATE_LIMIT_WINDOW
    rate_limit_max: int = constants.RATE_LIMIT_MAX
    rate_limit_ban: int = constants.RATE_LIMIT_BAN

    @property
    def tls_enabled(self) -> bool:
        return bool(self.ssl_cert_file and self.ssl_key_file)

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            dotenv (bool, optional): Load a ``.env`` file first. Defaults to True.

        Returns:
            Settings: The resolved configuration.

        Raises:
            ValueError: If a numeric variable is not an integer.
        """
        if dotenv:
            load_dotenv()
        return cls(
            host=_env_str("WEBSOCKET_HOST", constants.DEFAULT_HOST) or constants.DEFAULT_HOST,
            port=_env_int("WEBSOCKET_PORT", constants.DEFAULT_PORT),
            ssl_cert_file=_env_str("SSL_CERT_FILE", None) or None,
            ssl_key_file=_env_str("SSL_KEY_FILE", None) or None,
            log_level=(_env_str("LOG_LEVEL", "INFO") or "INFO").upper(),
            log_dir=_env_str("LOG_DIR", "logs"),
            heartbeat_interval=_env_int("HEARTBEAT_INTERVAL", constants.HEARTBEAT_INTERVAL),
            heartbeat_timeout=_env_int("HEARTBEAT_TIMEOUT", constants.HEARTBEAT_TIMEOUT),
            max_message_bytes=_env_int("MAX_MESSAGE_BYTES", constants.MAX_MESSAGE_BYTES),
            rate_limit_window=_env_int("RATE_LIMIT_WINDOW", constants.RATE_LIMIT_WINDOW),
            rate_limit_max=_env_int("RATE_LIMIT_MAX", constants.RATE_LIMIT_MAX),
            rate_limit_ban=_env_int("RATE_LIMIT_BAN", constants.RATE_LIMIT_BAN),
        )
