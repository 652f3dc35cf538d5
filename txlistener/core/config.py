# txlistener/core/config.py

import os
from typing import Optional, Mapping

import msgspec
from msgspec import Struct, field
from dotenv import load_dotenv

from ..types import RpcConfig, LoggingConfig, ProviderKind
from .errors import ConfigurationError

ENV_PREFIX = "TXLISTENER_"


def _env_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class ListenerConfig(Struct):
    rpc: RpcConfig = field(default_factory=RpcConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    provider: ProviderKind = "network"
    poll_interval: float = 2.0
    max_workers: int = 16
    receipt_timeout: float = 30.0
    artifacts_path: Optional[str] = None
    reset_cache_on_context_change: bool = True

    def __post_init__(self) -> None:
        if self.poll_interval <= 0:
            raise ConfigurationError("poll_interval must be positive", {"poll_interval": self.poll_interval})
        if self.max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1", {"max_workers": self.max_workers})
        if self.receipt_timeout < 0:
            raise ConfigurationError("receipt_timeout must not be negative",
                                     {"receipt_timeout": self.receipt_timeout})

    @property
    def is_vm(self) -> bool:
        return self.provider == "vm"

    @classmethod
    def from_env(cls, env_vars: Optional[Mapping[str, str]] = None, load_env_file: bool = True,
                 **overrides) -> 'ListenerConfig':
        """
        Build configuration from TXLISTENER_* variables.

        A .env file in the working directory is loaded first unless explicit
        env_vars are given. Keyword overrides win over the environment.
        """
        if env_vars is None:
            if load_env_file:
                load_dotenv()
            env_vars = os.environ

        def get(name: str, default: Optional[str] = None) -> Optional[str]:
            return env_vars.get(f"{ENV_PREFIX}{name}", default)

        raw = {
            "rpc": {
                "endpoint_url": get("RPC_URL", RpcConfig().endpoint_url),
                "timeout": get("RPC_TIMEOUT", "30"),
            },
            "logging": {
                "log_level": get("LOG_LEVEL", "INFO"),
                "log_dir": get("LOG_DIR"),
                "console_enabled": _env_bool(get("LOG_CONSOLE"), True),
                "file_enabled": _env_bool(get("LOG_FILE"), False),
                "structured_format": _env_bool(get("LOG_STRUCTURED"), False),
            },
            "provider": get("PROVIDER", "network"),
            "poll_interval": get("POLL_INTERVAL", "2.0"),
            "max_workers": get("MAX_WORKERS", "16"),
            "receipt_timeout": get("RECEIPT_TIMEOUT", "30.0"),
            "artifacts_path": get("ARTIFACTS"),
            "reset_cache_on_context_change": _env_bool(get("RESET_CACHE_ON_SWITCH"), True),
        }
        raw.update({key: value for key, value in overrides.items() if value is not None})

        try:
            config = msgspec.convert(raw, type=cls, strict=False)
        except msgspec.ValidationError as e:
            raise ConfigurationError(f"Invalid listener configuration: {e}") from e

        return config
