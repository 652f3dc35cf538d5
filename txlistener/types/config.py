# txlistener/types/config.py

from typing import Optional, Literal

from msgspec import Struct

ProviderKind = Literal["network", "vm"]


class RpcConfig(Struct):
    endpoint_url: str = "http://127.0.0.1:8545"
    timeout: int = 30


class LoggingConfig(Struct):
    log_level: str = "INFO"
    log_dir: Optional[str] = None
    console_enabled: bool = True
    file_enabled: bool = False
    structured_format: bool = False


