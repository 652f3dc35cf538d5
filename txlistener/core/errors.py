# txlistener/core/errors.py

from typing import Optional, Dict, Any


class TxListenerError(Exception):
    """Base class for every error raised by the listener"""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ConfigurationError(TxListenerError):
    pass


class EnvironmentAdapterError(TxListenerError):
    """Node or VM I/O failed (height, block, code, transaction, receipt)"""
    pass


class ArtifactError(TxListenerError):
    """Compiled artifacts could not be read or are malformed"""
    pass


class ReceiptTimeoutError(EnvironmentAdapterError):
    pass


class CallDecodingError(TxListenerError):
    """Call data does not fit the declared ABI input layout"""
    pass


class SessionExpiredError(TxListenerError):
    """Work belongs to a listening session that has ended"""
    pass
