# txlistener/contracts/artifacts.py

import threading
import time
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from ..core.errors import ReceiptTimeoutError, SessionExpiredError
from ..core.logging import LoggingMixin
from ..execution.context import ExecutionContext
from ..types import CompiledContract, EvmTransaction, EvmTxReceipt
from .interfaces import ArtifactProviderInterface
from .loader import load_artifacts


class CompiledArtifactProvider(ArtifactProviderInterface, LoggingMixin):
    """
    Serves compiled contracts and resolves creation receipts through the
    active environment.

    The contract set can be replaced after a recompilation with
    `set_contracts`; readers always see a complete set.
    """

    def __init__(self,
                 context: ExecutionContext,
                 contracts: Optional[Dict[str, CompiledContract]] = None,
                 receipt_timeout: float = 30.0,
                 poll_latency: float = 0.5):
        self.context = context
        self.receipt_timeout = receipt_timeout
        self.poll_latency = poll_latency
        self._contracts: Optional[Dict[str, CompiledContract]] = dict(contracts) if contracts else None
        self._lock = threading.Lock()

    @classmethod
    def from_path(cls, path: Union[str, Path], context: ExecutionContext,
                  receipt_timeout: float = 30.0) -> 'CompiledArtifactProvider':
        return cls(context, load_artifacts(path), receipt_timeout=receipt_timeout)

    def contracts(self) -> Optional[Dict[str, CompiledContract]]:
        return self._contracts

    def set_contracts(self, contracts: Optional[Dict[str, CompiledContract]]) -> None:
        with self._lock:
            self._contracts = dict(contracts) if contracts else None
        self.log_info("Compiled contracts updated", contract_count=len(contracts or {}))

    def reload(self, path: Union[str, Path]) -> None:
        self.set_contracts(load_artifacts(path))

    def resolve_receipt(self, tx: EvmTransaction,
                        is_active: Optional[Callable[[], bool]] = None) -> EvmTxReceipt:
        """
        Wait for the receipt of `tx`. Network nodes may not have mined the
        transaction yet when its block is observed, so the lookup is retried
        until `receipt_timeout` elapses or `is_active` turns False.
        """
        deadline = time.monotonic() + self.receipt_timeout
        environment = self.context.environment

        while True:
            receipt = environment.get_transaction_receipt(tx.hash)
            if is_active is not None and not is_active():
                raise SessionExpiredError(f"Session ended while waiting for {tx.hash}", {"tx_hash": tx.hash})
            if receipt is not None:
                return receipt
            if time.monotonic() >= deadline:
                raise ReceiptTimeoutError(f"No receipt for {tx.hash} after {self.receipt_timeout}s",
                                          {"tx_hash": tx.hash})
            time.sleep(self.poll_latency)
