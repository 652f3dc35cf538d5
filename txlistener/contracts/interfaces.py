"""
Interfaces for compiled contract artifacts.
"""
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

from ..types import CompiledContract, EvmTransaction, EvmTxReceipt


class ArtifactProviderInterface(ABC):
    """Interface for artifact provider implementations."""

    @abstractmethod
    def contracts(self) -> Optional[Dict[str, CompiledContract]]:
        """
        Get every compiled contract keyed by name, in a stable order.

        Returns:
            Contracts, or None when nothing has been compiled
        """
        pass

    @abstractmethod
    def resolve_receipt(self, tx: EvmTransaction,
                        is_active: Optional[Callable[[], bool]] = None) -> EvmTxReceipt:
        """
        Get the receipt of a contract creation transaction, waiting for it
        to be mined if needed.

        The wait ends with SessionExpiredError as soon as `is_active`
        returns False.
        """
        pass
