"""
Interfaces for execution environments.

An environment serves block heights, block bodies, deployed code,
transactions and receipts, either from a network node or from an
in-process VM. VM environments also push a notification for every
transaction they execute.
"""
from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..types import Block, EvmTransaction, EvmTxReceipt, HexStr

ExecutedCallback = Callable[[Optional[str], Optional[BaseException]], None]


class EnvironmentInterface(ABC):
    """Interface for environment adapters."""

    @property
    @abstractmethod
    def is_vm(self) -> bool:
        """
        True when the environment executes transactions in process and pushes
        them instead of being polled.
        """
        pass

    @abstractmethod
    def current_block_number(self) -> int:
        """
        Get the latest block number.
        """
        pass

    @abstractmethod
    def get_block(self, block_number: int, full_transactions: bool = True) -> Block:
        """
        Get a block by number.

        Args:
            block_number: Block number
            full_transactions: Whether to include full transaction objects

        Returns:
            Block with its transactions
        """
        pass

    @abstractmethod
    def get_deployed_code(self, address: str) -> HexStr:
        """
        Get the runtime code stored at an address ("0x" for accounts).
        """
        pass

    @abstractmethod
    def get_transaction_by_hash(self, tx_hash: str) -> EvmTransaction:
        pass

    @abstractmethod
    def get_transaction_receipt(self, tx_hash: str) -> Optional[EvmTxReceipt]:
        """
        Get a transaction receipt, None while the transaction is pending.
        """
        pass

    @abstractmethod
    def register_executed_listener(self, callback: ExecutedCallback) -> None:
        """
        Register a callback fired with (tx_hash, error) for every executed
        transaction. Network environments never fire it.
        """
        pass

    @abstractmethod
    def unregister_executed_listener(self, callback: ExecutedCallback) -> None:
        pass
