# txlistener/clients/web3_environment.py

import threading
from typing import Any, Dict, List, Mapping, Optional

from web3 import Web3
from web3.exceptions import TransactionNotFound
from hexbytes import HexBytes

from ..core.errors import EnvironmentAdapterError
from ..core.logging import LoggingMixin
from ..types import Block, EvmTransaction, EvmTxReceipt, HexStr
from .interfaces import EnvironmentInterface, ExecutedCallback


def to_hex(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value if value.startswith("0x") else f"0x{value}"
    if isinstance(value, (bytes, bytearray, HexBytes)):
        return "0x" + bytes(value).hex()
    if isinstance(value, int):
        return hex(value)
    raise TypeError(f"Cannot convert {type(value).__name__} to hex")


def to_evm_transaction(tx: Mapping[str, Any]) -> EvmTransaction:
    """Normalize a web3 transaction (AttributeDict) into an EvmTransaction"""
    return EvmTransaction(
        hash=to_hex(tx["hash"]),
        input=to_hex(tx.get("input") or tx.get("data")) or HexStr("0x"),
        to=tx.get("to") or None,
        from_=tx.get("from"),
        value=int(tx.get("value") or 0),
        nonce=tx.get("nonce"),
        blockHash=to_hex(tx.get("blockHash")),
        blockNumber=tx.get("blockNumber"),
        transactionIndex=tx.get("transactionIndex"),
        gas=tx.get("gas"),
    )


def to_evm_receipt(receipt: Mapping[str, Any]) -> EvmTxReceipt:
    return EvmTxReceipt(
        transactionHash=to_hex(receipt["transactionHash"]),
        contractAddress=receipt.get("contractAddress"),
        status=receipt.get("status"),
        blockNumber=receipt.get("blockNumber"),
        gasUsed=receipt.get("gasUsed"),
        to=receipt.get("to"),
        from_=receipt.get("from"),
    )


class Web3Environment(EnvironmentInterface, LoggingMixin):
    """
    Environment backed by a web3 connection to a network node.

    Every call is wrapped so node failures surface as EnvironmentAdapterError.
    """

    def __init__(self, w3: Web3):
        self.w3 = w3
        self._listeners: List[ExecutedCallback] = []
        self._listeners_lock = threading.Lock()

    @classmethod
    def from_endpoint(cls, endpoint_url: str, timeout: int = 30) -> 'Web3Environment':
        w3 = Web3(Web3.HTTPProvider(endpoint_url, request_kwargs={"timeout": timeout}))
        if not w3.is_connected():
            raise EnvironmentAdapterError("Failed to connect to RPC endpoint", {"endpoint_url": endpoint_url})
        return cls(w3)

    @property
    def is_vm(self) -> bool:
        return False

    @property
    def origin(self) -> str:
        return "vm" if self.is_vm else "network"

    def _call(self, operation: str, func, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except EnvironmentAdapterError:
            raise
        except Exception as e:
            raise EnvironmentAdapterError(f"{operation} failed: {e}",
                                          {"operation": operation, "args": args}) from e

    def current_block_number(self) -> int:
        return self._call("eth_blockNumber", lambda: self.w3.eth.block_number)

    def get_block(self, block_number: int, full_transactions: bool = True) -> Block:
        """
        Get a block using block_number. Transaction hashes only are turned
        into transactions through extra lookups when full_transactions is False.
        """
        raw = self._call("eth_getBlockByNumber", self.w3.eth.get_block, block_number,
                         full_transactions=full_transactions)

        transactions = []
        for tx in raw.get("transactions", []):
            if isinstance(tx, (bytes, str)):
                transactions.append(self.get_transaction_by_hash(to_hex(tx)))
            else:
                transactions.append(to_evm_transaction(tx))

        return Block(
            origin=self.origin,
            number=raw.get("number", block_number),
            transactions=transactions,
            hash=to_hex(raw.get("hash")),
            timestamp=raw.get("timestamp"),
        )

    def get_deployed_code(self, address: str) -> HexStr:
        code = self._call("eth_getCode", self.w3.eth.get_code, Web3.to_checksum_address(address))
        return HexStr(to_hex(code) or "0x")

    def get_transaction_by_hash(self, tx_hash: str) -> EvmTransaction:
        tx = self._call("eth_getTransactionByHash", self.w3.eth.get_transaction, tx_hash)
        return to_evm_transaction(tx)

    def get_transaction_receipt(self, tx_hash: str) -> Optional[EvmTxReceipt]:
        try:
            receipt = self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        except Exception as e:
            raise EnvironmentAdapterError(f"eth_getTransactionReceipt failed: {e}",
                                          {"operation": "eth_getTransactionReceipt", "tx_hash": tx_hash}) from e
        return to_evm_receipt(receipt)

    # push notifications

    def register_executed_listener(self, callback: ExecutedCallback) -> None:
        with self._listeners_lock:
            if callback not in self._listeners:
                self._listeners.append(callback)

    def unregister_executed_listener(self, callback: ExecutedCallback) -> None:
        with self._listeners_lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    def _notify_executed(self, tx_hash: Optional[str], error: Optional[BaseException]) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(tx_hash, error)
            except Exception as e:
                self.log_error("Executed transaction listener failed",
                               tx_hash=tx_hash,
                               error=str(e),
                               exception_type=type(e).__name__)


class VmEnvironment(Web3Environment):
    """
    In-process environment (e.g. web3 over EthereumTesterProvider).

    Transactions must be sent through `send_transaction` so that every
    execution is pushed to the registered listeners.
    """

    @property
    def is_vm(self) -> bool:
        return True

    def send_transaction(self, transaction: Dict[str, Any]) -> str:
        try:
            tx_hash = to_hex(self.w3.eth.send_transaction(transaction))
        except Exception as e:
            self._notify_executed(None, e)
            raise EnvironmentAdapterError(f"eth_sendTransaction failed: {e}",
                                          {"operation": "eth_sendTransaction"}) from e

        self._notify_executed(tx_hash, None)
        return tx_hash
