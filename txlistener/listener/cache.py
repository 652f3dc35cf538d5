# txlistener/listener/cache.py

import threading
from typing import Callable, Optional, Dict, List, Tuple

from ..types import Block, ResolvedCall, EvmAddress, EvmHash

Guard = Callable[[], bool]


def _address_key(address: str) -> str:
    return address.lower()


def _hash_key(tx_hash: str) -> str:
    return tx_hash.lower()


class ResolutionCache:
    """
    Session context shared by the scheduler and the pipeline.

    Holds the address -> contract name index, the tx hash -> ResolvedCall
    memo and the log of observed blocks. Entries are write-once: the first
    writer for a key wins and later writers get the stored value back.
    Restarting a listening session only resets the block log.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._resolved_contracts: Dict[str, str] = {}
        self._resolved_transactions: Dict[str, ResolvedCall] = {}
        self._blocks: List[Block] = []

    # lookups

    def resolved_contract(self, address: Optional[str]) -> Optional[str]:
        if not address:
            return None
        return self._resolved_contracts.get(_address_key(address))

    def resolved_transaction(self, tx_hash: Optional[str]) -> Optional[ResolvedCall]:
        if not tx_hash:
            return None
        return self._resolved_transactions.get(_hash_key(tx_hash))

    # writers

    # `guard` is evaluated under the cache lock; a False result drops the
    # write and returns None. clear() takes the same lock.

    def record_contract(self, address: EvmAddress, contract_name: str,
                        guard: Optional[Guard] = None) -> Optional[str]:
        with self._lock:
            if guard is not None and not guard():
                return None
            return self._resolved_contracts.setdefault(_address_key(address), contract_name)

    def record_transaction(self, tx_hash: EvmHash, resolved: ResolvedCall,
                           guard: Optional[Guard] = None) -> Optional[ResolvedCall]:
        with self._lock:
            if guard is not None and not guard():
                return None
            return self._resolved_transactions.setdefault(_hash_key(tx_hash), resolved)

    # block log

    def append_block(self, block: Block) -> None:
        with self._lock:
            self._blocks.append(block)

    @property
    def blocks(self) -> Tuple[Block, ...]:
        with self._lock:
            return tuple(self._blocks)

    def reset_blocks(self) -> None:
        with self._lock:
            self._blocks = []

    def clear(self) -> None:
        with self._lock:
            self._resolved_contracts.clear()
            self._resolved_transactions.clear()
            self._blocks = []

    def stats(self) -> Dict[str, int]:
        return {
            'contracts': len(self._resolved_contracts),
            'transactions': len(self._resolved_transactions),
            'blocks': len(self._blocks),
        }
