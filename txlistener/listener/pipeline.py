# txlistener/listener/pipeline.py

from concurrent.futures import ThreadPoolExecutor, Future, wait
from typing import Callable, Optional

from ..contracts.interfaces import ArtifactProviderInterface
from ..core.errors import SessionExpiredError
from ..core.logging import LoggingMixin
from ..decode.call_decoder import CallDecoder
from ..decode.matcher import ContractMatcher
from ..execution.context import ExecutionContext
from ..types import (
    Block,
    EvmTransaction,
    ResolvedCall,
    NewBlock,
    NewTransaction,
    TxResolved,
)
from .cache import ResolutionCache, Guard
from .events import EventBus

SessionCheck = Callable[[Optional[str]], bool]


class ResolutionPipeline(LoggingMixin):
    """
    Resolves every transaction of a dispatched block and announces it.

    Transactions of one block are resolved concurrently on a thread pool;
    NewBlock is published once all of them finished, whatever the outcome.
    Blocks themselves are handled one at a time by a single coordinating
    worker, so NewBlock notifications follow dispatch order.

    A block dispatched with a session token is only worked on while
    `session_check(token)` holds. Once the session ends, results of
    environment calls are dropped, nothing more is written to the cache and
    nothing more is published. Blocks dispatched without a token always run.
    """

    def __init__(self,
                 cache: ResolutionCache,
                 events: EventBus,
                 artifacts: ArtifactProviderInterface,
                 context: ExecutionContext,
                 matcher: Optional[ContractMatcher] = None,
                 decoder: Optional[CallDecoder] = None,
                 max_workers: int = 16,
                 session_check: Optional[SessionCheck] = None):
        self.cache = cache
        self.events = events
        self.artifacts = artifacts
        self.context = context
        self.matcher = matcher or ContractMatcher()
        self.decoder = decoder or CallDecoder(cache)
        self.session_check = session_check

        self._tx_executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='txlistener-tx')
        self._block_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='txlistener-block')

    def _is_live(self, token: Optional[str]) -> bool:
        if token is None or self.session_check is None:
            return True
        return self.session_check(token)

    def _guard(self, token: Optional[str]) -> Optional[Guard]:
        if token is None or self.session_check is None:
            return None
        return lambda: self._is_live(token)

    def _ensure_live(self, token: Optional[str], tx: EvmTransaction) -> None:
        if not self._is_live(token):
            raise SessionExpiredError(f"Session ended while resolving {tx.hash}",
                                      {"tx_hash": tx.hash, "session": token})

    def dispatch(self, block: Block, token: Optional[str] = None) -> Future:
        """
        Record the block and queue it for resolution under session `token`.
        Returns without waiting for resolution; the future completes after
        NewBlock was published or the block was dropped as stale.
        """
        self.cache.append_block(block)
        return self._block_executor.submit(self._resolve_block, block, token)

    def process_block(self, block: Block, token: Optional[str] = None) -> None:
        """Record, resolve and announce a block on the calling thread"""
        self.cache.append_block(block)
        self._resolve_block(block, token)

    def _resolve_block(self, block: Block, token: Optional[str] = None) -> None:
        if not self._is_live(token):
            self.log_debug("Dropping block from ended session",
                           block_number=block.number, origin=block.origin, session=token)
            return

        try:
            futures = [self._tx_executor.submit(self._handle_transaction, tx, token)
                       for tx in block.transactions]
            wait(futures)
        except Exception as e:
            self.log_error("Block resolution failed", exc_info=True,
                           block_number=block.number,
                           origin=block.origin,
                           error=str(e),
                           exception_type=type(e).__name__)

        if not self._is_live(token):
            self.log_debug("Session ended before block completed",
                           block_number=block.number, origin=block.origin, session=token)
            return

        self.log_debug("Block resolved",
                       block_number=block.number,
                       origin=block.origin,
                       transaction_count=len(block.transactions))
        self.events.publish(NewBlock(block=block))

    def _handle_transaction(self, tx: EvmTransaction, token: Optional[str] = None) -> Optional[ResolvedCall]:
        resolved = None
        try:
            resolved = self.resolve_transaction(tx, token)
        except SessionExpiredError:
            self.log_debug("Dropping transaction from ended session", tx_hash=tx.hash, session=token)
            return None
        except Exception as e:
            self.log_warning("Transaction resolution failed",
                             tx_hash=tx.hash,
                             error=str(e),
                             exception_type=type(e).__name__)

        if not self._is_live(token):
            return None
        if resolved is not None:
            self.events.publish(TxResolved(tx=tx, resolved=resolved))
        self.events.publish(NewTransaction(tx=tx))
        return resolved

    def resolve_transaction(self, tx: EvmTransaction, token: Optional[str] = None) -> Optional[ResolvedCall]:
        """
        Resolve a single transaction. None when no compiled contract matches;
        environment and decoding errors propagate to the caller.

        Raises SessionExpiredError when `token` stops naming the active
        session before the result is stored.
        """
        known = self.cache.resolved_transaction(tx.hash)
        if known is not None:
            return known

        contracts = self.artifacts.contracts()
        if not contracts:
            return None

        guard = self._guard(token)

        if not tx.to:
            # creation: match the creation bytecode, the receipt gives the address
            contract_name = self.matcher.try_resolve_contract(tx.input, contracts, 'bytecode')
            if not contract_name:
                return None

            receipt = self.artifacts.resolve_receipt(tx, guard)
            self._ensure_live(token, tx)
            address = receipt.contractAddress
            if address:
                self.cache.record_contract(address, contract_name, guard)
                self._ensure_live(token, tx)
            self.log_debug("Contract creation resolved",
                           tx_hash=tx.hash,
                           contract_name=contract_name,
                           contract_address=address)
            return self._decode(contract_name, contracts, tx, True, address, token)

        contract_name = self.cache.resolved_contract(tx.to)
        if not contract_name:
            code = self.context.environment.get_deployed_code(tx.to)
            self._ensure_live(token, tx)
            contract_name = self.matcher.try_resolve_contract(code, contracts, 'runtime_bytecode')
            if not contract_name:
                return None
            contract_name = self.cache.record_contract(tx.to, contract_name, guard)
            self._ensure_live(token, tx)

        if contract_name not in contracts:
            self.log_warning("Indexed contract missing from artifacts",
                             contract_address=tx.to,
                             contract_name=contract_name)
            return None

        return self._decode(contract_name, contracts, tx, False, None, token)

    def _decode(self, contract_name: str, contracts, tx: EvmTransaction, is_constructor: bool,
                address: Optional[str], token: Optional[str]) -> ResolvedCall:
        resolved = self.decoder.resolve_function(contract_name, contracts, tx, is_constructor,
                                                 address, self._guard(token))
        # a rejected write means the session ended meanwhile
        self._ensure_live(token, tx)
        return resolved

    def shutdown(self, wait_for_pending: bool = True) -> None:
        self._block_executor.shutdown(wait=wait_for_pending)
        self._tx_executor.shutdown(wait=wait_for_pending)
