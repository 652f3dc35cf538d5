# txlistener/listener/scheduler.py

import threading
import time
import uuid
from typing import Optional, Literal

from ..core.logging import LoggingMixin
from ..execution.context import ExecutionContext
from ..types import Block, VM_BLOCK_NUMBER
from .cache import ResolutionCache
from .pipeline import ResolutionPipeline

SchedulerState = Literal["stopped", "polling", "listening"]


class BlockScheduler(LoggingMixin):
    """
    Decides when a block is available and hands it to the pipeline.

    Network environments are polled for their height every `poll_interval`
    seconds, measured from tick start, from a daemon thread; every block
    between the last observed
    height and the new one is dispatched in increasing order. VM
    environments push one notification per executed transaction, which is
    wrapped into a single transaction block numbered -1.

    Every session carries a token. Work started under a token that is no
    longer current (the session was stopped or restarted meanwhile) is
    dropped, including environment results that arrive late.
    """

    def __init__(self,
                 context: ExecutionContext,
                 pipeline: ResolutionPipeline,
                 cache: ResolutionCache,
                 poll_interval: float = 2.0):
        self.context = context
        self.pipeline = pipeline
        self.cache = cache
        self.poll_interval = poll_interval

        self._lock = threading.RLock()
        self._session: Optional[str] = None
        self._state: SchedulerState = "stopped"
        self._stop_event: Optional[threading.Event] = None
        self._polling_thread: Optional[threading.Thread] = None
        self._vm_environment = None
        self._last_block: Optional[int] = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def session(self) -> Optional[str]:
        return self._session

    @property
    def is_active(self) -> bool:
        return self._session is not None

    @property
    def last_block(self) -> Optional[int]:
        return self._last_block

    def is_current(self, token: Optional[str]) -> bool:
        return token is not None and token == self._session

    def start_listening(self) -> str:
        """
        Start a new session against the current environment, stopping any
        active one first. The block log is reset; resolutions are kept.
        """
        with self._lock:
            self.stop_listening()
            self.cache.reset_blocks()
            self._last_block = None

            token = uuid.uuid4().hex[:12]
            self._session = token
            environment = self.context.environment

            if environment.is_vm:
                environment.register_executed_listener(self._on_transaction_executed)
                self._vm_environment = environment
                self._state = "listening"
            else:
                self._stop_event = threading.Event()
                self._polling_thread = threading.Thread(
                    target=self._polling_worker,
                    args=(token, self._stop_event),
                    name=f"txlistener-poll-{token}",
                    daemon=True,
                )
                self._state = "polling"
                self._polling_thread.start()

        self.log_info("Listening started", session=token, mode=self._state)
        return token

    def stop_listening(self) -> None:
        """Stop the active session. Resolutions and the block log are kept."""
        with self._lock:
            if self._session is None:
                return
            token = self._session

            if self._stop_event is not None:
                self._stop_event.set()
            if self._vm_environment is not None:
                self._vm_environment.unregister_executed_listener(self._on_transaction_executed)

            self._session = None
            self._state = "stopped"
            self._stop_event = None
            self._polling_thread = None
            self._vm_environment = None

        self.log_info("Listening stopped", session=token)

    def _next_deadline(self, deadline: float) -> float:
        """
        Deadline of the tick after the one due at `deadline`. Ticks stay on
        the cadence fixed at session start; ticks overrun by a slow poll are
        skipped rather than run back to back.
        """
        now = time.monotonic()
        deadline += self.poll_interval
        if deadline <= now:
            deadline += ((now - deadline) // self.poll_interval + 1) * self.poll_interval
        return deadline

    def _polling_worker(self, token: str, stop_event: threading.Event) -> None:
        deadline = time.monotonic() + self.poll_interval
        while not stop_event.wait(max(0.0, deadline - time.monotonic())):
            deadline = self._next_deadline(deadline)
            if not self.is_current(token):
                break
            try:
                self.poll_once(token)
            except Exception as e:
                self.log_error("Polling tick failed", exc_info=True,
                               session=token,
                               error=str(e),
                               exception_type=type(e).__name__)

    def poll_once(self, token: Optional[str] = None) -> int:
        """
        Run a single polling tick for the given (default: current) session.

        Returns the number of blocks dispatched.
        """
        token = token or self._session
        if not self.is_current(token) or self._state != "polling":
            return 0

        environment = self.context.environment
        try:
            height = environment.current_block_number()
        except Exception as e:
            self.log_error("Failed to fetch block number",
                           session=token,
                           error=str(e),
                           exception_type=type(e).__name__)
            return 0

        with self._lock:
            if not self.is_current(token):
                return 0
            if self._last_block is not None and height <= self._last_block:
                return 0
            if self._last_block is None:
                self._last_block = height - 1
            start = self._last_block + 1
            self._last_block = height

        dispatched = 0
        for block_number in range(start, height + 1):
            try:
                block = environment.get_block(block_number, True)
            except Exception as e:
                self.log_error("Failed to fetch block",
                               session=token,
                               block_number=block_number,
                               error=str(e),
                               exception_type=type(e).__name__)
                with self._lock:
                    if self.is_current(token):
                        # retried on the next tick
                        self._last_block = block_number - 1
                break

            if not self.is_current(token):
                self.log_debug("Dropping block from stale session", session=token, block_number=block_number)
                break

            try:
                self.pipeline.dispatch(block, token)
                dispatched += 1
            except Exception as e:
                self.log_error("Failed to dispatch block",
                               session=token,
                               block_number=block_number,
                               error=str(e),
                               exception_type=type(e).__name__)

        return dispatched

    def _on_transaction_executed(self, tx_hash: Optional[str], error: Optional[BaseException] = None) -> None:
        if error is not None or not tx_hash:
            return

        token = self._session
        if not self.is_current(token) or self._state != "listening":
            return

        environment = self.context.environment
        if not environment.is_vm:
            return

        try:
            tx = environment.get_transaction_by_hash(tx_hash)
        except Exception as e:
            self.log_error("Failed to fetch executed transaction",
                           session=token,
                           tx_hash=tx_hash,
                           error=str(e),
                           exception_type=type(e).__name__)
            return

        if not self.is_current(token):
            return

        self.pipeline.dispatch(Block(origin="vm", number=VM_BLOCK_NUMBER, transactions=[tx]), token)
