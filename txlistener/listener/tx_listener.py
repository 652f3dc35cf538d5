# txlistener/listener/tx_listener.py

from typing import Callable, Optional, Tuple, Type

from ..clients.interfaces import EnvironmentInterface
from ..contracts.interfaces import ArtifactProviderInterface
from ..core.config import ListenerConfig
from ..core.logging import LoggingMixin
from ..execution.context import ExecutionContext
from ..types import Block, ResolvedCall
from .cache import ResolutionCache
from .events import EventBus, E
from .pipeline import ResolutionPipeline
from .scheduler import BlockScheduler


class TxListener(LoggingMixin):
    """
    Watches the active environment and labels every transaction it sees.

    Subscribe to NewBlock, NewTransaction and TxResolved to observe the
    stream; `resolved_contract` and `resolved_transaction` answer lookups
    from the resolution cache at any time.
    """

    def __init__(self,
                 context: ExecutionContext,
                 artifacts: ArtifactProviderInterface,
                 config: Optional[ListenerConfig] = None):
        self.config = config or ListenerConfig()
        self.context = context
        self.artifacts = artifacts

        self.cache = ResolutionCache()
        self.events = EventBus()
        self.pipeline = ResolutionPipeline(
            cache=self.cache,
            events=self.events,
            artifacts=artifacts,
            context=context,
            max_workers=self.config.max_workers,
        )
        self.scheduler = BlockScheduler(
            context=context,
            pipeline=self.pipeline,
            cache=self.cache,
            poll_interval=self.config.poll_interval,
        )
        self.pipeline.session_check = self.scheduler.is_current

        self.context.register_context_changed(self._on_context_changed)

    # lifecycle

    def init(self, reset_cache: bool = False) -> None:
        """Reset recorded blocks, and the resolutions too when asked"""
        if reset_cache:
            self.cache.clear()
        else:
            self.cache.reset_blocks()

    def start_listening(self) -> str:
        return self.scheduler.start_listening()

    def stop_listening(self) -> None:
        self.scheduler.stop_listening()

    @property
    def is_listening(self) -> bool:
        return self.scheduler.is_active

    def close(self) -> None:
        self.stop_listening()
        self.context.unregister_context_changed(self._on_context_changed)
        self.pipeline.shutdown()

    def _on_context_changed(self, environment: EnvironmentInterface) -> None:
        if not self.scheduler.is_active:
            return
        # end the old session first so in-flight work cannot write after the clear
        self.scheduler.stop_listening()
        if self.config.reset_cache_on_context_change:
            # addresses and hashes of the previous chain mean nothing on the new one
            self.cache.clear()
        self.log_info("Restarting listener for new environment", vm=environment.is_vm)
        self.scheduler.start_listening()

    # lookups

    def resolved_contract(self, address: str) -> Optional[str]:
        return self.cache.resolved_contract(address)

    def resolved_transaction(self, tx_hash: str) -> Optional[ResolvedCall]:
        return self.cache.resolved_transaction(tx_hash)

    @property
    def blocks(self) -> Tuple[Block, ...]:
        return self.cache.blocks

    # events

    def subscribe(self, event_type: Type[E], handler: Callable[[E], None]) -> None:
        self.events.subscribe(event_type, handler)

    def unsubscribe(self, event_type: Type[E], handler: Callable[[E], None]) -> None:
        self.events.unsubscribe(event_type, handler)
