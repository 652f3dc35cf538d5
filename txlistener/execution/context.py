# txlistener/execution/context.py

import threading
from typing import Callable, List

from ..clients.interfaces import EnvironmentInterface
from ..core.logging import LoggingMixin

ContextChangedCallback = Callable[[EnvironmentInterface], None]


class ExecutionContext(LoggingMixin):
    """
    Owns the active environment (network node or in-process VM) and tells
    subscribers when it is swapped for another one.
    """

    def __init__(self, environment: EnvironmentInterface):
        self._environment = environment
        self._lock = threading.Lock()
        self._callbacks: List[ContextChangedCallback] = []

    @property
    def environment(self) -> EnvironmentInterface:
        return self._environment

    def set_environment(self, environment: EnvironmentInterface) -> None:
        with self._lock:
            if environment is self._environment:
                return
            self._environment = environment
            callbacks = list(self._callbacks)

        self.log_info("Execution environment changed",
                      environment=type(environment).__name__,
                      vm=environment.is_vm)

        for callback in callbacks:
            try:
                callback(environment)
            except Exception as e:
                self.log_error("Context change handler failed",
                               error=str(e),
                               exception_type=type(e).__name__)

    def register_context_changed(self, callback: ContextChangedCallback) -> None:
        with self._lock:
            if callback not in self._callbacks:
                self._callbacks.append(callback)

    def unregister_context_changed(self, callback: ContextChangedCallback) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)
