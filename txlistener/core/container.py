# txlistener/core/container.py

import inspect
import logging
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Type, TypeVar

from .logging import ListenerLogger, log_with_context

T = TypeVar('T')

Factory = Callable[['ListenerContainer'], Any]


class Registration(NamedTuple):
    implementation: Optional[type]
    factory: Optional[Factory]


class ListenerContainer:
    """
    Service container for one listener. Every registration is a singleton:
    classes are built by constructor injection on first use, factories are
    called with the container, instances are handed out as given.
    """

    def __init__(self, config):
        self._config = config
        self._registrations: Dict[type, Registration] = {}
        self._instances: Dict[type, Any] = {}
        self._resolving: List[type] = []

        self._logger = ListenerLogger.get_logger('core.container')

    @property
    def config(self):
        return self._config

    def register_singleton(self, interface: Type[T], implementation: Type[T]) -> 'ListenerContainer':
        log_with_context(self._logger, logging.DEBUG, "Registering service class",
                         interface=interface.__name__, implementation=implementation.__name__)
        self._registrations[interface] = Registration(implementation, None)
        self._instances.pop(interface, None)
        return self

    def register_factory(self, interface: Type[T], factory: Callable[['ListenerContainer'], T]) -> 'ListenerContainer':
        log_with_context(self._logger, logging.DEBUG, "Registering service factory",
                         interface=interface.__name__, factory=getattr(factory, '__name__', repr(factory)))
        self._registrations[interface] = Registration(None, factory)
        self._instances.pop(interface, None)
        return self

    def register_instance(self, interface: Type[T], instance: T) -> 'ListenerContainer':
        self._registrations[interface] = Registration(type(instance), None)
        self._instances[interface] = instance
        return self

    def get(self, service_type: Type[T]) -> T:
        if service_type in self._instances:
            return self._instances[service_type]

        name = service_type.__name__
        if service_type in self._resolving:
            path = " -> ".join(t.__name__ for t in self._resolving + [service_type])
            log_with_context(self._logger, logging.ERROR, "Circular dependency detected",
                             service_type=name, circular_path=path)
            raise ValueError(f"Circular dependency detected: {path}")

        registration = self._registrations.get(service_type)
        if registration is None:
            log_with_context(self._logger, logging.ERROR, "Service not registered", service_type=name)
            raise ValueError(f"Service {name} not registered")

        self._resolving.append(service_type)
        try:
            if registration.factory is not None:
                instance = registration.factory(self)
            else:
                instance = self._inject(registration.implementation)
        except Exception as e:
            log_with_context(self._logger, logging.ERROR, "Failed to create service instance",
                             service_type=name, error=str(e), exception_type=type(e).__name__)
            raise
        finally:
            self._resolving.pop()

        self._instances[service_type] = instance
        log_with_context(self._logger, logging.DEBUG, "Service instance created",
                         service_type=name, instance_type=type(instance).__name__)
        return instance

    def _inject(self, implementation: type):
        """Build `implementation`, filling annotated parameters from the container"""
        kwargs = {}
        for param_name, param in inspect.signature(implementation.__init__).parameters.items():
            if param_name == 'self' or param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            if param.annotation in self._registrations:
                kwargs[param_name] = self.get(param.annotation)
            elif param_name == 'config':
                kwargs[param_name] = self._config
        return implementation(**kwargs)
