# txlistener/__init__.py

import logging
from pathlib import Path
from typing import Mapping, Optional

from .core.config import ListenerConfig
from .core.container import ListenerContainer
from .core.logging import ListenerLogger, log_with_context
from .clients.interfaces import EnvironmentInterface
from .clients.web3_environment import Web3Environment, VmEnvironment
from .contracts.interfaces import ArtifactProviderInterface
from .contracts.artifacts import CompiledArtifactProvider
from .execution.context import ExecutionContext
from .listener.tx_listener import TxListener
from .types import NewBlock, NewTransaction, TxResolved, ResolvedCall, Block


def create_listener(config: Optional[ListenerConfig] = None,
                    env_vars: Optional[Mapping[str, str]] = None,
                    environment: Optional[EnvironmentInterface] = None,
                    **overrides) -> ListenerContainer:
    """
    Build a container holding a ready to start TxListener.

    An explicit `environment` replaces the one derived from configuration,
    which is how VM environments are plugged in.
    """
    config = config or ListenerConfig.from_env(env_vars=env_vars, **overrides)
    _configure_logging_early(config)

    logger = ListenerLogger.get_logger('core.init')
    log_with_context(logger, logging.INFO, "Creating listener instance",
                     provider=config.provider,
                     endpoint_url=config.rpc.endpoint_url)

    container = ListenerContainer(config)
    if environment is not None:
        container.register_instance(EnvironmentInterface, environment)
    else:
        container.register_factory(EnvironmentInterface, _create_environment)

    container.register_factory(ExecutionContext, _create_execution_context)
    container.register_factory(ArtifactProviderInterface, _create_artifact_provider)
    container.register_singleton(TxListener, TxListener)

    log_with_context(logger, logging.INFO, "Listener created successfully")
    return container


def _configure_logging_early(config: ListenerConfig) -> None:
    log_config = config.logging
    log_dir = Path(log_config.log_dir) if log_config.log_dir else Path.cwd() / "logs"

    ListenerLogger.configure(
        log_dir=log_dir,
        log_level=log_config.log_level,
        console_enabled=log_config.console_enabled,
        file_enabled=log_config.file_enabled,
        structured_format=log_config.structured_format,
    )


def _create_environment(container: ListenerContainer) -> EnvironmentInterface:
    config = container.config
    w3_environment = Web3Environment.from_endpoint(config.rpc.endpoint_url, config.rpc.timeout)
    if config.is_vm:
        return VmEnvironment(w3_environment.w3)
    return w3_environment


def _create_execution_context(container: ListenerContainer) -> ExecutionContext:
    return ExecutionContext(container.get(EnvironmentInterface))


def _create_artifact_provider(container: ListenerContainer) -> ArtifactProviderInterface:
    config = container.config
    context = container.get(ExecutionContext)
    if config.artifacts_path:
        return CompiledArtifactProvider.from_path(config.artifacts_path, context,
                                                  receipt_timeout=config.receipt_timeout)
    return CompiledArtifactProvider(context, receipt_timeout=config.receipt_timeout)


def get_listener(container: ListenerContainer) -> TxListener:
    """Get the transaction listener from container"""
    return container.get(TxListener)
