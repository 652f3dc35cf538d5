# testing/conftest.py
"""
pytest configuration and fixtures for transaction listener testing
"""

import pytest

from txlistener.core.config import ListenerConfig
from txlistener.core.logging import ListenerLogger
from txlistener.execution.context import ExecutionContext
from txlistener.listener.tx_listener import TxListener
from txlistener.types import NewBlock, NewTransaction, TxResolved

from testing.fakes import (
    EventRecorder,
    FakeArtifactProvider,
    FakeEnvironment,
    bar_contract,
    foo_contract,
)


@pytest.fixture(scope="session", autouse=True)
def quiet_logging():
    """Configure the listener loggers once, without console output"""
    ListenerLogger.reset()
    ListenerLogger.configure(log_level="DEBUG", console_enabled=False, file_enabled=False)
    yield
    ListenerLogger.reset()


@pytest.fixture
def contracts():
    return {"Foo": foo_contract(), "Bar": bar_contract()}


@pytest.fixture
def environment():
    return FakeEnvironment(is_vm=False)


@pytest.fixture
def vm_environment():
    return FakeEnvironment(is_vm=True)


@pytest.fixture
def artifacts(contracts):
    return FakeArtifactProvider(contracts)


@pytest.fixture
def context(environment):
    return ExecutionContext(environment)


@pytest.fixture
def listener_config():
    # the polling thread never ticks on its own; tests drive poll_once
    return ListenerConfig(poll_interval=3600.0, max_workers=4)


@pytest.fixture
def listener(context, artifacts, listener_config):
    tx_listener = TxListener(context, artifacts, listener_config)
    yield tx_listener
    tx_listener.close()


@pytest.fixture
def recorder(listener):
    event_recorder = EventRecorder()
    for event_type in (NewBlock, NewTransaction, TxResolved):
        listener.subscribe(event_type, event_recorder)
    return event_recorder
