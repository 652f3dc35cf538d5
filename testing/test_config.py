# testing/test_config.py

import pytest

from txlistener.core.config import ListenerConfig
from txlistener.core.errors import ConfigurationError


def test_defaults():
    config = ListenerConfig()

    assert config.provider == "network"
    assert not config.is_vm
    assert config.poll_interval == 2.0
    assert config.rpc.endpoint_url == "http://127.0.0.1:8545"
    assert config.reset_cache_on_context_change is True


def test_values_are_read_from_environment_variables():
    config = ListenerConfig.from_env(env_vars={
        "TXLISTENER_RPC_URL": "http://node:8545",
        "TXLISTENER_PROVIDER": "vm",
        "TXLISTENER_POLL_INTERVAL": "0.5",
        "TXLISTENER_MAX_WORKERS": "4",
        "TXLISTENER_LOG_LEVEL": "DEBUG",
        "TXLISTENER_LOG_FILE": "true",
        "TXLISTENER_RESET_CACHE_ON_SWITCH": "no",
        "TXLISTENER_ARTIFACTS": "build/combined.json",
    })

    assert config.rpc.endpoint_url == "http://node:8545"
    assert config.is_vm
    assert config.poll_interval == 0.5
    assert config.max_workers == 4
    assert config.logging.log_level == "DEBUG"
    assert config.logging.file_enabled is True
    assert config.reset_cache_on_context_change is False
    assert config.artifacts_path == "build/combined.json"


def test_overrides_win_over_environment():
    config = ListenerConfig.from_env(
        env_vars={"TXLISTENER_POLL_INTERVAL": "5"},
        poll_interval=1.5,
        max_workers=None,
        rpc={"endpoint_url": "http://override:8545"},
    )

    assert config.poll_interval == 1.5
    assert config.max_workers == 16
    assert config.rpc.endpoint_url == "http://override:8545"


@pytest.mark.parametrize("env_vars", [
    {"TXLISTENER_POLL_INTERVAL": "0"},
    {"TXLISTENER_MAX_WORKERS": "0"},
    {"TXLISTENER_PROVIDER": "ganache"},
    {"TXLISTENER_POLL_INTERVAL": "soon"},
])
def test_invalid_values_raise(env_vars):
    with pytest.raises(ConfigurationError):
        ListenerConfig.from_env(env_vars=env_vars)
