# testing/test_listener_setup.py
"""
Container wiring, logging helpers and the command line entry point.
"""

import json
import logging

import pytest
from click.testing import CliRunner

import txlistener
from txlistener import create_listener, get_listener
from txlistener.cli import __main__ as cli_main
from txlistener.clients.interfaces import EnvironmentInterface
from txlistener.contracts.interfaces import ArtifactProviderInterface
from txlistener.core.config import ListenerConfig
from txlistener.core.container import ListenerContainer
from txlistener.core.logging import ListenerFormatter, LoggingMixin
from txlistener.execution.context import ExecutionContext
from txlistener.listener.tx_listener import TxListener
from txlistener.types import ResolvedCall, TxResolved

from testing.fakes import (
    BAR_ABI,
    BAR_CREATION,
    BAR_RUNTIME,
    FOO_ABI,
    FOO_ADDRESS,
    FOO_CREATION,
    FOO_RUNTIME,
    METADATA_A,
    FakeEnvironment,
    call_tx,
    tx_hash,
)


class TestContainer:
    def test_listener_is_a_singleton(self):
        container = create_listener(config=ListenerConfig(poll_interval=3600.0), environment=FakeEnvironment())
        try:
            listener = get_listener(container)
            assert get_listener(container) is listener
            assert listener.context is container.get(ExecutionContext)
            assert listener.context.environment is container.get(EnvironmentInterface)
            assert container.get(ArtifactProviderInterface).contracts() is None
        finally:
            get_listener(container).close()

    def test_unregistered_service_raises(self):
        container = ListenerContainer(ListenerConfig())
        with pytest.raises(ValueError):
            container.get(TxListener)

    def test_circular_dependency_is_detected(self):
        container = ListenerContainer(ListenerConfig())
        container.register_factory(ExecutionContext, lambda c: c.get(ExecutionContext))
        with pytest.raises(ValueError, match="Circular dependency"):
            container.get(ExecutionContext)


class TestLogging:
    def test_structured_formatter_appends_context(self):
        record = logging.LogRecord("txlistener.test", logging.INFO, "", 0, "Block resolved", (), None)
        record.block_number = 7
        record.session = "abc"

        output = ListenerFormatter(include_context=True).format(record)

        assert output.endswith("| block_number=7 session=abc")

    def test_mixin_logs_under_package_logger(self, caplog):
        class Component(LoggingMixin):
            pass

        component = Component()
        with caplog.at_level(logging.INFO, logger="txlistener"):
            component.log_info("hello", tx_hash="0x1")

        assert component.logger.name.startswith("txlistener.")
        assert caplog.records[-1].tx_hash == "0x1"


def _write_artifacts(tmp_path):
    path = tmp_path / "combined.json"
    path.write_text(json.dumps({"contracts": {
        "Foo.sol:Foo": {"abi": FOO_ABI, "bin": FOO_CREATION + METADATA_A,
                        "bin-runtime": FOO_RUNTIME + METADATA_A,
                        "hashes": {"bar(uint256)": "2fbebd38"}},
        "Bar.sol:Bar": {"abi": BAR_ABI, "bin": BAR_CREATION, "bin-runtime": BAR_RUNTIME},
    }}))
    return path


class TestCli:
    def test_format_resolution(self):
        tx = call_tx(tx_hash(1), FOO_ADDRESS, "2fbebd38", ["uint256"], [5])
        event = TxResolved(tx=tx, resolved=ResolvedCall(contract_name="Foo", to=FOO_ADDRESS,
                                                        fn="bar(uint256)", params=[5]))

        assert cli_main.format_resolution(event) == f"{tx.hash}  Foo@{FOO_ADDRESS}  bar(uint256)(5)"

    def test_help_lists_commands(self):
        result = CliRunner().invoke(cli_main.cli, ["--help"])

        assert result.exit_code == 0
        assert "watch" in result.output
        assert "resolve" in result.output

    def test_resolve_prints_resolved_transactions(self, tmp_path, monkeypatch):
        environment = FakeEnvironment()
        environment.deploy(FOO_ADDRESS, FOO_RUNTIME + METADATA_A)
        tx = call_tx(tx_hash(1), FOO_ADDRESS, "2fbebd38", ["uint256"], [5])
        environment.add_block(12, [tx, call_tx(tx_hash(2), "0x" + "e0" * 20, "")])

        def build(config=None, **kwargs):
            return txlistener.create_listener(config=config, environment=environment)

        monkeypatch.setattr(cli_main, "create_listener", build)
        result = CliRunner().invoke(cli_main.cli, ["--artifacts", str(_write_artifacts(tmp_path)),
                                                   "resolve", "12"])

        assert result.exit_code == 0, result.output
        assert "bar(uint256)(5)" in result.output
        assert "Block 12: 1/2 transactions resolved" in result.output

    def test_configuration_errors_become_usage_errors(self, monkeypatch):
        monkeypatch.setenv("TXLISTENER_POLL_INTERVAL", "-1")
        result = CliRunner().invoke(cli_main.cli, ["resolve", "1"])

        assert result.exit_code == 1
        assert "poll_interval must be positive" in result.output
