# txlistener/cli/__main__.py

"""
Transaction Listener CLI

Usage: python -m txlistener.cli [command] [options]
"""

import time
from pathlib import Path

import click

from txlistener import create_listener, get_listener
from txlistener.clients.interfaces import EnvironmentInterface
from txlistener.core.config import ListenerConfig
from txlistener.core.errors import TxListenerError
from txlistener.core.logging import ListenerLogger
from txlistener.types import NewBlock, TxResolved


def format_resolution(event: TxResolved) -> str:
    resolved = event.resolved
    target = resolved.contract_address or resolved.to or "-"
    params = "" if resolved.params is None else ", ".join(repr(param) for param in resolved.params)
    return f"{event.tx.hash}  {resolved.contract_name}@{target}  {resolved.fn}({params})"


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--rpc-url', envvar='TXLISTENER_RPC_URL', help='JSON-RPC endpoint of the node')
@click.option('--artifacts', type=click.Path(exists=True, path_type=Path), envvar='TXLISTENER_ARTIFACTS',
              help='solc combined JSON file or artifact directory')
@click.pass_context
def cli(ctx, verbose, rpc_url, artifacts):
    """Label transactions of a running chain with contract calls"""
    ctx.ensure_object(dict)

    ListenerLogger.configure(
        log_dir=Path.cwd() / "logs",
        log_level="DEBUG" if verbose else "INFO",
        console_enabled=True,
        file_enabled=False,
        structured_format=verbose,
    )

    overrides = {}
    if rpc_url:
        overrides['rpc'] = {'endpoint_url': rpc_url}
    if artifacts:
        overrides['artifacts_path'] = str(artifacts)
    ctx.obj['overrides'] = overrides


def _build(ctx, **extra):
    overrides = dict(ctx.obj['overrides'])
    overrides.update(extra)
    try:
        config = ListenerConfig.from_env(**overrides)
        return create_listener(config=config)
    except TxListenerError as e:
        raise click.ClickException(e.message) from e


@cli.command()
@click.option('--interval', type=float, default=None, help='Seconds between polls (default 2)')
@click.option('--show-blocks', is_flag=True, help='Print a line for every processed block')
@click.pass_context
def watch(ctx, interval, show_blocks):
    """Follow new blocks and print every resolved transaction"""
    container = _build(ctx, poll_interval=interval)
    try:
        listener = get_listener(container)
    except TxListenerError as e:
        raise click.ClickException(e.message) from e

    listener.subscribe(TxResolved, lambda event: click.echo(format_resolution(event)))
    if show_blocks:
        listener.subscribe(NewBlock, lambda event: click.echo(
            f"-- block {event.block.number} ({len(event.block.transactions)} txs)"))

    listener.start_listening()
    click.echo(f"Listening (poll every {listener.config.poll_interval}s), Ctrl+C to stop")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        click.echo("Stopping")
    finally:
        listener.close()


@cli.command()
@click.argument('block_number', type=int)
@click.pass_context
def resolve(ctx, block_number):
    """Resolve the transactions of a single block"""
    container = _build(ctx)
    try:
        listener = get_listener(container)
        environment = container.get(EnvironmentInterface)
        block = environment.get_block(block_number, True)
    except TxListenerError as e:
        raise click.ClickException(e.message) from e

    listener.subscribe(TxResolved, lambda event: click.echo(format_resolution(event)))
    try:
        listener.pipeline.process_block(block)
    finally:
        listener.close()

    resolved = sum(1 for tx in block.transactions if listener.resolved_transaction(tx.hash))
    click.echo(f"Block {block_number}: {resolved}/{len(block.transactions)} transactions resolved")


if __name__ == '__main__':
    cli()
