#!/usr/bin/env python3
"""
Registry Commands for the Layered Registry CLI

Create a registry and inspect its supply, event log and statistics.
"""

import click

from cli.context import CLIContext, handle_cli_error, pass_context


@click.command('init')
@click.option('--admin', required=True, help='Administrator principal, fixed for the registry lifetime')
@pass_context
@handle_cli_error
def init_registry(ctx: CLIContext, admin: str):
    """
    Create a registry, or confirm the administrator of an existing one.
    """
    registry = ctx.open_registry(administrator=admin)
    ctx.output({
        'storage_dir': ctx.resolve_storage_dir(),
        'administrator': registry.administrator,
        'total_supply': registry.total_supply(),
    })


@click.command('supply')
@pass_context
@handle_cli_error
def supply(ctx: CLIContext):
    """
    Print the number of minted assets.
    """
    click.echo(ctx.open_registry().total_supply())


@click.command('events')
@click.option('--since', type=int, default=0, help='Only events after this sequence number')
@click.option('--asset-id', type=int, help='Only events for this asset')
@pass_context
@handle_cli_error
def list_events(ctx: CLIContext, since: int, asset_id):
    """
    List committed registry events in commit order.
    """
    events = ctx.open_registry().events(since)
    if asset_id is not None:
        events = [event for event in events if event.asset_id == asset_id]

    if not events:
        click.echo("No events found")
        return

    ctx.output([event.model_dump(mode='json') for event in events])


@click.command('stats')
@pass_context
@handle_cli_error
def registry_stats(ctx: CLIContext):
    """
    Show registry statistics.
    """
    ctx.output(ctx.open_registry().stats())
