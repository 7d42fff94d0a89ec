#!/usr/bin/env python3
"""
Configuration Commands for the Layered Registry CLI
"""

import sys

import click

from cli.context import CLIContext, handle_cli_error, pass_context


@click.group('config')
def config():
    """
    Inspect CLI configuration.
    """


@config.command('show')
@click.argument('key', required=False)
@pass_context
@handle_cli_error
def show_config(ctx: CLIContext, key):
    """
    Show the merged configuration, or a single dot-path KEY.
    """
    if key:
        value = ctx.get_config(key)
        if value is None:
            click.echo(f"Configuration key not set: {key}", err=True)
            sys.exit(1)
        ctx.output(value)
        return

    ctx.output(ctx.config_manager.load())
    if ctx.verbose:
        click.echo(f"Sources: {', '.join(ctx.config_manager.get_sources())}", err=True)


@config.command('validate')
@pass_context
@handle_cli_error
def validate_config(ctx: CLIContext):
    """
    Validate the merged configuration.
    """
    errors = ctx.config_manager.validate()
    if errors:
        for error in errors:
            click.echo(f"  - {error}", err=True)
        sys.exit(1)
    click.echo("Configuration is valid")
