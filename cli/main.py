#!/usr/bin/env python3
"""
Layered Asset Registry - Command Line Interface

Mint assets, update their overlay and dynamic attributes, and read their
canonical metadata from a registry persisted on disk.
"""

from typing import Optional

import click

from cli import __version__
from cli.commands.asset import (
    mint, set_overlay, set_attributes, show_asset, show_metadata, show_token_uri
)
from cli.commands.config import config
from cli.commands.registry import init_registry, supply, list_events, registry_stats
from cli.config import OUTPUT_FORMATS, PROFILES
from cli.context import CLIContext, handle_cli_error, pass_context


@click.group(context_settings={'help_option_names': ['-h', '--help']})
@click.option('--config-file', '-c',
              help='Path to configuration file')
@click.option('--profile', type=click.Choice(sorted(PROFILES)),
              help='Configuration profile')
@click.option('--storage-dir', '-d',
              help='Registry storage directory (overrides registry.storage_dir)')
@click.option('--caller', '-u',
              help='Calling principal for mutating commands')
@click.option('--output-format', '-o',
              type=click.Choice(OUTPUT_FORMATS),
              help='Output format')
@click.option('--verbose', '-v',
              count=True,
              help='Increase verbosity (-v for INFO, -vv for DEBUG)')
@click.version_option(__version__, prog_name='layered')
@pass_context
@handle_cli_error
def cli(ctx: CLIContext, config_file: Optional[str], profile: Optional[str],
        storage_dir: Optional[str], caller: Optional[str],
        output_format: Optional[str], verbose: int):
    """
    Layered Asset Registry command line interface.

    Examples:
        layered init --admin alice
        layered -u alice mint --to bob --base-uri ipfs://base --name "Name" --description "Desc"
        layered -u alice set-overlay 1 ipfs://overlay
        layered metadata 1
    """
    ctx.config_file = config_file
    ctx.profile = profile
    ctx.storage_dir = storage_dir
    ctx.caller = caller
    ctx.output_format = output_format
    ctx.verbose = verbose

    ctx.load_config()
    ctx.setup_logging()

    ctx.logger.debug("CLI initialized with context")


cli.add_command(init_registry)
cli.add_command(mint)
cli.add_command(set_overlay)
cli.add_command(set_attributes)
cli.add_command(show_asset)
cli.add_command(show_metadata)
cli.add_command(show_token_uri)
cli.add_command(supply)
cli.add_command(list_events)
cli.add_command(registry_stats)
cli.add_command(config)


def main():
    cli(prog_name='layered')


if __name__ == '__main__':
    main()
