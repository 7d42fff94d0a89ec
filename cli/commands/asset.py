#!/usr/bin/env python3
"""
Asset Commands for the Layered Registry CLI

Mint assets, replace their mutable layers and read their metadata.
"""

from typing import Optional

import click

from cli.context import CLIContext, handle_cli_error, pass_context


@click.command('mint')
@click.option('--to', 'recipient', required=True, help='Recipient principal')
@click.option('--base-uri', required=True, help='Immutable base image URI')
@click.option('--name', required=True, help='Asset name')
@click.option('--description', default='', help='Asset description')
@click.option('--static-attributes', default='',
              help='Attribute fragment fixed at mint, e.g. \'{"trait_type":"Kind","value":"A"}\'')
@click.option('--dynamic-attributes', default='',
              help='Initial replaceable attribute fragment')
@pass_context
@handle_cli_error
def mint(ctx: CLIContext, recipient: str, base_uri: str, name: str, description: str,
         static_attributes: str, dynamic_attributes: str):
    """
    Mint a new asset and print its identifier.

    Examples:
        layered -u alice mint --to bob --base-uri ipfs://base --name "Fox"
    """
    registry = ctx.open_registry()
    asset_id = registry.mint(
        ctx.resolve_caller(), recipient, base_uri, name, description,
        static_attributes, dynamic_attributes
    )
    ctx.logger.info(f"Minted asset {asset_id}")
    ctx.output({'asset_id': asset_id, 'to': recipient, 'base_uri': base_uri})


@click.command('set-overlay')
@click.argument('asset_id', type=int)
@click.argument('overlay_uri')
@pass_context
@handle_cli_error
def set_overlay(ctx: CLIContext, asset_id: int, overlay_uri: str):
    """
    Replace the overlay URI of an asset. Pass "" to clear it.
    """
    registry = ctx.open_registry()
    registry.set_overlay(ctx.resolve_caller(), asset_id, overlay_uri)
    ctx.output({'asset_id': asset_id, 'overlay_uri': overlay_uri})


@click.command('set-attributes')
@click.argument('asset_id', type=int)
@click.argument('dynamic_attributes')
@pass_context
@handle_cli_error
def set_attributes(ctx: CLIContext, asset_id: int, dynamic_attributes: str):
    """
    Replace the dynamic attribute fragment of an asset.
    """
    registry = ctx.open_registry()
    registry.set_dynamic_attributes(ctx.resolve_caller(), asset_id, dynamic_attributes)
    ctx.output({'asset_id': asset_id, 'dynamic_attributes': dynamic_attributes})


@click.command('show')
@click.argument('asset_id', type=int)
@click.option('--field', type=click.Choice(['base', 'overlay']),
              help='Print a single reference instead of the whole record')
@pass_context
@handle_cli_error
def show_asset(ctx: CLIContext, asset_id: int, field: Optional[str]):
    """
    Show the stored fields of an asset.
    """
    registry = ctx.open_registry()

    if field == 'base':
        click.echo(registry.get_base_uri(asset_id))
    elif field == 'overlay':
        click.echo(registry.get_overlay_uri(asset_id))
    else:
        ctx.output(registry.get_record(asset_id).model_dump())


@click.command('metadata')
@click.argument('asset_id', type=int)
@pass_context
@handle_cli_error
def show_metadata(ctx: CLIContext, asset_id: int):
    """
    Print the canonical metadata JSON document of an asset.
    """
    click.echo(ctx.open_registry().get_metadata(asset_id))


@click.command('token-uri')
@click.argument('asset_id', type=int)
@pass_context
@handle_cli_error
def show_token_uri(ctx: CLIContext, asset_id: int):
    """
    Print the metadata document of an asset as a base64 data URI.
    """
    click.echo(ctx.open_registry().token_uri(asset_id))
