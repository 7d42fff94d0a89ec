#!/usr/bin/env python3
"""
Shared CLI Context for the Layered Registry CLI

Holds configuration, logging and output formatting shared by all command
modules, and maps registry errors onto exit codes.
"""

import json
import logging
import sys
import traceback
from functools import wraps
from typing import Any, Optional

import click
import yaml

from registry import (
    AssetNotFoundError, AssetRegistry, InvalidArgumentError,
    RegistryError, UnauthorizedError
)

from .config import ConfigurationManager

# Exit codes by error type; anything else exits with 1
EXIT_CODES = {
    InvalidArgumentError: 2,
    UnauthorizedError: 3,
    AssetNotFoundError: 4,
}

# Loggers configured by the CLI; component loggers are children of these
LOGGER_NAMES = ('layered-cli', 'registry')

_log_handler: Optional[logging.Handler] = None


class CLIContext:
    """Global CLI context for sharing state across commands."""

    def __init__(self):
        self.config_file: Optional[str] = None
        self.profile: Optional[str] = None
        self.storage_dir: Optional[str] = None
        self.caller: Optional[str] = None
        self.output_format: Optional[str] = None
        self.verbose: int = 0
        self.config_manager: Optional[ConfigurationManager] = None
        self.logger: logging.Logger = logging.getLogger('layered-cli')

    def setup_logging(self):
        """Configure logging based on verbosity level."""
        global _log_handler

        log_levels = {
            0: logging.WARNING,
            1: logging.INFO,
            2: logging.DEBUG
        }

        level = log_levels.get(min(self.verbose, 2), logging.DEBUG)

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)

        for name in LOGGER_NAMES:
            logger = logging.getLogger(name)
            logger.setLevel(level)
            if _log_handler is not None:
                logger.removeHandler(_log_handler)
            logger.addHandler(handler)

        _log_handler = handler

    def load_config(self):
        """Load hierarchical configuration."""
        self.config_manager = ConfigurationManager(self.config_file, self.profile)
        self.config_manager.load()

        if self.verbose == 0:
            self.verbose = int(self.config_manager.get('cli.verbose', 0) or 0)
        if self.output_format is None:
            self.output_format = self.config_manager.get('cli.output_format', 'table')

        self.logger.debug(f"Configuration sources: {self.config_manager.get_sources()}")

    def get_config(self, key: str, default: Any = None) -> Any:
        """Get configuration value with fallback to default."""
        if self.config_manager is None:
            return default
        return self.config_manager.get(key, default)

    def resolve_storage_dir(self) -> str:
        return self.storage_dir or self.get_config('registry.storage_dir')

    def resolve_caller(self) -> str:
        """Calling principal: --caller, then cli.caller, then registry.admin."""
        caller = self.caller or self.get_config('cli.caller') or self.get_config('registry.admin')
        if not caller:
            raise click.UsageError("No caller given; pass --caller or set cli.caller")
        return caller

    def open_registry(self, administrator: Optional[str] = None) -> AssetRegistry:
        """Open the configured registry, creating it when administrator is given."""
        storage_dir = self.resolve_storage_dir()
        self.logger.debug(f"Opening registry at {storage_dir}")
        return AssetRegistry.open(
            storage_dir,
            administrator=administrator,
            strict=bool(self.get_config('registry.strict_fragments', False)),
            backup_count=int(self.get_config('registry.backup_count', 5)),
        )

    def output(self, data: Any, format_override: Optional[str] = None):
        """Output data in specified format."""
        format_type = format_override or self.output_format or 'table'

        if format_type == "json":
            click.echo(json.dumps(data, indent=2, default=str))
        elif format_type == "yaml":
            click.echo(yaml.safe_dump(json.loads(json.dumps(data, default=str)),
                                      default_flow_style=False, sort_keys=False))
        else:
            self._output_table(data)

    def _output_table(self, data: Any):
        """Output data in table format."""
        if isinstance(data, dict):
            for key, value in data.items():
                click.echo(f"{key:20} {value}")
        elif isinstance(data, list) and data:
            if isinstance(data[0], dict):
                headers = list(data[0].keys())
                click.echo(" | ".join(f"{h:15}" for h in headers))
                click.echo("-" * (len(headers) * 17))
                for item in data:
                    values = [str(item.get(h, ""))[:15] for h in headers]
                    click.echo(" | ".join(f"{v:15}" for v in values))
            else:
                for item in data:
                    click.echo(item)
        else:
            click.echo(str(data))


# Global context instance
pass_context = click.make_pass_decorator(CLIContext, ensure=True)


def handle_cli_error(func):
    """Decorator to report registry errors and exit with a matching code."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (RegistryError, OSError, ValueError) as e:
            ctx = click.get_current_context().find_object(CLIContext)

            click.echo(f"Error: {e}", err=True)
            if ctx and ctx.verbose >= 2:
                click.echo(traceback.format_exc(), err=True)

            exit_code = 1
            for error_type, code in EXIT_CODES.items():
                if isinstance(e, error_type):
                    exit_code = code
                    break
            sys.exit(exit_code)

    return wrapper
