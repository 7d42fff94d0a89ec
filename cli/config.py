#!/usr/bin/env python3
"""
Configuration Management Module for the Layered Registry CLI

Handles hierarchical configuration loading, environment variable mapping,
validation, and management of settings across different environments.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

# Configuration file locations in order of precedence (highest to lowest)
CONFIG_SEARCH_PATHS = [
    Path.cwd() / '.layered.yml',            # Project-specific YAML
    Path.cwd() / '.layered.json',           # Project-specific JSON
    Path.home() / '.layered' / 'config.yml',    # User global YAML
    Path.home() / '.layered' / 'config.json',   # User global JSON
]

# Environment variable prefix
ENV_PREFIX = 'LAYERED_'

# Default configuration values
DEFAULT_CONFIG = {
    'registry': {
        'storage_dir': '~/.layered/registry',
        'admin': None,
        'strict_fragments': False,
        'backup_count': 5
    },

    'cli': {
        'output_format': 'table',  # table, json, yaml
        'caller': None,
        'verbose': 0
    }
}

# Configuration profiles
PROFILES = {
    'production': {
        'registry': {'strict_fragments': True, 'backup_count': 20},
        'cli': {'verbose': 0}
    },
    'development': {
        'registry': {'storage_dir': './registry_data', 'backup_count': 0},
        'cli': {'verbose': 2}
    }
}

OUTPUT_FORMATS = ['table', 'json', 'yaml']


class ConfigurationManager:
    """Manages hierarchical configuration with environment variable support."""

    def __init__(self, config_file: Optional[str] = None, profile: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: Explicit configuration file path
            profile: Configuration profile to load (production, development)
        """
        self.logger = logging.getLogger('layered-cli.config')
        self.config_file = config_file
        self.profile = profile
        self._config_cache = None
        self._config_sources = []

    def load(self) -> Dict[str, Any]:
        """
        Load configuration from all sources in hierarchical order.

        Returns:
            Merged configuration dictionary
        """
        if self._config_cache is not None:
            return self._config_cache

        self._config_sources = ["defaults"]
        configs = [copy.deepcopy(DEFAULT_CONFIG)]

        if self.profile:
            if self.profile not in PROFILES:
                raise ValueError(f"Unknown configuration profile: {self.profile}")
            configs.append(PROFILES[self.profile])
            self._config_sources.append(f"profile:{self.profile}")
            self.logger.debug(f"Applied profile: {self.profile}")

        if self.config_file:
            path = Path(self.config_file)
            if not path.exists():
                raise FileNotFoundError(f"Config file not found: {path}")
            configs.append(self._load_config_file(path))
            self._config_sources.append(f"file:{path}")
        else:
            for config_path in CONFIG_SEARCH_PATHS:
                if config_path.exists():
                    configs.append(self._load_config_file(config_path))
                    self._config_sources.append(f"file:{config_path}")
                    self.logger.debug(f"Loaded config from {config_path}")
                    break  # Use first found config file

        env_config = self._load_environment_variables()
        if env_config:
            configs.append(env_config)
            self._config_sources.append("environment")

        self._config_cache = self._deep_merge(*configs)
        self._expand_paths(self._config_cache)

        return self._config_cache

    def _load_config_file(self, path: Path) -> Dict[str, Any]:
        """Load configuration from a YAML or JSON file."""
        with open(path, 'r') as f:
            if path.suffix in ['.yml', '.yaml']:
                data = yaml.safe_load(f)
            elif path.suffix == '.json':
                data = json.load(f)
            else:
                raise ValueError(f"Unknown config file format: {path}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        return data

    def _load_environment_variables(self) -> Dict[str, Any]:
        """
        Load configuration from environment variables.

        The first underscore after the prefix separates section from key, so
        LAYERED_REGISTRY_STORAGE_DIR maps to registry.storage_dir.
        """
        env_config = {}

        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            config_key = key[len(ENV_PREFIX):].lower()
            section, _, option = config_key.partition('_')
            if not option:
                continue

            env_config.setdefault(section, {})[option] = self._parse_env_value(value)

        return env_config

    def _parse_env_value(self, value: str) -> Union[str, int, float, bool, None]:
        """Parse environment variable value to appropriate type."""
        if value.lower() in ['true', 'yes']:
            return True
        elif value.lower() in ['false', 'no']:
            return False

        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value

    def _deep_merge(self, *dicts: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge multiple dictionaries."""
        result = {}

        for dictionary in dicts:
            for key, value in dictionary.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = self._deep_merge(result[key], value)
                else:
                    result[key] = value

        return result

    def _expand_paths(self, config: Dict[str, Any]):
        """Expand ~ and environment variables in path values."""
        for key, value in config.items():
            if isinstance(value, dict):
                self._expand_paths(value)
            elif isinstance(value, str) and key.endswith('_dir'):
                config[key] = os.path.expanduser(os.path.expandvars(value))

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation path.

        Args:
            key_path: Dot-separated path (e.g., 'registry.storage_dir')
            default: Default value if key not found
        """
        current = self.load()

        for key in key_path.split('.'):
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        return current

    def set(self, key_path: str, value: Any):
        """Set configuration value by dot-notation path."""
        config = self.load()

        keys = key_path.split('.')
        current = config

        for key in keys[:-1]:
            current = current.setdefault(key, {})

        current[keys[-1]] = value

    def save(self, path: Optional[str] = None, format: str = 'yaml'):
        """Save current configuration to file."""
        config = self.load()

        if not path:
            path = Path.cwd() / ('.layered.yml' if format == 'yaml' else '.layered.json')

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w') as f:
            if format == 'yaml':
                yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)
            else:
                json.dump(config, f, indent=2)

        self.logger.info(f"Configuration saved to {path}")

    def validate(self) -> List[str]:
        """
        Validate current configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        config = self.load()
        errors = []

        registry = config.get('registry', {})
        if not registry.get('storage_dir'):
            errors.append("registry.storage_dir is required")

        admin = registry.get('admin')
        if admin is not None and (not isinstance(admin, str) or not admin):
            errors.append("registry.admin must be a non-empty string")

        if not isinstance(registry.get('strict_fragments'), bool):
            errors.append("registry.strict_fragments must be a boolean")

        backup_count = registry.get('backup_count')
        if isinstance(backup_count, bool) or not isinstance(backup_count, int) or backup_count < 0:
            errors.append("registry.backup_count must be a non-negative integer")

        output_format = config.get('cli', {}).get('output_format')
        if output_format not in OUTPUT_FORMATS:
            errors.append(f"Invalid output format: {output_format}")

        return errors

    def get_sources(self) -> List[str]:
        """Get list of configuration sources that were loaded."""
        self.load()
        return self._config_sources
