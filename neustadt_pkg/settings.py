#!/usr/bin/env python3
"""
Settings loader for the Neustadt site builder.
Supports configuration from neustadt.yml, neustadt.yaml, or neustadt.json files.
"""

import os
import copy
import json
import yaml
from typing import Dict, Any, Optional


# Mappings merged key by key instead of being replaced wholesale
NESTED_SETTINGS = ('site', 'partials')


def merge_settings(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of `base` updated with `overrides`, merging nested mappings."""
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if key in NESTED_SETTINGS and isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key].update(copy.deepcopy(value))
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class NeustadtSettings:
    """Load and manage Neustadt configuration settings."""

    # Default configuration
    DEFAULT_SETTINGS = {
        'site': {
            'name': 'Neustadt.fr',
            'baseurl': 'https://www.neustadt.fr',
            'author': 'Parimal Satyal',
            'keywords': 'Neustadt, parimalsatyal, Parimal Satyal',
            'description': "Neustadt.fr is Paris-based designer Parimal Satyal's "
                           "collection of essays, reviews and music."
        },
        'source': 'src',
        'destination': 'public',
        'layouts': 'layout',
        'clean': True,
        'include_drafts': False,
        'collections': {
            'publications': {
                'pattern': '*/**/*.md',
                'sortBy': 'date',
                'reverse': True,
                'metadata': {'name': 'Everything'}
            },
            'essays': {
                'pattern': 'essays/**/*.md',
                'sortBy': 'date',
                'reverse': True,
                'metadata': {'name': 'Essays'}
            },
            'reviews': {
                'pattern': 'reviews/**/*.md',
                'sortBy': 'date',
                'reverse': True,
                'metadata': {'name': 'Reviews'}
            }
        },
        'highlight_stylesheet': None,
        'highlight_style': 'default',
        'permalink_pattern': None,
        'layout_pattern': ['*/*/*html', '*/*html', '*html'],
        'default_layout': 'essay.html',
        'partials': {
            'header': 'partials/header',
            'footer': 'partials/footer'
        },
        'minify': False,
        'serve': True,
        'host': 'localhost',
        'port': 8081,
        'verbose': True,
        'watch': True,
        'watch_paths': None,
        'log_dir': 'logs'
    }

    # Config file names to look for (in order of preference)
    CONFIG_FILES = ['neustadt.yml', 'neustadt.yaml', 'neustadt.json']

    def __init__(self, config_dir: str = None):
        """
        Initialize settings loader.

        Args:
            config_dir: Directory to look for config files. Defaults to current directory.
        """
        self.config_dir = config_dir or os.getcwd()
        self.settings = copy.deepcopy(self.DEFAULT_SETTINGS)
        self.config_file_path = None

    def load_settings(self) -> Dict[str, Any]:
        """
        Load settings from configuration file if it exists.

        Returns:
            Dictionary of configuration settings
        """
        config_file = self._find_config_file()

        if config_file:
            self.config_file_path = config_file
            try:
                loaded_settings = self._load_config_file(config_file)
                if loaded_settings:
                    self.settings = merge_settings(self.settings, loaded_settings)
                    print(f"Loaded configuration from: {os.path.relpath(config_file)}")
            except (ValueError, OSError) as e:
                print(f"Warning: Failed to load config file {config_file}: {e}")

        return copy.deepcopy(self.settings)

    def _find_config_file(self) -> Optional[str]:
        """Find the first available configuration file."""
        for filename in self.CONFIG_FILES:
            config_path = os.path.join(self.config_dir, filename)
            if os.path.exists(config_path):
                return config_path
        return None

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from a file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Dictionary of configuration settings
        """
        file_ext = os.path.splitext(config_path)[1].lower()
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                if file_ext in ['.yml', '.yaml']:
                    loaded = yaml.safe_load(f) or {}
                elif file_ext == '.json':
                    loaded = json.load(f) or {}
                else:
                    raise ValueError(f"Unsupported config file format: {file_ext}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}")
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file {config_path}: {e}")

        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration file {config_path} must contain a mapping")
        return loaded

    def create_sample_config(self, file_format: str = 'yml') -> str:
        """
        Create a sample configuration file.

        Args:
            file_format: Format for config file ('yml', 'yaml', or 'json')

        Returns:
            Path to created sample config file
        """
        sample_config = {
            key: self.DEFAULT_SETTINGS[key]
            for key in ('site', 'source', 'destination', 'layouts', 'collections',
                        'default_layout', 'port', 'minify')
        }

        if file_format not in ['yml', 'yaml', 'json']:
            raise ValueError(f"Unsupported config file format: {file_format}")

        filename = f'neustadt.{file_format}'
        config_path = os.path.join(self.config_dir, filename)

        with open(config_path, 'w', encoding='utf-8') as f:
            if file_format == 'json':
                json.dump(sample_config, f, indent=2)
            else:
                f.write("# Neustadt site configuration\n")
                f.write("# Values left out fall back to the built-in defaults\n\n")
                yaml.safe_dump(sample_config, f, sort_keys=False, allow_unicode=True)

        return config_path

    def merge_with_args(self, args_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge configuration settings with command-line arguments.
        Command-line arguments take precedence over config file settings.

        Args:
            args_dict: Dictionary of command-line arguments

        Returns:
            Merged configuration dictionary
        """
        return merge_settings(
            self.settings,
            {key: value for key, value in args_dict.items() if value is not None}
        )
