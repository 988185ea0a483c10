#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Configuration management for library reconciliation.
Loads YAML config with environment variable support; command-line flags
override file values through set().
"""

import copy
import os
import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional


POLICY_NAMES = ('auto', 'prompt', 'skip')


class ConfigurationError(Exception):
    """Missing or invalid configuration; fatal to the whole run"""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class ConfigManager:
    """
    Configuration manager that loads settings from YAML files.
    Supports environment variable expansion for path values.

    File values are layered over the built-in defaults, so a partial file
    only needs the keys it changes.
    """

    def __init__(self, config_path: str = "reconcile-config.yaml", data: Optional[Dict[str, Any]] = None):
        self.config_path = Path(config_path)
        self._config: Dict[str, Any] = {}
        if data is not None:
            self._config = _deep_merge(self._default_config(), data)
        else:
            self.load()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfigManager":
        """Build from an in-memory dictionary (no file access)"""
        return cls(config_path="<memory>", data=data)

    def load(self) -> None:
        """Load configuration file"""
        defaults = self._default_config()
        if self.config_path.exists():
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    loaded = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError([f"Cannot parse {self.config_path}: {e}"]) from e
            if not isinstance(loaded, dict):
                raise ConfigurationError([f"{self.config_path} must contain a mapping"])
            self._config = _deep_merge(defaults, loaded)
        else:
            print(f"[Config] Warning: Config file not found: {self.config_path}, using defaults")
            self._config = defaults

    def _default_config(self) -> Dict[str, Any]:
        """Return default configuration"""
        return {
            'library': {
                'path': None,
                'high_quality_path': None,
                'archive_path': None,
                'processed_folder': 'Processed_With_Metadata',
                'replace_in_library': False,
                'extensions': ['.mp3']
            },
            'run': {
                'what_if': False,
                'policy': 'skip',
                'log_path': None
            },
            'matching': {
                'confidence_threshold': 0.5,
                'containment_score': 0.8,
                'always_prompt': False
            },
            'scan': {
                'workers': 4
            },
            'api': {
                'musicbrainz': {
                    'base_url': 'https://musicbrainz.org/ws/2',
                    'user_agent': 'MusicReconcile/1.0',
                    'rate_limit': 1.0,
                    'search_limit': 5,
                    'max_results': 3
                }
            },
            'ffmpeg': {
                'path': 'ffmpeg',
                'default_qualities': {'mp3': '2', 'flac': '5', 'm4a': '192', 'ogg': '5'}
            }
        }

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get config value with dot notation.

        Examples:
            config.get('api.musicbrainz.rate_limit')
            config.get('library.path')

        Environment variables are expanded if value is like ${VAR_NAME}
        """
        keys = key.split('.')
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default
            if value is None:
                return default

        # Expand environment variables
        if isinstance(value, str) and value.startswith('${') and value.endswith('}'):
            env_var = value[2:-1]
            return os.environ.get(env_var, default)

        return value

    def set(self, key: str, value: Any) -> None:
        """Set a value with dot notation, creating sections as needed"""
        keys = key.split('.')
        section = self._config
        for k in keys[:-1]:
            child = section.get(k)
            if not isinstance(child, dict):
                child = {}
                section[k] = child
            section = child
        section[keys[-1]] = value

    def get_api_settings(self, source: str) -> Dict[str, Any]:
        """Get API settings for a specific source"""
        return self.get(f'api.{source}', {}) or {}

    def validate(self) -> None:
        """
        Check the settings a reconciliation run depends on.

        Raises:
            ConfigurationError: listing every problem found
        """
        problems = []

        for key, label in (('library.path', 'Library path'),
                           ('library.high_quality_path', 'High-quality path')):
            path = self.get(key)
            if not path:
                problems.append(f"{label} is not configured ({key})")
            elif not os.path.isdir(path):
                problems.append(f"{label} does not exist: {path}")

        if self.replace_in_library and not self.archive_path:
            problems.append("Archive path is required when replace_in_library is enabled (library.archive_path)")

        if str(self.policy).lower() not in POLICY_NAMES:
            problems.append(f"Unknown policy '{self.policy}', expected one of: {', '.join(POLICY_NAMES)}")

        try:
            threshold = float(self.confidence_threshold)
            if not 0.0 <= threshold <= 1.0:
                problems.append(f"matching.confidence_threshold must be between 0 and 1, got {threshold}")
        except (TypeError, ValueError):
            problems.append(f"matching.confidence_threshold is not a number: {self.confidence_threshold}")

        if not self.processed_folder or os.sep in self.processed_folder or '/' in self.processed_folder:
            problems.append(f"library.processed_folder must be a plain folder name, got '{self.processed_folder}'")

        if problems:
            raise ConfigurationError(problems)

    @property
    def library_path(self) -> Optional[str]:
        return self.get('library.path')

    @property
    def high_quality_path(self) -> Optional[str]:
        return self.get('library.high_quality_path')

    @property
    def archive_path(self) -> Optional[str]:
        return self.get('library.archive_path')

    @property
    def processed_folder(self) -> str:
        return self.get('library.processed_folder', 'Processed_With_Metadata')

    @property
    def replace_in_library(self) -> bool:
        return bool(self.get('library.replace_in_library', False))

    @property
    def what_if(self) -> bool:
        return bool(self.get('run.what_if', False))

    @property
    def policy(self) -> str:
        return self.get('run.policy', 'skip')

    @property
    def log_path(self) -> Optional[str]:
        return self.get('run.log_path')

    @property
    def confidence_threshold(self) -> float:
        return self.get('matching.confidence_threshold', 0.5)

    @property
    def always_prompt(self) -> bool:
        return bool(self.get('matching.always_prompt', False))

    def __repr__(self) -> str:
        return f"ConfigManager(config={self.config_path})"


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged
