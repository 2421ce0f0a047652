"""YAML configuration for the sync tool: loading, ``${VAR}`` expansion, validation and CLI overrides."""

import copy
import os
import re
from typing import Any, Dict
from urllib.parse import urlparse

import yaml

from hosts.selectors import Selectors
from models import SyncSettings


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ConfigLoader:
    """Loads, validates and merges configuration dictionaries."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')

    HOST_MODES = ('snapshot',)
    LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
    INTEGER_SYNC_KEYS = ('max_scroll_attempts', 'stall_limit')

    # CLI attribute -> dotted config path
    ARG_PATHS = {
        'snapshot_dir': 'host.snapshot_directory',
        'conversation': 'host.start_conversation',
        'output_dir': 'export.output_directory',
        'state_file': 'tracking.state_file',
        'report_path': 'report.path',
        'log_file': 'logging.file',
    }

    @classmethod
    def load(cls, config_path: str) -> Dict[str, Any]:
        """
        Read a YAML file and expand ``${VAR}`` references from the environment.

        References to unset variables are left as written so validation can
        point at them. An empty file is an empty configuration.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the document is not a mapping
            yaml.YAMLError: If the YAML is malformed
        """
        if not os.path.isfile(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Configuration file must contain a mapping: {config_path}")

        return cls._expand(data)

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> None:
        """
        Check a merged configuration before anything is built from it.

        Raises:
            ValueError: Naming the first offending setting
        """
        cls._validate_host(config)
        cls._validate_export(config)
        cls._validate_sync(config)

        if not isinstance(get_nested(config, 'selectors', {}) or {}, dict):
            raise ValueError("selectors must be a mapping")
        Selectors.from_config(config)

        level = get_nested(config, 'logging.level')
        if level and str(level).upper() not in cls.LOG_LEVELS:
            raise ValueError(f"logging.level must be one of: {list(cls.LOG_LEVELS)}")

    @classmethod
    def merge_with_args(cls, config: Dict[str, Any], args) -> Dict[str, Any]:
        """
        Apply command-line options on top of a configuration.

        Options left unset keep the file's values; ``-v``/``-vv`` raise the
        log level to INFO/DEBUG. The input dictionary is not modified.
        """
        merged = copy.deepcopy(config)

        for attribute, path in cls.ARG_PATHS.items():
            value = getattr(args, attribute, None)
            if value:
                _set_nested(merged, path, value)

        verbosity = getattr(args, 'verbose', 0) or 0
        if verbosity:
            _set_nested(merged, 'logging.level', 'DEBUG' if verbosity >= 2 else 'INFO')

        return merged

    @classmethod
    def _validate_host(cls, config: Dict[str, Any]) -> None:
        mode = get_nested(config, 'host.mode', 'snapshot')
        if mode not in cls.HOST_MODES:
            raise ValueError(f"host.mode must be one of: {list(cls.HOST_MODES)}")

        directory = cls._require(config, 'host.snapshot_directory')
        if not os.path.isdir(directory):
            raise ValueError(f"host.snapshot_directory '{directory}' is not a valid directory")

        base_url = get_nested(config, 'host.base_url')
        if base_url:
            parsed = urlparse(base_url)
            if parsed.scheme not in ('http', 'https') or not parsed.netloc:
                raise ValueError(f"host.base_url must be an http(s) URL with a hostname: {base_url}")

        page_size = get_nested(config, 'host.page_size', 28)
        if not isinstance(page_size, int) or isinstance(page_size, bool) or page_size < 1:
            raise ValueError("host.page_size must be a positive integer")

        poll_interval = get_nested(config, 'host.poll_interval', 1.0)
        if not _is_number(poll_interval) or poll_interval <= 0:
            raise ValueError("host.poll_interval must be a positive number")

    @staticmethod
    def _validate_export(config: Dict[str, Any]) -> None:
        output_dir = get_nested(config, 'export.output_directory')
        if output_dir and os.path.exists(output_dir) and not os.path.isdir(output_dir):
            raise ValueError(f"export.output_directory '{output_dir}' is not a directory")

        subfolder = get_nested(config, 'export.subfolder')
        if subfolder is not None and (not isinstance(subfolder, str) or os.path.isabs(subfolder)):
            raise ValueError("export.subfolder must be a relative path")

        state_file = get_nested(config, 'tracking.state_file')
        if state_file and os.path.isdir(state_file):
            raise ValueError(f"tracking.state_file '{state_file}' is a directory")

    @classmethod
    def _validate_sync(cls, config: Dict[str, Any]) -> None:
        sync = get_nested(config, 'sync', {}) or {}
        if not isinstance(sync, dict):
            raise ValueError("sync must be a mapping")

        known = SyncSettings().to_dict()
        for key, value in sync.items():
            if key not in known:
                raise ValueError(f"Unknown sync setting: sync.{key}")
            if not _is_number(value) or value < 0:
                raise ValueError(f"sync.{key} must be a non-negative number")
            if key in cls.INTEGER_SYNC_KEYS and (not isinstance(value, int) or value < 1):
                raise ValueError(f"sync.{key} must be a positive integer")

    @classmethod
    def _require(cls, config: Dict[str, Any], path: str) -> Any:
        value = get_nested(config, path)
        if value is None or value == '':
            raise ValueError(f"Missing required configuration: {path}")

        if isinstance(value, str):
            unresolved = cls.ENV_VAR_PATTERN.search(value)
            if unresolved:
                raise ValueError(
                    f"{path} references unset environment variable {unresolved.group(1)}: "
                    f"export it or set the value in the config file"
                )
        return value

    @classmethod
    def _expand(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: cls._expand(value) for key, value in data.items()}
        if isinstance(data, list):
            return [cls._expand(item) for item in data]
        if isinstance(data, str):
            return cls.ENV_VAR_PATTERN.sub(lambda m: os.environ.get(m.group(1), m.group(0)), data)
        return data


def get_nested(config: dict, path: str, default: Any = None) -> Any:
    """Look up a dotted path (``"host.snapshot_directory"``), returning ``default`` when absent."""
    value = config
    for key in path.split('.'):
        if not isinstance(value, dict) or key not in value:
            return default
        value = value[key]
    return value


def _set_nested(config: dict, path: str, value: Any) -> None:
    *sections, key = path.split('.')
    target = config
    for section in sections:
        if not isinstance(target.get(section), dict):
            target[section] = {}
        target = target[section]
    target[key] = value


__all__ = ['ConfigLoader', 'get_nested']
