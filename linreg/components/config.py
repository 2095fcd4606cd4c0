"""
Configuration management for linreg.

Values are layered: built-in defaults, then environment variables, then
explicit overrides (command line or a JSON/YAML file). The merged result
is checked before use so a bad port or log level fails at start-up rather
than inside a request.
"""

import os
import json
import logging
import threading
from typing import Dict, Optional, Any
from copy import deepcopy
import yaml

# Set up logging
logger = logging.getLogger(__name__)

LOG_LEVELS = ('debug', 'info', 'warning', 'error', 'critical')

# Width of the datasets.name column
NAME_COLUMN_WIDTH = 200


def to_int(value: Any) -> Optional[int]:
    """
    Convert a value to an integer.

    Args:
        value: Value to convert

    Returns:
        Integer value, or None if conversion failed
    """
    if value is None:
        return None

    try:
        return int(value)
    except (ValueError, TypeError):
        return None


def to_bool(value: Any) -> Optional[bool]:
    """
    Convert a value to a boolean.

    Args:
        value: Value to convert

    Returns:
        Boolean value, or None if conversion failed
    """
    if value is None:
        return None

    if isinstance(value, bool):
        return value

    if isinstance(value, (int, float)):
        return bool(value)

    if isinstance(value, str):
        value = value.lower().strip()
        if value in ('true', 'yes', 'y', '1', 't'):
            return True
        if value in ('false', 'no', 'n', '0', 'f'):
            return False

    return None


def load_file(filepath: str) -> Dict[str, Any]:
    """
    Read a JSON or YAML configuration file.

    Args:
        filepath: Path to the file

    Returns:
        Parsed configuration dictionary
    """
    if filepath.endswith('.json'):
        with open(filepath, 'r') as f:
            return json.load(f)
    elif filepath.endswith('.yaml') or filepath.endswith('.yml'):
        with open(filepath, 'r') as f:
            return yaml.safe_load(f) or {}
    else:
        raise ValueError(f"Unsupported file format: {filepath}")


def _deep_update(d: Dict[str, Any], u: Dict[str, Any]) -> Dict[str, Any]:
    for k, v in u.items():
        if isinstance(v, dict) and isinstance(d.get(k), dict):
            d[k] = _deep_update(d[k], v)
        else:
            d[k] = v
    return d


class Config:
    """
    Configuration for the linreg service.
    """

    def __init__(self, overrides: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration.

        Args:
            overrides: Optional configuration overrides

        Raises:
            ValueError: a merged value is out of range
        """
        self._lock = threading.RLock()
        self._config = {}

        self.load_config(overrides)

    def load_config(self, overrides: Optional[Dict[str, Any]] = None) -> None:
        """
        (Re)load configuration from all sources.

        Args:
            overrides: Optional configuration overrides
        """
        with self._lock:
            config = self._apply_env_vars(self._get_defaults())

            if overrides:
                config = _deep_update(config, deepcopy(overrides))

            self._validate(config)
            config['server-url'] = f"http://{config['server']['host']}:{config['server']['port']}"

            self._config = config

            logger.info("Configuration loaded")

    def _get_defaults(self) -> Dict[str, Any]:
        return {
            'server': {
                'port': 8080,
                'host': 'localhost',
                'static-dir': None
            },
            'database': {
                'url': 'sqlite:///./data/app.db',
                'pool-size': 5,
                'max-overflow': 10,
                'isolation-level': 'SERIALIZABLE',
                'echo': False
            },
            'datasets': {
                'max-name-length': NAME_COLUMN_WIDTH
            },
            'logging': {
                'level': 'info'
            }
        }

    def _apply_env_vars(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply environment variables to configuration.

        Args:
            config: Default configuration

        Returns:
            Updated configuration
        """
        env = os.environ

        # Server
        config['server']['port'] = to_int(env.get('PORT', config['server']['port']))
        config['server']['host'] = env.get('HOST', config['server']['host'])
        config['server']['static-dir'] = env.get('STATIC_DIR') or config['server']['static-dir']

        # Database
        database = config['database']
        database['url'] = env.get('DATABASE_URL', database['url'])
        database['pool-size'] = to_int(env.get('DATABASE_POOL_SIZE', database['pool-size']))
        database['max-overflow'] = to_int(env.get('DATABASE_MAX_OVERFLOW', database['max-overflow']))
        database['isolation-level'] = env.get('DATABASE_ISOLATION_LEVEL', database['isolation-level']).upper()
        database['echo'] = bool(to_bool(env.get('DATABASE_ECHO', database['echo'])))

        # Datasets
        config['datasets']['max-name-length'] = to_int(
            env.get('DATASET_MAX_NAME_LENGTH', config['datasets']['max-name-length'])
        )

        # Logging
        config['logging']['level'] = env.get('LOG_LEVEL', config['logging']['level'])

        return config

    def _validate(self, config: Dict[str, Any]) -> None:
        """
        Check and normalize merged values in place.

        Args:
            config: Merged configuration

        Raises:
            ValueError: a value is missing or out of range
        """
        level = str(config['logging']['level']).lower()
        if level == 'warn':
            level = 'warning'
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {config['logging']['level']}")
        config['logging']['level'] = level

        port = config['server']['port']
        if not isinstance(port, int) or not 0 <= port <= 65535:
            raise ValueError(f"Invalid server port: {port}")

        max_name_length = config['datasets']['max-name-length']
        if not isinstance(max_name_length, int) or not 1 <= max_name_length <= NAME_COLUMN_WIDTH:
            raise ValueError(
                f"datasets.max-name-length must be between 1 and {NAME_COLUMN_WIDTH}"
            )

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            path: Configuration path (dot-separated)
            default: Default value if not found

        Returns:
            Configuration value, or default if not found
        """
        value = self._config

        for component in path.split('.'):
            if isinstance(value, dict) and component in value:
                value = value[component]
            else:
                return default

        return value


class ConfigManager:
    """
    Shared default configuration for the command line entry point.
    """

    _instance = None
    _lock = threading.RLock()

    @classmethod
    def get_config(cls, overrides: Optional[Dict[str, Any]] = None) -> Config:
        """
        Get the configuration instance.

        Args:
            overrides: Optional configuration overrides

        Returns:
            Config instance
        """
        with cls._lock:
            if cls._instance is None:
                cls._instance = Config(overrides)
            elif overrides:
                cls._instance.load_config(overrides)

            return cls._instance
