"""
Main entry point for the linreg service.

This module provides the main entry point for running the linreg system.
"""

import argparse
import logging

from linreg.system import System
from linreg.components.config import ConfigManager, load_file


def setup_logging(level: str = 'INFO') -> None:
    """
    Set up logging.

    Args:
        level: Logging level
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler()
        ]
    )


def parse_args(argv=None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Args:
        argv: Argument list, defaults to sys.argv[1:]

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(description='Linreg regression service')

    parser.add_argument(
        '--config',
        help='Path to configuration file'
    )

    parser.add_argument(
        '--log-level',
        type=str.upper,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level (overrides LOG_LEVEL and the config file)'
    )

    parser.add_argument(
        '--port',
        type=int,
        help='Server port'
    )

    parser.add_argument(
        '--host',
        help='Server host'
    )

    parser.add_argument(
        '--database-url',
        help='SQLAlchemy database URL'
    )

    parser.add_argument(
        '--static-dir',
        help='Directory of front-end files served under /static'
    )

    return parser.parse_args(argv)


def build_overrides(args: argparse.Namespace) -> dict:
    """
    Collect configuration overrides from a config file and the command line.

    Args:
        args: Parsed arguments

    Returns:
        Configuration overrides
    """
    overrides = {}

    # Load configuration from file if provided
    if args.config:
        overrides.update(load_file(args.config))

    # Override with command line arguments
    if args.log_level:
        overrides.setdefault('logging', {})['level'] = args.log_level

    if args.port is not None:
        overrides.setdefault('server', {})['port'] = args.port

    if args.host:
        overrides.setdefault('server', {})['host'] = args.host

    if args.static_dir:
        overrides.setdefault('server', {})['static-dir'] = args.static_dir

    if args.database_url:
        overrides.setdefault('database', {})['url'] = args.database_url

    return overrides


def main() -> None:
    """
    Main entry point.
    """
    args = parse_args()

    config = ConfigManager.get_config(build_overrides(args))

    setup_logging(config.get('logging.level', 'info'))

    system = System(config)
    system.start()

    # Wait for shutdown
    try:
        system.wait_for_shutdown()
    except KeyboardInterrupt:
        pass
    finally:
        system.stop()


if __name__ == '__main__':
    main()
