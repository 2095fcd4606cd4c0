"""
System integration for linreg.

This module ties the components together: configuration, the database
client, the dataset store and the HTTP server. Each component is
constructed here and handed to the ones that depend on it.
"""

import logging
import threading
import signal
from typing import Any, Optional
import atexit

from linreg.components.config import Config, ConfigManager
from linreg.components.server import Server
from linreg.database import DatabaseClient, DatabaseConfig
from linreg.store import DatasetStore

# Set up logging
logger = logging.getLogger(__name__)


class System:
    """
    Main system for linreg.
    """

    def __init__(self, config: Optional[Config] = None):
        """
        Initialize the system.

        Args:
            config: Configuration for the system
        """
        # Set up configuration
        self.config = config or ConfigManager.get_config()

        # Set up components
        self.db = None
        self.store = None
        self.server = None

        # System status
        self._running = False
        self._stop_event = threading.Event()

    def initialize(self) -> None:
        """
        Initialize the system.
        """
        if self.server is not None:
            return

        logger.info("Initializing system")

        # Initialize database
        self.db = DatabaseClient(DatabaseConfig.from_config(self.config))
        self.db.create_schema()

        # Initialize dataset store
        self.store = DatasetStore(
            self.db,
            max_name_length=self.config.get('datasets.max-name-length', 200)
        )

        # Initialize server
        self.server = Server(self.store, self.config)

        logger.info("System initialized")

    def start(self) -> None:
        """
        Start the system.
        """
        if self._running:
            return

        # Initialize if needed
        self.initialize()

        logger.info("Starting system")

        # Clear stop event
        self._stop_event.clear()

        # Start server
        self.server.start()

        # Mark as running
        self._running = True

        # Register shutdown handlers
        self._register_shutdown_handlers()

        logger.info("System started")

    def stop(self) -> None:
        """
        Stop the system.
        """
        if not self._running:
            return

        logger.info("Stopping system")

        # Set stop event
        self._stop_event.set()

        # Stop components in reverse order
        if self.server:
            self.server.stop()

        if self.db:
            self.db.shutdown()

        # Mark as not running
        self._running = False

        logger.info("System stopped")

    def _register_shutdown_handlers(self) -> None:
        """
        Register shutdown handlers.
        """
        # Signal handlers can only be installed from the main thread
        if threading.current_thread() is threading.main_thread():
            for sig in (signal.SIGINT, signal.SIGTERM):
                signal.signal(sig, self._signal_handler)

        # Register atexit handler
        atexit.register(self.stop)

    def _signal_handler(self, signum: int, frame: Any) -> None:
        """
        Handle signals.

        Args:
            signum: Signal number
            frame: Current stack frame
        """
        logger.info(f"Received signal {signum}")
        self.stop()

    def wait_for_shutdown(self) -> None:
        """
        Wait for system shutdown.
        """
        self._stop_event.wait()
