"""
Main entry point for the WordPress translation sync service.

This module wires the database, probe registry, sync orchestrator and HTTP
API together and serves the API until shutdown.
"""

import asyncio
import logging
import os
import signal
from typing import Optional

from api import HTTPAPI
from config import get_config
from db import DatabaseManager
from detector import PluginDetector
from orchestrator import SyncOrchestrator
from plugins.registry import get_registry, register_builtin_plugins

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


class Application:
    """Main application that owns the service components."""

    def __init__(self):
        self.config = get_config()
        self.db: Optional[DatabaseManager] = None
        self.orchestrator: Optional[SyncOrchestrator] = None
        self.api: Optional[HTTPAPI] = None
        self.running = False

    async def initialize(self):
        """Initialize all components."""
        logger.info("Initializing WordPress translation sync")

        register_builtin_plugins()
        registry = get_registry()

        db_config = self.config.database
        self.db = DatabaseManager(
            host=db_config.host,
            port=db_config.port,
            database=db_config.database,
            user=db_config.user,
            password=db_config.password,
            min_pool_size=db_config.min_pool_size,
            max_pool_size=db_config.max_pool_size,
        )
        await self.db.connect()
        await self.db.initialize_schema()
        logger.info("Database initialized")

        detector = PluginDetector(
            registry=registry, enabled=self.config.probes.enabled_probes
        )
        probe_names = ", ".join(p.name for p in detector.probes)
        logger.info(f"Probe order: {probe_names}")

        self.orchestrator = SyncOrchestrator(
            db=self.db,
            config=self.config.sync,
            detector=detector,
        )

        self.api = HTTPAPI(self.config.api)
        self.api.set_db_manager(self.db)
        self.api.set_orchestrator(self.orchestrator)
        self.api.initialize()

        logger.info("All components initialized")

    async def start(self):
        """Start the application."""
        if not self.api:
            await self.initialize()

        self.running = True
        logger.info("Starting WordPress translation sync")

        try:
            await self.api.start()
        except asyncio.CancelledError:
            logger.info("Application tasks cancelled")

    async def stop(self):
        """Stop the application gracefully."""
        if not self.running and self.db is None:
            return
        logger.info("Stopping WordPress translation sync")
        self.running = False

        if self.api:
            await self.api.stop()

        if self.db:
            await self.db.close()
            self.db = None

        logger.info("WordPress translation sync stopped")


async def main():
    """Main entry point."""
    app = Application()

    # Set up signal handlers for graceful shutdown
    loop = asyncio.get_event_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        asyncio.create_task(app.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await app.start()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        await app.stop()


def run():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
