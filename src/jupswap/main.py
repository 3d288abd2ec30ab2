"""Main entry point - runs the swap API server."""

import asyncio
import logging
import signal

import uvicorn

from jupswap.api.app import create_app
from jupswap.config import get_settings

logger = logging.getLogger(__name__)


class Application:
    """Runs the API server until a shutdown signal arrives."""

    def __init__(self):
        self.settings = get_settings()
        self.server = None

    def configure_logging(self):
        if self.settings.debug:
            log_level = logging.DEBUG
        else:
            log_level = getattr(logging, self.settings.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

    async def start(self):
        """Start the API server."""
        self.configure_logging()

        logger.info("Starting jupswap...")
        logger.info(f"Environment: {self.settings.environment}")
        logger.info(f"Solana network: {self.settings.solana_network}")
        if not self.settings.has_wallet:
            logger.warning("SOLANA_PRIVATE_KEY not set - swap execution disabled")

        config = uvicorn.Config(
            create_app(),
            host=self.settings.api_host,
            port=self.settings.api_port,
            log_level="debug" if self.settings.debug else "info",
        )
        self.server = uvicorn.Server(config)
        logger.info(f"Starting API server on {self.settings.api_host}:{self.settings.api_port}")
        try:
            await self.server.serve()
        except asyncio.CancelledError:
            logger.info("API server cancelled")
        logger.info("Shutdown complete")

    def shutdown(self):
        """Signal shutdown."""
        logger.info("Shutdown requested")
        if self.server:
            self.server.should_exit = True


def main():
    """Main entry point."""
    app = Application()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, app.shutdown)

    try:
        loop.run_until_complete(app.start())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    finally:
        loop.close()


if __name__ == "__main__":
    main()
