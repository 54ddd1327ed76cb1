"""
Voice Relay entry point.

Usage:
    python -m voice_relay

Environment Variables:
    ELEVENLABS_API_KEY - Voice agent API key
    ELEVENLABS_AGENT_ID - Voice agent identifier
    RELAY_HOST / RELAY_PORT - Listen address (default: 0.0.0.0:8000)
    RELAY_LOG_LEVEL - Log level (DEBUG, INFO, WARNING, ERROR)
"""

import asyncio
import signal
import sys

from .config import get_config, setup_logging
from .gateway import RelayServer

logger = setup_logging()


async def main():
    """Main entry point."""
    config = get_config()

    if not config.has_credentials:
        logger.error("No voice agent credentials configured.")
        logger.error("Set ELEVENLABS_API_KEY and ELEVENLABS_AGENT_ID environment variables.")
        sys.exit(1)

    if config.debug:
        setup_logging(level="DEBUG")

    server = RelayServer(config)

    shutdown_event = asyncio.Event()

    def signal_handler():
        logger.info("Shutdown requested...")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            signal.signal(sig, lambda s, f: signal_handler())

    try:
        await server.start()
        await shutdown_event.wait()
    except Exception as e:
        logger.error(f"Fatal error: {e}")
    finally:
        await server.stop()


def run():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
