"""Main entry point for Octopus Exporter.

This module handles:
- Loading configuration from flags, environment variables and .env
- Configuring logging
- Starting the Prometheus HTTP server with the consumption collector
"""

import logging
import sys
import time
from typing import Optional, Sequence

from dotenv import load_dotenv

from octopus_exporter.config import ConfigError, load_settings
from octopus_exporter.exporter import OctopusExporter

# Configure module logger
logger = logging.getLogger(__name__)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point.

    1. Configure logging
    2. Load .env file with python-dotenv
    3. Load and validate configuration (fails before the server binds)
    4. Start Prometheus HTTP server with the consumption collector
    5. Keep running until interrupted

    Args:
        argv: Command-line arguments (default: sys.argv[1:])

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    # Load .env file
    load_dotenv()

    try:
        settings = load_settings(argv)
    except ConfigError as e:
        for problem in e.problems:
            logger.error(problem)
        logger.error("Configuration failed, exiting")
        return 1

    if settings.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    logger.info("octopus-exporter starting")
    logger.info(f"Settings: {settings.redacted()}")

    exporter = OctopusExporter(settings)
    for point in exporter.meters():
        logger.info(f"Exporting {point.point_type} consumption for {point.identifier} (meter {point.meter})")

    try:
        exporter.start()
    except OSError as e:
        logger.error(f"Failed to start HTTP server on {settings.listen_address}: {e}")
        exporter.close()
        return 1

    logger.info(f"Prometheus metrics available at http://{settings.listen_host or 'localhost'}:{settings.listen_port}/metrics")

    try:
        while True:
            time.sleep(settings.scrape_period)
    except KeyboardInterrupt:
        logger.info("Received interrupt, shutting down")
    finally:
        exporter.close()
        logger.info("octopus-exporter stopping")

    return 0


if __name__ == "__main__":
    sys.exit(main())
