"""
Main application entry point.
"""

import argparse
import logging
import sys
from dataclasses import replace

from dotenv import load_dotenv

load_dotenv()

from coinwatch.app import CoinWatchApp
from coinwatch.config import ConfigValidationError, load_config
from coinwatch.data.fetcher import InvalidCredentialsError
from coinwatch.scheduler import run_forever

logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="CoinWatch price alert service")
    parser.add_argument(
        "--config", default="config.yaml", help="Path to config file"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    parser.add_argument(
        "--dry-run", action="store_true", help="Log alerts instead of sending them"
    )
    parser.add_argument(
        "--once", action="store_true", help="Run every job once and exit"
    )

    args = parser.parse_args(argv)

    # Setup logging
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Load config
    try:
        config = load_config(args.config)
    except (FileNotFoundError, ConfigValidationError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    if not args.debug:
        logging.getLogger().setLevel(config.advanced.log_level.upper())

    if args.dry_run:
        logger.info("Dry run mode - no notifications will be sent")
        config = replace(config, notifier=replace(config.notifier, type="log"))

    app = CoinWatchApp(config)

    try:
        app.startup()
    except InvalidCredentialsError as e:
        logger.error(f"Startup aborted: {e}")
        return 1

    if args.once:
        app.run_price_check()
        app.run_recap_check()
        return 0

    run_forever(app, config.schedule)
    return 0


if __name__ == "__main__":
    sys.exit(main())
