"""
CLI commands for CoinWatch.
"""

import argparse
import logging
import sys
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

from coinwatch.clock import Clock
from coinwatch.config import AppConfig, ConfigValidationError, load_config
from coinwatch.data.fetcher import AthReference, PriceSource, SpotQuote, create_price_source
from coinwatch.healthcheck import run_healthcheck
from coinwatch.notifiers.base import NotifierFactory
from coinwatch.rules.recap import RecapBuilder
from coinwatch.rules.types import DailyRecap


def fetch_prices(config: AppConfig, source: PriceSource) -> Optional[dict[str, SpotQuote]]:
    """Fetch current quotes for all configured assets."""
    return source.get_spot_prices([asset.id for asset in config.assets])


def fetch_ath(config: AppConfig, source: PriceSource) -> dict[str, Optional[AthReference]]:
    """Fetch canonical ATH references for all configured assets."""
    return {asset.id: source.get_ath_reference(asset.id) for asset in config.assets}


def build_recap(config: AppConfig, source: PriceSource, clock: Clock) -> Optional[DailyRecap]:
    """Build today's recap without touching any state."""
    builder = RecapBuilder(
        config.assets,
        hour=config.schedule.recap_hour,
        minute=config.schedule.recap_minute,
        window_hours=config.alerts.recap_window_hours,
    )
    return builder.build(source, clock.now())


def main(argv=None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="CoinWatch CLI")
    parser.add_argument("--config", default="config.yaml", help="Path to config file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command")

    subparsers.add_parser("prices", help="Show current prices")
    subparsers.add_parser("ath", help="Show all-time highs")

    recap_parser = subparsers.add_parser("recap", help="Build today's recap")
    recap_parser.add_argument("--send", action="store_true", help="Deliver the recap")

    subparsers.add_parser("healthcheck", help="Send a status message")

    config_parser = subparsers.add_parser("config", help="Configuration")
    config_subparsers = config_parser.add_subparsers(dest="action")
    config_subparsers.add_parser("check", help="Validate the config file")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ConfigValidationError) as e:
        print(f"Invalid configuration: {e}")
        return 1

    clock = Clock(config.schedule.timezone)

    # Handle commands
    if args.command == "config":
        print(f"Configuration OK: {len(config.assets)} assets")
        for asset in config.assets:
            print(f"  {asset.symbol} ({asset.id})")

    elif args.command == "prices":
        quotes = fetch_prices(config, create_price_source(config.price_source))
        if quotes is None:
            print("Price request failed")
            return 1
        for asset in config.assets:
            quote = quotes.get(asset.id)
            if quote is None:
                print(f"{asset.symbol}: no data")
                continue
            change = quote.change_24h_pct
            change_text = f" ({change:+.2f}% 24h)" if change is not None else ""
            print(f"{asset.symbol}: ${quote.price_usd}{change_text}")

    elif args.command == "ath":
        references = fetch_ath(config, create_price_source(config.price_source))
        for asset in config.assets:
            ref = references[asset.id]
            if ref is None:
                print(f"{asset.symbol}: no data")
                continue
            date = ref.ath_date.strftime("%Y-%m-%d") if ref.ath_date else "unknown date"
            print(f"{asset.symbol}: ${ref.ath_usd:,.2f} ({date})")

    elif args.command == "recap":
        recap = build_recap(config, create_price_source(config.price_source), clock)
        if recap is None:
            print("No recap data available")
            return 1
        print(recap.message)
        if args.send:
            result = NotifierFactory.create(config.notifier).send(recap)
            print("Recap sent" if result.success else f"Send failed: {result.error}")

    elif args.command == "healthcheck":
        result = run_healthcheck(config, NotifierFactory.create(config.notifier), clock)
        print("Health check sent" if result.success else f"Send failed: {result.error}")

    else:
        parser.print_help()

    return 0


if __name__ == "__main__":
    sys.exit(main())
