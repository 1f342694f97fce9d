"""
MarketPulse - command-line runner.

Rehydrates local state, optionally syncs a user with the remote backend,
then polls quotes, alerts, recommendations and sentiment until interrupted.
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from dotenv import load_dotenv

from .config.logging import get_logger, setup_logging
from .config.settings import get_settings
from .dashboard import Dashboard


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="marketpulse", description=__doc__.strip().splitlines()[0])
    parser.add_argument("--user", help="User id to sync with the remote backend")
    parser.add_argument(
        "--sector", default=None, help="Sector for recommendations (default: Technology)"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one refresh cycle, print the portfolio summary and exit",
    )
    parser.add_argument(
        "--status",
        action="store_true",
        help="Print backend health and session state as JSON and exit",
    )
    return parser


def print_summary(dashboard: Dashboard) -> None:
    summary = dashboard.portfolio.summary()
    print(f"Positions: {len(summary.positions)}")
    for position in summary.positions:
        print(
            f"  {position.symbol:<8} {position.units:>10.2f} @ {position.avg_cost:>10.2f}"
            f"  price {position.current_price:>10.2f}"
            f"  P/L {position.profit_loss:>+12.2f} ({position.profit_loss_percent:+.2f}%)"
        )
    print(
        f"Total value {summary.total_value:,.2f}  cost {summary.total_cost:,.2f}  "
        f"P/L {summary.total_profit_loss:+,.2f} ({summary.total_profit_loss_percent:+.2f}%)"
    )
    for breach in dashboard.portfolio.allocation_breaches():
        print(
            f"  Allocation warning: {breach.kind} {breach.name} at "
            f"{breach.allocation:.2f}% (limit {breach.limit:.0f}%)"
        )
    unread = dashboard.notifications.unread_count
    if unread:
        print(f"Notifications: {unread} unread")
        for notification in dashboard.notifications.notifications:
            print(f"  [{notification.category.value}] {notification.title}: {notification.message}")


async def run(args: argparse.Namespace) -> None:
    logger = get_logger(__name__)
    settings = get_settings()
    dashboard = Dashboard.from_settings(settings)

    if args.user:
        await dashboard.login(args.user)

    if args.status:
        print(json.dumps(await dashboard.status(), indent=2, default=str))
        return

    if args.once:
        await dashboard.refresh_prices()
        await dashboard.event_bus.drain()
        print_summary(dashboard)
        return

    dashboard.start(args.sector)
    logger.info("MarketPulse running", user=args.user, sector=dashboard.sector)
    try:
        await asyncio.Event().wait()
    finally:
        await dashboard.stop()


def main(argv: Optional[List[str]] = None) -> None:
    """Main application entry point."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    settings = get_settings()
    setup_logging(
        level=settings.log_level,
        format_type=settings.log_format,
        file_enabled=settings.log_file_enabled,
        file_path=settings.log_file_path,
        max_file_size=settings.log_max_file_size,
        backup_count=settings.log_backup_count,
        environment=settings.environment,
    )
    logger = get_logger(__name__)
    logger.info("Starting MarketPulse", environment=settings.environment)

    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("Received interrupt signal")
        print("\nShutting down...")
    except Exception as e:
        logger.error("MarketPulse stopped with an error", error=str(e), exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
