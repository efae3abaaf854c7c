"""
Canonical entry point for fan_monitor_server package.

Usage:
    fan-monitor serve --environment development
    fan-monitor setup-db --environment development
"""

import argparse
import logging
import os
import sys

from fan_monitor_core.config.environments import get_settings


def setup_logging(config) -> None:
    """Set up logging configuration."""
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    return None


def run_server(args: argparse.Namespace) -> None:
    """Run the MQTT bridge and both API listeners in one process."""
    from fan_monitor_server.service import run

    config = get_settings()
    if args.port:
        config.API_PORT = args.port
    if args.history_port:
        config.HISTORY_PORT = args.history_port
    setup_logging(config)
    log = logging.getLogger(__name__)

    log.info("Starting fan monitor server...")
    log.info(f"Environment: {args.environment}")
    log.info(f"MQTT Broker: {config.MQTT_BROKER}:{config.MQTT_PORT}")
    log.info(f"Client ID: {config.MQTT_CLIENT_ID}")

    run(config, host=args.host)
    return None


def setup_database(args: argparse.Namespace) -> None:
    """Set up the database."""
    from fan_monitor_server.adapters.db.session import make_engine
    from fan_monitor_server.adapters.db.sqlalchemy_models import Base

    config = get_settings()
    setup_logging(config)
    log = logging.getLogger(__name__)

    log.info(f"Setting up database for {args.environment} environment...")
    log.info(f"Database URL: {config.DATABASE_URL}")

    engine = make_engine(config.DATABASE_URL)
    Base.metadata.create_all(bind=engine)
    log.info("Database setup completed successfully")
    return None


def main() -> None:
    """Main entry point for fan_monitor_server commands."""
    parser = argparse.ArgumentParser(
        description="Fan Monitor Server - MQTT bridge, API and database management"
    )
    parser.add_argument(
        "--environment",
        choices=["production", "development", "testing"],
        default="development",
        help="Environment to run in",
    )
    parser.add_argument(
        "command",
        choices=["serve", "setup-db"],
        help="Command to run",
    )
    parser.add_argument("--host", help="Host to bind to (overrides config)")
    parser.add_argument("--port", type=int, help="API port (overrides config)")
    parser.add_argument("--history-port", type=int, help="History API port (overrides config)")

    args = parser.parse_args()

    # Set environment variable for config
    os.environ["FAN_MONITOR_ENV"] = args.environment

    if args.command == "serve":
        run_server(args)
    elif args.command == "setup-db":
        setup_database(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
