"""Command-line entry point: fip-monitor [--config PATH] [--log-level LEVEL]."""

import argparse
import asyncio
import logging
import os
import signal
from typing import List, Optional

from fip_monitor.acquisition.controller import AcquisitionPanic
from fip_monitor.agent import FailoverAgent, StartupDependencyError
from fip_monitor.configuration.loader import CONFIG_PATH_ENV, ConfigError, load_config

logger = logging.getLogger("fip_monitor")

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_STARTUP_ERROR = 2
EXIT_PANIC = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fip-monitor",
        description="Floating IP failover monitor for a pair of droplets",
    )
    parser.add_argument(
        "--config",
        default=None,
        help=f"Path to config.json (default: ${CONFIG_PATH_ENV} or ./config.json)",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Logging level (DEBUG, INFO, WARNING, ...)",
    )
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    # The Pushover token travels in request bodies; keep client chatter out of the logs.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


async def run_agent(agent: FailoverAgent) -> None:
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            logger.debug("Signal handlers unavailable on this platform")
    await agent.run(stop_event)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error("%s", e)
        logger.error("Invalid configuration, exiting...")
        return EXIT_CONFIG_ERROR

    try:
        asyncio.run(run_agent(FailoverAgent(config)))
    except StartupDependencyError as e:
        logger.error("%s", e)
        logger.error("Setup failed, exiting...")
        return EXIT_STARTUP_ERROR
    except AcquisitionPanic as e:
        logger.critical("PANIC! %s, exiting...", e)
        return EXIT_PANIC

    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
