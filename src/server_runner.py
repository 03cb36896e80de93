import argparse
import asyncio
import logging
import sys

import uvloop
from aiohttp import web

asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())

from api.server import create_app
from config_loader import load_service_config, print_config_summary
from utils.logger import set_log_level, setup_file_logging

DEFAULT_CONFIG_PATH = "config/token_service.yaml"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(description="Issue and transfer SPL tokens over HTTP.")
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to the service YAML configuration (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("--host", help="Override server.host from the configuration")
    parser.add_argument("--port", type=int, help="Override server.port from the configuration")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    args = parse_args(argv)

    try:
        cfg = load_service_config(args.config)
    except (OSError, ValueError) as e:
        logging.error(f"Configuration error: {e}")
        sys.exit(1)

    set_log_level(cfg.log_level)
    if cfg.log_file:
        setup_file_logging(cfg.log_file)
    print_config_summary(cfg)

    app = create_app(cfg)
    web.run_app(app, host=args.host or cfg.host, port=args.port or cfg.port)


if __name__ == "__main__":
    main()
