"""Command line entry point for the Pong server."""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import List, Optional, Sequence

import uvicorn

from . import config
from .config import ServerConfig
from .server import GameServer
from .status import create_app

logger = logging.getLogger("pong")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pong-server", description="Authoritative two-player Pong server")
    parser.add_argument("--host", default=config.SERVER_HOST, help="address to bind (default: %(default)s)")
    parser.add_argument("--port", type=int, default=config.SERVER_PORT, help="TCP game port (default: %(default)s)")
    parser.add_argument("--tick-interval", type=float, default=0.015, help="seconds between ticks")
    parser.add_argument("--countdown-interval", type=float, default=1.0, help="seconds between countdown numbers")
    parser.add_argument("--status-port", type=int, default=None, help="serve the HTTP status API on this port")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="logging verbosity (default: %(default)s)",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    return ServerConfig(
        host=args.host,
        port=args.port,
        tick_interval=args.tick_interval,
        countdown_interval=args.countdown_interval,
        status_port=args.status_port,
    )


async def run(server_config: ServerConfig) -> None:
    server = GameServer(server_config)
    await server.start()
    tasks: List[asyncio.Task] = [asyncio.create_task(server.serve_forever())]
    if server_config.status_port is not None:
        status_server = uvicorn.Server(
            uvicorn.Config(
                create_app(server),
                host=server_config.host,
                port=server_config.status_port,
                log_level="warning",
            )
        )
        tasks.append(asyncio.create_task(status_server.serve()))
        logger.info("Status API on http://%s:%s/status", server_config.host, server_config.status_port)
    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    finally:
        await server.stop()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    server_config = config_from_args(args)
    try:
        server_config.validate()
    except ValueError as exc:
        parser.error(str(exc))
    try:
        asyncio.run(run(server_config))
    except OSError as exc:
        logger.error("Could not start server: %s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    return 0
