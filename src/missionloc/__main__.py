"""Run the location update consumer until SIGINT/SIGTERM.

Configuration comes from ``MISSIONLOC_*`` environment variables, see
:meth:`missionloc.config.ConsumerConfig.from_env`.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

import aiohttp

from missionloc.config import ConsumerConfig
from missionloc.consumer import LocationUpdateConsumer
from missionloc.exceptions import MissionLocError
from missionloc.repository import HttpMissionRepository

_LOG = logging.getLogger("missionloc")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="missionloc",
        description="Apply responder location updates to missions and publish mission events.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args(argv)


async def _run(config: ConsumerConfig) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop.set)

    auth = None
    if config.repository_username:
        auth = aiohttp.BasicAuth(config.repository_username, config.repository_password or "")

    async with aiohttp.ClientSession() as http_session:
        repository = HttpMissionRepository(
            http_session,
            base_url=config.repository_url,
            cache=config.repository_cache,
            auth=auth,
        )
        async with LocationUpdateConsumer(config, repository):
            await stop.wait()
            _LOG.info("Shutdown requested")


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = ConsumerConfig.from_env()
        asyncio.run(_run(config))
    except MissionLocError as exc:
        print(f"missionloc: {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
