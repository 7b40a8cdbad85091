#!/usr/bin/env python3
"""Resolve a location from the command line.

Modes:
- ``auto``   run the automatic cascade. There is no device sensor here, so
             both sensor attempts report "unavailable" and the IP race decides.
- ``mobile`` ask the mobile-GPS proxy endpoint once.
- ``manual`` validate and adopt ``--lat``/``--lng``.

The resulting status is printed as JSON, followed by the user-facing text.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pylocator import (  # noqa: E402
    InvalidCoordinatesError,
    LocationResolver,
    LocatorConfig,
    describe_failure,
    describe_fix,
)
from pylocator.config import env_debug_enabled  # noqa: E402


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Resolve the current location with pylocator")
    parser.add_argument("mode", choices=("auto", "mobile", "manual"), help="Which acquisition path to use.")
    parser.add_argument("--lat", type=float, default=None, help="Latitude for manual mode.")
    parser.add_argument("--lng", type=float, default=None, help="Longitude for manual mode.")
    parser.add_argument(
        "--origin",
        default="https://localhost",
        help="Page origin used to decide whether the context is secure.",
    )
    parser.add_argument("--debug", "--verbose", "-v", dest="debug", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
    config = LocatorConfig.from_env()

    async with LocationResolver(config, origin=args.origin) as resolver:
        if args.mode == "auto":
            status = await resolver.request_automatic_location()
        elif args.mode == "mobile":
            status = await resolver.request_mobile_location()
        else:
            if args.lat is None or args.lng is None:
                print("manual mode requires --lat and --lng", file=sys.stderr)
                return 2
            try:
                resolver.set_manual_location(args.lat, args.lng)
            except InvalidCoordinatesError as exc:
                print(str(exc), file=sys.stderr)
                return 2
            status = resolver.status

    print(status.model_dump_json(indent=2))
    if status.fix is not None and status.is_resolved:
        print(describe_fix(status.fix))
        return 0
    if status.failure is not None:
        print(describe_failure(status.failure))
    return 1


def main() -> None:
    args = _parse_args()
    if args.debug or env_debug_enabled():
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)
    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
