"""Command line front end for the location diary.

Usage:
    python -m location_diary record --lat 35.6812 --lon 139.7671
    python -m location_diary record --browser
    python -m location_diary list
    python -m location_diary sync --mode sequential
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from .browser import BrowserLocationProvider
from .capture import LocationProvider, StaticLocationProvider
from .diary import ActionResult, LocationDiary
from .errors import IndexOutOfRangeError
from .export import render_points_map, write_points_excel
from .models import DeliveryMode
from .utils import format_point

LOGGER = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False) -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="location_diary",
        description="Record locations locally and upload them as a diary",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    record = sub.add_parser("record", help="Record the current location")
    record.add_argument("--lat", type=float, help="Latitude in decimal degrees")
    record.add_argument("--lon", type=float, help="Longitude in decimal degrees")
    record.add_argument("--accuracy", type=float, help="Accuracy radius in metres")
    record.add_argument(
        "--browser",
        action="store_true",
        help="Ask the web browser's geolocation API for the position",
    )

    sub.add_parser("list", help="Show queued locations")

    delete = sub.add_parser("delete", help="Remove one queued location")
    delete.add_argument("index", type=int, help="Position shown by 'list'")

    sub.add_parser("clear", help="Remove every queued location")

    sync = sub.add_parser("sync", help="Upload the queued locations")
    sync.add_argument(
        "--mode",
        choices=[mode.value for mode in DeliveryMode],
        default=None,
        help="Delivery mode (default from LOCATION_DELIVERY_MODE)",
    )

    sub.add_parser("link", help="Print the viewer deep link")

    export = sub.add_parser("export", help="Export queued locations")
    export.add_argument("--xlsx", help="Write an Excel workbook to this path")
    export.add_argument("--map", dest="map_path", help="Write an HTML map to this path")

    args = parser.parse_args(argv)
    if args.command == "record" and not args.browser:
        if args.lat is None or args.lon is None:
            parser.error("record needs --lat and --lon, or --browser")
    if args.command == "export" and not (args.xlsx or args.map_path):
        parser.error("export needs --xlsx and/or --map")
    return args


def _provider_for(args: argparse.Namespace) -> LocationProvider:
    if getattr(args, "browser", False):
        return BrowserLocationProvider()
    if getattr(args, "lat", None) is not None and getattr(args, "lon", None) is not None:
        return StaticLocationProvider(args.lat, args.lon, args.accuracy)
    return BrowserLocationProvider()


def _report(result: ActionResult) -> int:
    print(result.message)
    return 0 if result.ok else 1


def _list(diary: LocationDiary) -> int:
    points = diary.entries()
    if not points:
        print("No locations recorded yet.")
        return 0
    for index, point in enumerate(points):
        print(f"[{index}] {format_point(point)}")
    return 0


def _delete(diary: LocationDiary, index: int) -> int:
    try:
        removed = diary.delete_entry(index)
    except IndexOutOfRangeError as exc:
        print(f"No queued location at position {index}: {exc}")
        return 1
    print(f"Removed: {format_point(removed)}")
    return 0


def _link(diary: LocationDiary) -> int:
    link = diary.viewer_link()
    if not link:
        print("Viewer URL is not configured (LOCATION_VIEWER_URL).")
        return 1
    print(link)
    return 0


def _export(diary: LocationDiary, args: argparse.Namespace) -> int:
    points = diary.entries()
    if args.xlsx:
        print(f"Workbook written to {write_points_excel(args.xlsx, points)}")
    if args.map_path:
        render_points_map(points, output_html_path=args.map_path)
        print(f"Map written to {args.map_path}")
    return 0


def run(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    _setup_logging(args.verbose)
    diary = LocationDiary.from_config(_provider_for(args))
    if diary.startup_warning:
        stream = sys.stdout if args.command == "sync" else sys.stderr
        print(f"Warning: {diary.startup_warning}", file=stream)

    if args.command == "record":
        return _report(diary.record_current_location())
    if args.command == "list":
        return _list(diary)
    if args.command == "delete":
        return _delete(diary, args.index)
    if args.command == "clear":
        return _report(diary.clear())
    if args.command == "sync":
        return _report(diary.create_diary(args.mode))
    if args.command == "link":
        return _link(diary)
    if args.command == "export":
        return _export(diary, args)
    LOGGER.error("Unknown command %s", args.command)  # pragma: no cover - argparse guards
    return 2


def main(argv: Optional[Sequence[str]] = None) -> None:
    raise SystemExit(run(argv))
