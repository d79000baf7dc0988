"""Command-line utilities for green_carbon."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import asdict
from pathlib import Path

from green_carbon.config import TrackerConfig
from green_carbon.intensity import load_intensity_table
from green_carbon.location import DEFAULT_LOCATION, LocationResolver, resolver_for
from green_carbon.models import Location
from green_carbon.output.csv_writer import read_records
from green_carbon.output.report import summarize_records
from green_carbon.telemetry.system import HostInspector


async def _resolve_location(resolver: LocationResolver) -> tuple[Location, bool]:
    try:
        return await resolver.resolve(), False
    except Exception as exc:
        print(f"Location resolution failed, using default: {exc}", file=sys.stderr)
        return DEFAULT_LOCATION, True


def _info(args: argparse.Namespace) -> int:
    config = TrackerConfig.from_settings(
        country_code=args.country,
        region=args.region,
        location_provider=args.location_provider,
    )
    system = HostInspector().collect()
    location, fallback = asyncio.run(_resolve_location(resolver_for(config)))
    intensity = load_intensity_table().intensity(location.country_code, location.region)
    payload = {
        "system": {**asdict(system), "gpu_models": list(system.gpu_models)},
        "location": asdict(location),
        "location_fallback": fallback,
        "carbon_intensity_gco2_kwh": intensity,
    }
    print(json.dumps(payload, indent=2))
    return 0


def _summary(args: argparse.Namespace) -> int:
    report = summarize_records(read_records(Path(args.csv)))
    if args.json:
        print(json.dumps(report.to_dict(), separators=(",", ":")))
    else:
        print(report.format())
    return 0


def main(argv: list[str] | None = None) -> int:
    """Inspect the host or summarise recorded sessions."""
    parser = argparse.ArgumentParser(
        prog="green-carbon", description="Energy and CO2 emissions tracking utilities."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    info = subparsers.add_parser(
        "info", help="Print system metadata and the resolved location as JSON."
    )
    info.add_argument("--country", help="ISO alpha-3 country code override.")
    info.add_argument("--region", help="Sub-region code, e.g. a US state.")
    info.add_argument(
        "--location-provider",
        choices=("locale", "geojs"),
        default=None,
        help="Auto-resolution strategy when no country is given.",
    )
    info.set_defaults(handler=_info)

    summary = subparsers.add_parser(
        "summary", help="Aggregate the sessions recorded in an emissions CSV file."
    )
    summary.add_argument("csv", help="Path to the emissions CSV file.")
    summary.add_argument("--json", action="store_true", help="Emit JSON output.")
    summary.set_defaults(handler=_summary)

    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:  # pragma: no cover - controlled via tests
        exit_code = int(exc.code) if isinstance(exc.code, int) else 1
        return 0 if exit_code == 0 else 1

    try:
        return int(args.handler(args))
    except Exception as exc:
        print(str(exc), file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
