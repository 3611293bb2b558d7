import argparse
import asyncio
import json
from pathlib import Path

from .analyzer import PropertyAnalyzer
from .config import get_settings
from .logs import configure_logging


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Florida property risk report for one coordinate",
    )
    parser.add_argument("--lat", required=True, help="Latitude (WGS84)")
    parser.add_argument("--lng", required=True, help="Longitude (WGS84)")
    parser.add_argument("--county", required=True, help="County name (e.g., Putnam)")
    parser.add_argument(
        "--parcel-id",
        default=None,
        help="Parcel id to check against the parcel found at the coordinate",
    )
    parser.add_argument(
        "--registry",
        default=None,
        help="Path to a zoning registry JSON file",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, etc.)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit logs as one JSON object per line",
    )
    args = parser.parse_args(argv)

    configure_logging(args.log_level or "WARNING", json_lines=args.log_json)

    settings = get_settings()
    if args.registry:
        settings = settings.with_overrides(registry_path=Path(args.registry))
    analyzer = PropertyAnalyzer(settings=settings)
    try:
        report = asyncio.run(
            analyzer.analyze(args.lat, args.lng, args.county, args.parcel_id)
        )
    finally:
        analyzer.close()
    print(json.dumps(report.to_dict(), indent=2))


def _safe_main():
    try:
        main()
    except SystemExit:
        raise
    except Exception as exc:
        print(json.dumps({"error": str(exc)}))
        raise SystemExit(1)


if __name__ == "__main__":
    _safe_main()
