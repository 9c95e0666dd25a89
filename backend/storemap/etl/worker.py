import argparse
import json
import logging
import sys

import pandas as pd

from storemap.core import config
from storemap.core.db import SessionLocal
from storemap.etl.detection import UNKNOWN, detect_format
from storemap.etl.errors import IngestionError
from storemap.etl.pipeline import run_import
from storemap.services.geocode_batch import GeocodeBatchRunner, GeocodeMode
from storemap.services.geocoding import MapboxGeocoder
from storemap.services.rate_limit import TokenBucket

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)


def import_file(args) -> dict:
    df = pd.read_csv(args.path, dtype=str, keep_default_na=False)
    headers = [str(h) for h in df.columns]
    format_type = args.format or detect_format(headers).type
    if format_type == UNKNOWN:
        raise IngestionError(f"Could not detect the format of {args.path}; pass --format")

    with SessionLocal() as session:
        result = run_import(session, args.user_id, format_type, headers, df.values.tolist(), filename=args.path)
    return result.to_response()


def geocode(args) -> dict:
    with SessionLocal() as session:
        runner = GeocodeBatchRunner(
            session,
            args.user_id,
            geocoder=MapboxGeocoder(),
            rate_limiter=TokenBucket(rate=config.GEOCODE_RATE_PER_SECOND),
        )
        mode = GeocodeMode(args.mode)
        if args.dry_run:
            return runner.dry_run(mode, args.batch_size)
        return runner.run(mode, args.batch_size).to_response()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Store map ingestion and geocoding jobs")
    sub = parser.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import", help="Import a CSV export from disk")
    imp.add_argument("path")
    imp.add_argument("--user-id", required=True)
    imp.add_argument("--format", choices=["growth", "absolute"])
    imp.set_defaults(func=import_file)

    geo = sub.add_parser("geocode", help="Geocode stores without coordinates")
    geo.add_argument("--user-id", required=True)
    geo.add_argument("--mode", choices=[m.value for m in GeocodeMode], default=GeocodeMode.SMART.value)
    geo.add_argument("--batch-size", type=int, default=config.GEOCODE_DEFAULT_BATCH_SIZE)
    geo.add_argument("--dry-run", action="store_true")
    geo.set_defaults(func=geocode)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        output = args.func(args)
    except IngestionError as e:
        logger.error(str(e))
        return 1
    print(json.dumps(output, indent=2, default=str))
    logger.info("Worker finished job.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
