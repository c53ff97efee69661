"""
Command line entry point.

    osm2parquet illinois-latest.osm.pbf out/
    python -m osm2parquet map.osm out/ --flush-threshold 50000 -v

Exit status is 0 on success and 1 on missing arguments or any failed run.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from osm2parquet.config import VALID_COMPRESSIONS, ConversionConfig
from osm2parquet.exceptions import ConversionError
from osm2parquet.pipeline import convert
from osm2parquet.schema import TABLES
from osm2parquet.utils import get_logger


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="osm2parquet",
        description="Convert an OSM .pbf/.osm/.xml file into Parquet tables",
    )
    parser.add_argument("input_file", type=Path, help="Path to the .osm.pbf, .osm or .xml file")
    parser.add_argument("output_dir", type=Path, help="Existing directory for the tables")
    parser.add_argument("--queue-capacity", type=int, help="Batches queued per lane")
    parser.add_argument("--flush-threshold", type=int, help="Elements buffered per row-group")
    parser.add_argument("--batch-size", type=int, help="Elements per decoded batch")
    parser.add_argument("--compression", choices=VALID_COMPRESSIONS, help="Parquet codec")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = create_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # argparse exits with 2 on usage errors
        return 0 if e.code in (0, None) else 1

    logger = get_logger("osm2parquet", level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        config = ConversionConfig.from_env(
            queue_capacity=args.queue_capacity,
            flush_threshold=args.flush_threshold,
            batch_size=args.batch_size,
            compression=args.compression,
        )
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    try:
        result = convert(args.input_file, args.output_dir, config)
    except ConversionError as e:
        where = f"{e.stage} of table {e.table}" if e.table else f"stage {e.stage}"
        logger.error("Conversion failed at %s: %s", where, e)
        return 1

    for table in TABLES:
        logger.info(
            " > %-17s %d rows in %d row-groups",
            table,
            result.rows.get(table, 0),
            result.row_groups.get(table, 0),
        )
    logger.info("done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
