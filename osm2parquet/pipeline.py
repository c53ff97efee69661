"""
Conversion pipeline: decoder -> dispatcher -> one lane per element kind.

The dispatcher runs on the calling thread and the three lanes on a fixed
thread pool, one worker per kind. Each lane owns the writers of its tables.
A run is all-or-nothing: tables are written to partial files and only moved
onto their final names once every lane has finished cleanly. Any failure
discards every partial file and re-raises the first error.

Usage:
    from osm2parquet.pipeline import convert

    result = convert("illinois-latest.osm.pbf", "out/")
    print(result.rows["nodes"], result.rows["way-nodes"])
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from concurrent import futures
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from osm2parquet.config import ConversionConfig
from osm2parquet.exceptions import ConversionError
from osm2parquet.lane import Lane, LaneStats
from osm2parquet.model import Batch, ElementKind
from osm2parquet.parsers.osm import ParseResult, read_batches
from osm2parquet.schema import KIND_TABLES, TableSchema, get_schema
from osm2parquet.writer import TableWriter

logger = logging.getLogger(__name__)

WriterFactory = Callable[[TableSchema, Path, str], TableWriter]


def _open_writer(schema: TableSchema, destination: Path, compression: str) -> TableWriter:
    return TableWriter.open(schema, destination, compression=compression)


@dataclass
class ConversionResult:
    """Tracks a single conversion run's state and totals."""

    output_dir: Path
    elements: dict[str, int] = field(default_factory=dict)
    rows: dict[str, int] = field(default_factory=dict)
    row_groups: dict[str, int] = field(default_factory=dict)
    output_files: list[Path] = field(default_factory=list)
    parse_result: ParseResult | None = None
    status: str = "running"
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error: str | None = None

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at is None or self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def record_lane(self, stats: LaneStats) -> None:
        self.elements[stats.kind.value] = stats.elements
        self.rows.update(stats.rows)
        self.row_groups.update(stats.row_groups)

    def __enter__(self) -> ConversionResult:
        self.started_at = datetime.now(UTC)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.completed_at = datetime.now(UTC)
        if exc_type is not None:
            self.status = "failed"
            self.error = str(exc_val)
        else:
            self.status = "success"
        return False


def dispatch(
    batches: Iterable[Batch],
    lanes: dict[ElementKind, Lane],
    abort: threading.Event,
) -> int:
    """
    Route every batch to the lane of its kind, in source order.

    Stops early once ``abort`` is set. Whatever happens, every lane is sent
    end-of-input before this returns or raises. Returns the number of batches
    dispatched.
    """
    dispatched = 0
    try:
        for batch in batches:
            if abort.is_set():
                logger.warning("Dispatcher stopping after %d batches: a lane failed", dispatched)
                break
            if not isinstance(batch, Batch):
                raise TypeError(f"Expected a Batch, got {type(batch).__name__}")
            lanes[batch.kind].put(batch)
            dispatched += 1
    except BaseException:
        abort.set()
        raise
    finally:
        for lane in lanes.values():
            lane.finish()
    return dispatched


def convert_batches(
    batches: Iterable[Batch],
    output_dir: str | Path,
    config: ConversionConfig | None = None,
    writer_factory: WriterFactory = _open_writer,
) -> ConversionResult:
    """
    Write an iterable of batches into the eight tables under ``output_dir``.

    ``output_dir`` must already exist. Raises ConversionError (or a subclass
    naming the failing table and stage) if anything fails, in which case no
    new table files are left in ``output_dir``.
    """
    config = config or ConversionConfig()
    output_dir = Path(output_dir)
    if not output_dir.is_dir():
        raise ConversionError(f"Output directory does not exist: {output_dir}", stage="open")

    result = ConversionResult(output_dir=output_dir)
    with result:
        writers = _open_all_writers(output_dir, config.compression, writer_factory)
        try:
            _run_lanes(batches, writers, config, result)
        except BaseException as e:
            logger.error(
                "Conversion failed (stage=%s, table=%s): %s",
                getattr(e, "stage", None),
                getattr(e, "table", None),
                e,
            )
            for writer in writers.values():
                writer.discard()
            raise

        result.output_files = _commit_all(writers)

    logger.info(
        "Wrote %d tables to %s in %.1fs",
        len(result.output_files),
        output_dir,
        result.duration_seconds or 0.0,
    )
    return result


def convert(
    input_path: str | Path,
    output_dir: str | Path,
    config: ConversionConfig | None = None,
) -> ConversionResult:
    """Decode an .osm.pbf/.osm/.xml file and convert it into Parquet tables."""
    config = config or ConversionConfig()
    batches, parse_result = read_batches(input_path, batch_size=config.batch_size)
    logger.info("Converting %s (%s) into %s", input_path, parse_result.input_format, output_dir)
    try:
        result = convert_batches(batches, output_dir, config)
    finally:
        batches.close()
    result.parse_result = parse_result
    return result


def _open_all_writers(
    output_dir: Path,
    compression: str,
    writer_factory: WriterFactory,
) -> dict[str, TableWriter]:
    writers: dict[str, TableWriter] = {}
    try:
        for tables in KIND_TABLES.values():
            for table in tables:
                writers[table] = writer_factory(get_schema(table), output_dir, compression)
    except BaseException:
        for writer in writers.values():
            writer.discard()
        raise
    return writers


def _run_lanes(
    batches: Iterable[Batch],
    writers: dict[str, TableWriter],
    config: ConversionConfig,
    result: ConversionResult,
) -> None:
    abort = threading.Event()
    lanes = {
        kind: Lane(
            kind,
            {t: writers[t] for t in tables},
            abort,
            queue_capacity=config.queue_capacity,
            flush_threshold=config.flush_threshold,
        )
        for kind, tables in KIND_TABLES.items()
    }

    with futures.ThreadPoolExecutor(
        max_workers=len(lanes), thread_name_prefix="osm2parquet-lane"
    ) as pool:
        pending = {pool.submit(lane.run): lane for lane in lanes.values()}
        dispatch_error: BaseException | None = None
        try:
            dispatched = dispatch(batches, lanes, abort)
            logger.debug("Dispatched %d batches", dispatched)
        except BaseException as e:
            dispatch_error = e

        lane_errors: list[BaseException] = []
        for future in futures.as_completed(pending):
            error = future.exception()
            if error is not None:
                lane_errors.append(error)
            else:
                result.record_lane(future.result())

    if dispatch_error is not None:
        raise dispatch_error
    if lane_errors:
        raise lane_errors[0]
    if abort.is_set():
        raise ConversionError("Conversion aborted", stage="dispatch")


def _commit_all(writers: dict[str, TableWriter]) -> list[Path]:
    paths = []
    remaining = list(writers.values())
    try:
        while remaining:
            paths.append(remaining[0].commit())
            logger.debug("Committed %s", remaining[0].path)
            remaining.pop(0)
    except BaseException:
        # Tables already renamed cannot be rolled back; drop the rest.
        for writer in remaining:
            writer.discard()
        raise
    return paths
