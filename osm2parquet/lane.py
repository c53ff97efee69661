"""
Per-kind worker lane: bounded queue, buffer and the kind's table writers.

The dispatcher feeds batches with ``put`` (blocking while the queue is full)
and calls ``finish`` exactly once when no more batches will come. The worker
runs ``run`` on its own thread:

    wait for a batch -> extend buffer -> flush when buffer >= threshold
    end of input     -> final flush -> close writers

All lanes of a run share one abort event. A lane that fails sets it; a lane
that sees it stops buffering, drains its queue until end-of-input (so the
dispatcher never blocks on a dead lane) and closes its writers without a
final flush.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, field

from osm2parquet.exceptions import ConversionError, LaneError
from osm2parquet.model import Batch, Element, ElementKind
from osm2parquet.normalize import normalize
from osm2parquet.schema import KIND_TABLES
from osm2parquet.writer import TableWriter

logger = logging.getLogger(__name__)

_END_OF_INPUT = object()


@dataclass
class LaneStats:
    """Counters a lane accumulates over a run."""

    kind: ElementKind
    batches: int = 0
    elements: int = 0
    flushes: int = 0
    rows: dict[str, int] = field(default_factory=dict)
    row_groups: dict[str, int] = field(default_factory=dict)
    aborted: bool = False


class Lane:
    def __init__(
        self,
        kind: ElementKind,
        writers: dict[str, TableWriter],
        abort: threading.Event,
        queue_capacity: int = 4,
        flush_threshold: int = 100_000,
    ) -> None:
        kind = ElementKind(kind)
        expected = set(KIND_TABLES[kind])
        if set(writers) != expected:
            raise ValueError(
                f"{kind.value} lane needs writers for {sorted(expected)}, got {sorted(writers)}"
            )
        if queue_capacity < 1 or flush_threshold < 1:
            raise ValueError("queue_capacity and flush_threshold must be at least 1")

        self.kind = kind
        self.writers = writers
        self.queue: queue.Queue = queue.Queue(maxsize=queue_capacity)
        self.flush_threshold = flush_threshold
        self.stats = LaneStats(
            kind=kind,
            rows={t: 0 for t in writers},
            row_groups={t: 0 for t in writers},
        )
        self._abort = abort
        self._buffer: list[Element] = []

    # ------------------------------------------------------------------
    # Dispatcher side
    # ------------------------------------------------------------------

    def put(self, batch: Batch) -> None:
        """Hand a batch to the worker, blocking while the queue is full."""
        if batch.kind is not self.kind:
            raise ValueError(f"{batch.kind.value} batch sent to the {self.kind.value} lane")
        self.queue.put(batch)

    def finish(self) -> None:
        """Signal that no more batches will arrive."""
        self.queue.put(_END_OF_INPUT)

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------

    def run(self) -> LaneStats:
        """Worker loop. Returns the lane's stats, or raises after draining."""
        end_seen = False
        try:
            while True:
                item = self.queue.get()
                if item is _END_OF_INPUT:
                    end_seen = True
                    break
                if self._abort.is_set():
                    self.stats.aborted = True
                    continue

                self._buffer.extend(item.elements)
                self.stats.batches += 1
                self.stats.elements += len(item)

                if len(self._buffer) >= self.flush_threshold:
                    self.flush()

            if self._abort.is_set():
                self.stats.aborted = True
                self._buffer = []
                self._close_writers(failed=True)
            else:
                self.flush()
                self._close_writers(failed=False)
        except BaseException:
            self._abort.set()
            self.stats.aborted = True
            self._buffer = []
            self._close_writers(failed=True)
            if not end_seen:
                self._drain()
            raise

        logger.info(
            "%s lane %s: %d elements in %d flushes",
            self.kind.value,
            "aborted" if self.stats.aborted else "finished",
            self.stats.elements,
            self.stats.flushes,
        )
        return self.stats

    def flush(self) -> None:
        """Normalize the buffer and append one row-group per table. Empty is a no-op."""
        if not self._buffer:
            return

        try:
            tables = normalize(self.kind, self._buffer)
        except Exception as e:
            raise LaneError(
                f"Could not normalize {len(self._buffer)} {self.kind.value}s: {e}",
                kind=self.kind.value,
            ) from e

        for table, columns in tables.items():
            writer = self.writers[table]
            try:
                rows = writer.append_row_group(columns)
            except ConversionError:
                raise
            except Exception as e:
                raise LaneError(
                    f"Unexpected failure writing {table}: {e}", kind=self.kind.value
                ) from e
            if rows:
                self.stats.rows[table] += rows
                self.stats.row_groups[table] += 1

        logger.debug("Flushed %d %ss", len(self._buffer), self.kind.value)
        self.stats.flushes += 1
        self._buffer = []

    def _close_writers(self, failed: bool) -> None:
        """Close every still-open writer; on the failure path close errors are only logged."""
        first_error: BaseException | None = None
        for writer in self.writers.values():
            if writer.closed:
                continue
            try:
                writer.close()
            except Exception as e:
                if failed:
                    logger.warning("Ignoring close failure on %s after abort: %s", writer.name, e)
                elif first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error

    def _drain(self) -> None:
        """Discard queued batches until the dispatcher signals end of input."""
        while self.queue.get() is not _END_OF_INPUT:
            pass
