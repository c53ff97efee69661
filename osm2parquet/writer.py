"""
Parquet table writer: one instance per output table.

A writer appends one row-group per call to a hidden ``.<table>.parquet.partial``
file next to its destination. Nothing appears under the final name until
``commit()`` renames the finished file into place, so an aborted run never
leaves a truncated table behind.

Usage:
    with TableWriter.open(get_schema("nodes"), out_dir) as w:
        w.append_row_group({"id": [1, 2], "lat": [10.0, 30.0], "lon": [20.0, 40.0]})
    w.commit()
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import pyarrow as pa
import pyarrow.parquet as pq

from osm2parquet.exceptions import ColumnMismatchError, TableWriteError, WriterClosedError
from osm2parquet.schema import TableSchema

logger = logging.getLogger(__name__)


class TableWriter:
    def __init__(
        self,
        schema: TableSchema,
        path: Path,
        partial_path: Path,
        writer: pq.ParquetWriter,
    ) -> None:
        self.schema = schema
        self.path = path
        self.partial_path = partial_path
        self._arrow_schema = schema.to_arrow()
        self._writer = writer
        self.closed = False
        self.rows_written = 0
        self.row_groups = 0

    @classmethod
    def open(
        cls,
        schema: TableSchema,
        destination: str | Path,
        compression: str = "snappy",
    ) -> TableWriter:
        """
        Create the partial file for ``schema`` inside the ``destination`` directory.

        The final file is ``destination / schema.filename``; an existing file of
        that name is replaced on commit.
        """
        destination = Path(destination)
        path = destination / schema.filename
        partial_path = destination / f".{schema.filename}.partial"
        try:
            writer = pq.ParquetWriter(str(partial_path), schema.to_arrow(), compression=compression)
        except (OSError, pa.ArrowException) as e:
            raise TableWriteError(
                f"Could not open {partial_path}: {e}", stage="open", table=schema.name
            ) from e
        logger.debug("Opened %s (%s)", partial_path, compression)
        return cls(schema, path, partial_path, writer)

    @property
    def name(self) -> str:
        return self.schema.name

    def append_row_group(self, columns: Mapping[str, Sequence[Any]]) -> int:
        """
        Append one row-group built from equal-length column lists.

        The column names must match the table layout exactly. Zero-length
        columns are accepted and write nothing. Returns the number of rows
        appended.
        """
        if self.closed:
            raise WriterClosedError(
                f"Cannot append to closed table {self.name}", stage="append", table=self.name
            )

        expected = self.schema.column_names
        if set(columns) != set(expected):
            raise ColumnMismatchError(
                f"{self.name} expects columns {expected}, got {list(columns)}", table=self.name
            )

        lengths = {name: len(values) for name, values in columns.items()}
        if len(set(lengths.values())) > 1:
            raise ColumnMismatchError(
                f"{self.name} received columns of unequal length: {lengths}", table=self.name
            )

        num_rows = lengths[expected[0]]
        if num_rows == 0:
            return 0

        try:
            table = pa.Table.from_pydict(dict(columns), schema=self._arrow_schema)
        except (pa.ArrowInvalid, pa.ArrowTypeError) as e:
            raise ColumnMismatchError(f"{self.name}: {e}", table=self.name) from e

        for field in self._arrow_schema:
            if not field.nullable and table.column(field.name).null_count:
                raise ColumnMismatchError(
                    f"{self.name}.{field.name} is non-nullable but received nulls",
                    table=self.name,
                )

        try:
            self._writer.write_table(table, row_group_size=num_rows)
        except (OSError, pa.ArrowException) as e:
            raise TableWriteError(
                f"Failed writing row-group to {self.name}: {e}", stage="append", table=self.name
            ) from e

        self.rows_written += num_rows
        self.row_groups += 1
        return num_rows

    def close(self) -> None:
        """Write the Parquet footer. Must be called exactly once."""
        if self.closed:
            raise WriterClosedError(
                f"Table {self.name} is already closed", stage="close", table=self.name
            )
        self.closed = True
        try:
            self._writer.close()
        except (OSError, pa.ArrowException) as e:
            raise TableWriteError(
                f"Failed closing {self.name}: {e}", stage="close", table=self.name
            ) from e
        logger.debug(
            "Closed %s: %d rows in %d row-groups", self.name, self.rows_written, self.row_groups
        )

    def commit(self) -> Path:
        """Move the finished partial file onto the final table path."""
        if not self.closed:
            raise TableWriteError(
                f"Table {self.name} must be closed before commit", stage="commit", table=self.name
            )
        try:
            os.replace(self.partial_path, self.path)
        except OSError as e:
            raise TableWriteError(
                f"Failed moving {self.partial_path} to {self.path}: {e}",
                stage="commit",
                table=self.name,
            ) from e
        return self.path

    def discard(self) -> None:
        """Close if still open and delete the partial file."""
        if not self.closed:
            try:
                self.close()
            except TableWriteError as e:
                logger.warning("Ignoring close failure while discarding %s: %s", self.name, e)
        self.partial_path.unlink(missing_ok=True)

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> TableWriter:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if not self.closed:
            if exc_type is None:
                self.close()
            else:
                self.discard()
        return False


def write_table(
    schema: TableSchema,
    destination: str | Path,
    columns: Mapping[str, Sequence[Any]],
    compression: str = "snappy",
) -> Path:
    """Write ``columns`` as a single-row-group table and commit it."""
    with TableWriter.open(schema, destination, compression=compression) as writer:
        writer.append_row_group(columns)
    return writer.commit()
