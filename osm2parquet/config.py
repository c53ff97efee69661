from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields

VALID_COMPRESSIONS = ("snappy", "zstd", "gzip", "brotli", "lz4", "none")


@dataclass
class ConversionConfig:
    """
    Tuning knobs for a conversion run.

    Attributes:
        queue_capacity:   Batches each lane may hold before the dispatcher
                          blocks. Peak memory grows with this times the
                          average batch size.
        flush_threshold:  Buffered elements at which a lane writes a
                          row-group. Independent of queue_capacity.
        batch_size:       Maximum elements per batch produced by the decoder.
                          8000 matches the entity count of a PBF block.
        compression:      Parquet codec for every table.
    """

    queue_capacity: int = 4
    flush_threshold: int = 100_000
    batch_size: int = 8_000
    compression: str = "snappy"

    def __post_init__(self):
        for name in ("queue_capacity", "flush_threshold", "batch_size"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        self.compression = self.compression.lower()
        if self.compression not in VALID_COMPRESSIONS:
            raise ValueError(
                f"compression must be one of {VALID_COMPRESSIONS}, got {self.compression!r}"
            )

    @classmethod
    def from_env(
        cls,
        prefix: str = "OSM2PARQUET_",
        environ: Mapping[str, str] | None = None,
        **overrides,
    ) -> ConversionConfig:
        """
        Build a config from ``<prefix><FIELD>`` environment variables.

        Expected variables (all optional):
            OSM2PARQUET_QUEUE_CAPACITY, OSM2PARQUET_FLUSH_THRESHOLD,
            OSM2PARQUET_BATCH_SIZE, OSM2PARQUET_COMPRESSION

        Keyword overrides that are not None win over the environment.
        """
        environ = os.environ if environ is None else environ
        kwargs = {}
        for f in fields(cls):
            key = f"{prefix}{f.name.upper()}"
            raw = environ.get(key)
            if raw is None or raw.strip() == "":
                continue
            if f.type in (int, "int"):
                try:
                    kwargs[f.name] = int(raw)
                except ValueError:
                    raise ValueError(f"{key} must be an integer, got {raw!r}") from None
            else:
                kwargs[f.name] = raw.strip()

        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**kwargs)
