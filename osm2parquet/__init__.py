from osm2parquet.config import ConversionConfig
from osm2parquet.pipeline import ConversionResult, convert, convert_batches

__all__ = ["ConversionConfig", "ConversionResult", "convert", "convert_batches"]

__version__ = "0.1.0"
