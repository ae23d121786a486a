from .sog import SogFormat
from .ply import PlyFormat
from .parquet import ParquetFormat

__all__ = [
    'SogFormat',
    'PlyFormat',
    'ParquetFormat'
]
