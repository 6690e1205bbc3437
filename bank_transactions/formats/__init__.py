"""Format codecs. Each module exposes ``decode_records`` and ``encode_records``."""

from . import binary_format, csv_format, text_format

__all__ = ["binary_format", "csv_format", "text_format"]
