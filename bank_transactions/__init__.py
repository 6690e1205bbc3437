"""Public interface for the ``bank_transactions`` package.

Re-exports the conversion and comparison API, the transaction models and the
error types. Import from here rather than from the submodules; this module
holds no logic of its own.
"""

from .api import (
    ComparisonResult,
    SupportedFormat,
    Transactions,
    compare,
    compare_transactions,
    convert,
    convert_file,
    read_binary,
    read_csv,
    read_text,
    read_transactions,
    write_binary,
    write_csv,
    write_text,
    write_transactions,
)
from .errors import (
    ConversionError,
    FieldParseError,
    ParseError,
    RangeError,
    SizeLimitExceeded,
    StreamError,
    StructuralError,
    UnsupportedFormatError,
)
from .models import (
    BinaryRecord,
    CsvRecord,
    TextRecord,
    Transaction,
    TxStatus,
    TxType,
)

__all__ = [
    # API
    "compare",
    "compare_transactions",
    "convert",
    "convert_file",
    "read_binary",
    "read_csv",
    "read_text",
    "read_transactions",
    "write_binary",
    "write_csv",
    "write_text",
    "write_transactions",
    "ComparisonResult",
    "SupportedFormat",
    "Transactions",
    # Models / types
    "Transaction",
    "TxType",
    "TxStatus",
    "CsvRecord",
    "TextRecord",
    "BinaryRecord",
    # Errors
    "ParseError",
    "StructuralError",
    "FieldParseError",
    "ConversionError",
    "RangeError",
    "SizeLimitExceeded",
    "StreamError",
    "UnsupportedFormatError",
]
