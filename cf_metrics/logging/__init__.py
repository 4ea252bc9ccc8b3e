"""
Logging setup for cf_metrics.

Console and rotating-file output, optional JSON lines, and masking of the
API credential in every record.
"""

from .filters import SensitiveDataFilter
from .formatters import ColoredFormatter, StructuredFormatter
from .manager import LoggingManager, cleanup_logging, setup_logging

__all__ = [
    "LoggingManager",
    "setup_logging",
    "cleanup_logging",
    "StructuredFormatter",
    "ColoredFormatter",
    "SensitiveDataFilter",
]
