"""
Command-line interface for cf_metrics.
"""

from .main import main
from .parsers import build_overrides, create_parser

__all__ = ["main", "create_parser", "build_overrides"]
