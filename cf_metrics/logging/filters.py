"""
Custom logging filters for cf_metrics.
"""

import logging
import re
from typing import List, Pattern, Tuple

MASK = "***MASKED***"


class SensitiveDataFilter(logging.Filter):
    """Filter to mask API credentials in log messages."""

    def __init__(self) -> None:
        """Initialize sensitive data filter."""
        super().__init__()

        self.rules: List[Tuple[Pattern[str], str]] = [
            # Bearer tokens
            (re.compile(r"(bearer\s+)([A-Za-z0-9_\-.+/=]{8,})", re.IGNORECASE), rf"\1{MASK}"),
            # Authorization headers that are not bearer-prefixed
            (
                re.compile(
                    r"""(authorization["']?\s*[:=]\s*["']?)(?!bearer\s)([A-Za-z0-9_\-.+/=]{8,})""",
                    re.IGNORECASE,
                ),
                rf"\1{MASK}",
            ),
            # token=..., api_key: ..., secret=...
            (
                re.compile(
                    r"""((?:api[_-]?)?(?:token|key|secret)["']?\s*[:=]\s*["']?)([A-Za-z0-9_\-.+/=]{8,})""",
                    re.IGNORECASE,
                ),
                rf"\1{MASK}",
            ),
        ]

    def mask(self, message: str) -> str:
        """Apply every masking rule to a message."""
        for pattern, replacement in self.rules:
            message = pattern.sub(replacement, message)
        return message

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter log record to mask sensitive data."""
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # Malformed %-args; let the handler report it
            return True

        masked = self.mask(message)
        if masked != message:
            record.msg = masked
            record.args = ()

        return True
