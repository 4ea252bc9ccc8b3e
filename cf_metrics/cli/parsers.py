"""
Argument parsing for the collector CLI.

Every option is optional; anything left unset falls back to the config file,
the environment and finally the built-in defaults.
"""

import argparse
from pathlib import Path
from typing import Any, Dict

from ..config.models import LogLevel


def add_config_arguments(parser: argparse.ArgumentParser) -> None:
    """Add configuration source arguments."""
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        help="YAML or JSON config file (default: search cf_metrics.yaml/.yml/.json)",
    )

    parser.add_argument(
        "--env-file",
        type=Path,
        help="File of KEY=VALUE lines loaded into the environment (default: .env, then ../.env)",
    )


def add_server_arguments(parser: argparse.ArgumentParser) -> None:
    """Add scrape endpoint arguments."""
    parser.add_argument("--host", help="Address to listen on (default: 0.0.0.0)")

    parser.add_argument(
        "-p", "--port", type=int, help="Port to listen on (default: 28191)"
    )

    parser.add_argument(
        "--metrics-path", help="Path of the scrape endpoint (default: /metrics)"
    )


def add_polling_arguments(parser: argparse.ArgumentParser) -> None:
    """Add poll loop and API timing arguments."""
    parser.add_argument(
        "--interval",
        type=float,
        help="Seconds between polling passes (default: 300)",
    )

    parser.add_argument(
        "--timeout",
        type=float,
        help="API request timeout in seconds (default: 30)",
    )

    parser.add_argument(
        "--concurrency",
        type=int,
        help="Zones fetched in parallel per pass (default: 1)",
    )


def add_logging_arguments(parser: argparse.ArgumentParser) -> None:
    """Add logging arguments."""
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=[level.value for level in LogLevel],
        help="Log level (default: INFO)",
    )

    parser.add_argument(
        "--log-structured",
        action="store_true",
        default=None,
        help="Emit JSON log lines",
    )


def create_parser(version: str = "") -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="cf-metrics-collector",
        description="Export Cloudflare zone request analytics as Prometheus gauges",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Token from the environment, defaults everywhere else
  CLOUDFLARE_API_TOKEN=... %(prog)s

  %(prog)s --port 9100 --interval 60
  %(prog)s --config /etc/cf_metrics.yaml --log-level DEBUG
  %(prog)s --concurrency 4 --timeout 15

The API token is read from CLOUDFLARE_API_TOKEN (a .env file is honoured).
        """,
    )

    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {version}".rstrip()
    )

    add_config_arguments(parser)
    add_server_arguments(parser)
    add_polling_arguments(parser)
    add_logging_arguments(parser)

    return parser


def build_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Translate parsed arguments into nested config overrides."""
    mapping = {
        "host": ("server", "host"),
        "port": ("server", "port"),
        "metrics_path": ("server", "path"),
        "interval": ("poller", "interval"),
        "concurrency": ("poller", "max_concurrency"),
        "timeout": ("api", "timeout"),
        "log_level": ("logging", "level"),
        "log_structured": ("logging", "enable_structured"),
    }

    overrides: Dict[str, Any] = {}
    for attr, (section, key) in mapping.items():
        value = getattr(args, attr, None)
        if value is not None:
            overrides.setdefault(section, {})[key] = value
    return overrides
