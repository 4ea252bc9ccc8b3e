#!/usr/bin/env python3
"""
Command-line entry point for the collector.
"""

import asyncio
import logging
import sys
from typing import List, Optional

from .. import __version__
from ..app import EXIT_FAILURE, run_exporter
from ..config import load_config
from ..exceptions import ConfigurationError
from ..logging import cleanup_logging, setup_logging
from .parsers import build_overrides, create_parser

logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130


def main(argv: Optional[List[str]] = None) -> int:
    """
    Parse arguments, load configuration and run the collector.

    Args:
        argv: Argument list (defaults to ``sys.argv[1:]``)

    Returns:
        Process exit code
    """
    parser = create_parser(__version__)
    args = parser.parse_args(argv)

    try:
        config = load_config(
            config_file=args.config,
            env_file=args.env_file,
            overrides=build_overrides(args),
        )
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_FAILURE

    setup_logging(config.logging)
    logger.info(
        "cf-metrics-collector %s starting (api %s, interval %.0fs)",
        __version__,
        config.api.base_url,
        config.poller.interval,
    )
    if not config.api.token:
        logger.warning(
            "CLOUDFLARE_API_TOKEN is not set; API calls will be unauthenticated"
        )

    try:
        return asyncio.run(run_exporter(config))
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return EXIT_INTERRUPTED
    finally:
        cleanup_logging()


if __name__ == "__main__":
    sys.exit(main())
