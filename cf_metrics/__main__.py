"""Allow ``python -m cf_metrics``."""

import sys

from .cli import main

sys.exit(main())
