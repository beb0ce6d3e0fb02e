"""Allow running as ``python -m pkgtrend``."""

import sys

from .cli import main

sys.exit(main())
