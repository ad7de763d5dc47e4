"""Allow running the sidecar with ``python -m sidecar``."""

import sys

from .cli import main

sys.exit(main())
