"""Package entry point.

Enables running the project with:

    python -m wavsmith ...
"""

from __future__ import annotations

import sys

from wavsmith.cli import main

if __name__ == "__main__":
    sys.exit(main())
