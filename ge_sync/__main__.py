from __future__ import annotations

import sys

from ge_sync.cli import main

if __name__ == "__main__":
    sys.exit(main())
