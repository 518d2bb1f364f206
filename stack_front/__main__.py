"""Package entry point: allows ``python -m stack_front``."""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
