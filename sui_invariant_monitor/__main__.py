"""Allow running the package as a module: python -m sui_invariant_monitor"""

import sys

from sui_invariant_monitor.cli import main

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
