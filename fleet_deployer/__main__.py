"""Allow ``python -m fleet_deployer``."""

import sys

from fleet_deployer.cli import main

if __name__ == "__main__":
    sys.exit(main())
