"""Allow ``python -m porty``."""

import sys

from porty.cli import main

sys.exit(main())
