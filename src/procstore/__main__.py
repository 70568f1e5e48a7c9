"""Entry point for ``python -m procstore``."""

import sys

from procstore.cli import main

sys.exit(main())
