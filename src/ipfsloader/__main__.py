"""Allow ``python -m ipfsloader``."""

import sys

from ipfsloader._cli import main

sys.exit(main())
