"""Allow ``python -m ftpshell``."""

import sys

from ftpshell.main import main

sys.exit(main())
