"""Allow ``python -m dropnote.cli`` execution."""

import sys

from dropnote.cli.run import main

sys.exit(main())
