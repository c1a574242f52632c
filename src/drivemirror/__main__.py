from __future__ import annotations

import sys

from drivemirror.cli import main

sys.exit(main())
