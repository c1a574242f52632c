"""Console logging setup."""

from __future__ import annotations

import coloredlogs

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install coloredlogs on the root logger."""
    coloredlogs.install(level=level.upper(), fmt=LOG_FORMAT)
