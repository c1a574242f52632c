"""Log-and-continue wrapper for bookkeeping writes."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar

T = TypeVar("T")

log = logging.getLogger(__name__)


def best_effort(description: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> Optional[T]:
    """
    Call func; on failure log a warning and return None.

    Only for run bookkeeping (progress, completion, status, pruning): a
    failed telemetry write must never abort the operation it describes.
    """
    try:
        return func(*args, **kwargs)
    except Exception as exc:
        log.warning("%s failed (ignored): %s", description, exc)
        return None
