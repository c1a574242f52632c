"""Size-bounded Firestore write batches."""

from __future__ import annotations

import logging
from typing import Any, Optional

from drivemirror.errors import InvalidArgumentError

from .collections import MAX_BATCH_SIZE

log = logging.getLogger(__name__)


class BatchWriter:
    """
    Accumulate set/delete operations and commit them in bounded batches.

    Each full batch is committed before the next one is started; `flush()`
    commits the trailing partial batch. Only a single batch is atomic.

    Used as a context manager, the trailing batch is flushed on normal exit
    and discarded if the block raises.
    """

    def __init__(self, client: Any, *, max_batch_size: int = MAX_BATCH_SIZE) -> None:
        if not 1 <= max_batch_size <= MAX_BATCH_SIZE:
            raise InvalidArgumentError(
                f"max_batch_size must be between 1 and {MAX_BATCH_SIZE}",
                details={"max_batch_size": max_batch_size},
            )
        self._client = client
        self._max_batch_size = max_batch_size
        self._batch: Optional[Any] = None
        self._pending = 0
        self.committed_batches = 0
        self.committed_operations = 0

    @property
    def pending(self) -> int:
        return self._pending

    def set(self, ref: Any, data: dict[str, Any], *, merge: bool = True) -> None:
        self._current().set(ref, data, merge=merge)
        self._added()

    def delete(self, ref: Any) -> None:
        self._current().delete(ref)
        self._added()

    def flush(self) -> None:
        if self._batch is None or self._pending == 0:
            return
        self._batch.commit()
        log.debug("Committed batch of %d operations", self._pending)
        self.committed_batches += 1
        self.committed_operations += self._pending
        self._batch = None
        self._pending = 0

    def __enter__(self) -> BatchWriter:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is None:
            self.flush()
        else:
            self._batch = None
            self._pending = 0
        return False

    def _current(self) -> Any:
        if self._batch is None:
            self._batch = self._client.batch()
        return self._batch

    def _added(self) -> None:
        self._pending += 1
        if self._pending >= self._max_batch_size:
            self.flush()
