"""
Import hooks and the bulk-operation context.

`ImportHooks` is the reactive side of the content store: callbacks that run
whenever a file under the project is written (for example to refresh cached
image metadata). A batch that writes many files wraps its work in a
`BulkOperation`; while it is active, notifications are queued instead of
fired, and they are replayed once per path when the operation ends. This
keeps a batch's own output from re-triggering work mid-batch.
"""

from __future__ import annotations

import logging
from typing import Callable, List

logger = logging.getLogger(__name__)

ImportCallback = Callable[[str], None]


class ImportHooks:
    """Registry of callbacks notified about newly written project files."""

    def __init__(self) -> None:
        self._callbacks: List[ImportCallback] = []

    def register(self, callback: ImportCallback) -> None:
        self._callbacks.append(callback)

    def file_written(self, path: str, bulk: "BulkOperation | None" = None) -> None:
        """Announce a written file, deferring it if a bulk operation is active."""
        if bulk is not None and bulk.active:
            bulk.defer(path)
            return
        self.fire(path)

    def fire(self, path: str) -> None:
        for callback in self._callbacks:
            try:
                callback(path)
            except Exception as exc:  # noqa: BLE001
                logger.error("Import hook failed for %s: %s", path, exc)


class BulkOperation:
    """
    Scoped marker for a batch that writes files.

    Use as a context manager; the operation is released on every exit path,
    including exceptions, and deferred notifications are flushed then.
    """

    def __init__(self, hooks: ImportHooks, name: str = "bulk") -> None:
        self._hooks = hooks
        self.name = name
        self.active = False
        self._deferred: List[str] = []

    def defer(self, path: str) -> None:
        if path not in self._deferred:
            self._deferred.append(path)

    @property
    def deferred(self) -> List[str]:
        return list(self._deferred)

    def __enter__(self) -> "BulkOperation":
        if self.active:
            raise RuntimeError(f"Bulk operation '{self.name}' is already active")
        self.active = True
        logger.debug("Bulk operation '%s' started", self.name)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.active = False
        pending, self._deferred = self._deferred, []
        if pending:
            logger.debug(
                "Bulk operation '%s' ended, replaying %d import notification(s)",
                self.name,
                len(pending),
            )
        for path in pending:
            self._hooks.fire(path)
