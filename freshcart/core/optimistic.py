"""Snapshot / apply / compensate helper for optimistic updates.

Usage::

    with OptimisticUpdate(lambda: list(self._lines), self._restore_lines, label="cart"):
        self._lines.append(line)      # apply locally
        storage.save(self._lines)     # backend call; on error the snapshot is restored

The same object works with ``async with`` for awaited backend calls. The
exception is never swallowed: callers decide how to surface it.
"""
from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OptimisticUpdate(Generic[T]):
    """Capture state before a mutation and restore it if the mutation fails."""

    def __init__(
        self,
        capture: Callable[[], T],
        restore: Callable[[T], None],
        *,
        label: str = "",
    ) -> None:
        self._capture = capture
        self._restore = restore
        self._label = label
        self.snapshot: T | None = None
        self.rolled_back = False

    def _take(self) -> None:
        self.snapshot = copy.deepcopy(self._capture())

    def _compensate(self, exc: BaseException | None) -> None:
        if exc is None:
            return
        logger.warning("Rolling back %s after failed update: %s", self._label or "state", exc)
        self._restore(self.snapshot)  # type: ignore[arg-type]
        self.rolled_back = True

    def __enter__(self) -> OptimisticUpdate[T]:
        self._take()
        return self

    def __exit__(self, exc_type: Any, exc: BaseException | None, tb: Any) -> bool:
        self._compensate(exc)
        return False

    async def __aenter__(self) -> OptimisticUpdate[T]:
        self._take()
        return self

    async def __aexit__(self, exc_type: Any, exc: BaseException | None, tb: Any) -> bool:
        self._compensate(exc)
        return False
