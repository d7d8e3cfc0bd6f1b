"""Optimistic local updates with a compensating revert."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

T = TypeVar("T")


@dataclass
class OptimisticUpdate:
    """Apply a local transition before a remote call and undo it on failure.

    ``apply`` runs first, then ``remote``. If ``remote`` raises, ``revert``
    runs and the original exception propagates to the caller. The remote
    backend stays the source of truth; the revert only restores the local
    view of it.
    """

    apply: Callable[[], Any]
    revert: Callable[[], Any]
    applied: bool = False
    reverted: bool = False

    def run(self, remote: Callable[[], T]) -> T:
        self.apply()
        self.applied = True
        try:
            return remote()
        except Exception:
            self.revert()
            self.reverted = True
            raise


def toggle_completion(
    items: list[dict[str, Any]], item_id: str, completed: bool
) -> list[dict[str, Any]]:
    """Return a copy of items with one item's completion flag changed.

    The input list is never mutated, so the caller can keep it as the
    snapshot to restore.
    """
    toggled = []
    for item in items:
        item = copy.copy(item)
        if item.get("id") == item_id:
            item["completed"] = completed
            if not completed:
                item["completed_date"] = None
        toggled.append(item)
    return toggled


class LocalState:
    """Holds a client-side view that optimistic updates operate on."""

    def __init__(self, value: Any) -> None:
        self.value = value

    def optimistic(
        self, transition: Callable[[Any], Any], remote: Callable[[], T]
    ) -> T:
        """Apply transition to the held value, restoring it if remote fails."""
        snapshot = self.value

        def apply() -> None:
            self.value = transition(snapshot)

        def revert() -> None:
            self.value = snapshot

        return OptimisticUpdate(apply, revert).run(remote)
