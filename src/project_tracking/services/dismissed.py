from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol


class DismissedStore(Protocol):
    def load(self) -> set[str]: ...

    def save(self, ids: set[str]) -> None: ...


class InMemoryDismissedStore:
    def __init__(self, ids: Iterable[str] = ()) -> None:
        self._ids = {str(source_id) for source_id in ids}

    def load(self) -> set[str]:
        return set(self._ids)

    def save(self, ids: set[str]) -> None:
        self._ids = set(ids)


def dismiss(store: DismissedStore, source_id: str) -> set[str]:
    return dismiss_all(store, [source_id])


def dismiss_all(store: DismissedStore, source_ids: Iterable[str]) -> set[str]:
    updated = store.load() | {str(source_id) for source_id in source_ids if source_id}
    store.save(updated)
    return updated
