from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Iterable, Iterator
from uuid import uuid4

from .ingest import MAX_FILES_PER_ADD, filter_files, mode_kind
from .models import BatchItem, FileHandle, ItemKind, ItemStatus

log = logging.getLogger(__name__)


class StoreRejected(Exception):
    """A store mutation was refused; the store is unchanged."""
    pass


class EditRejected(StoreRejected):
    """Content edits are only allowed while an item is pending."""
    pass


class RemoveRejected(StoreRejected):
    """Items cannot be removed while they are being processed."""
    pass


def make_item(kind: ItemKind, content: str = "",
              source_file: FileHandle | None = None) -> BatchItem:
    return BatchItem(id=str(uuid4()), kind=kind, content=content,
                     source_file=source_file)


class BatchItemStore:
    """Ordered collection of batch items with per-item lifecycle state.

    Iteration order is insertion order and ids are unique.  Status
    transitions other than the explicit :meth:`reset` are made by the
    batch pipeline through :meth:`begin_processing`, :meth:`complete` and
    :meth:`fail`.
    """

    def __init__(self, mode: str = "tts", max_files: int = MAX_FILES_PER_ADD):
        self._kind = mode_kind(mode)
        self._mode = mode
        self._max_files = max_files
        self._items: list[BatchItem] = []
        self._index: dict[str, BatchItem] = {}

    @property
    def mode(self) -> str:
        return self._mode

    # ── Adding ───────────────────────────────────────────────────────────

    def add(self, items: Iterable[BatchItem]) -> list[BatchItem]:
        """Append pending copies of *items* in order and return the copies.

        The store never adopts the caller's objects, so re-adding an item
        it already holds creates a new entry and leaves the original alone.
        A copy whose id is empty or already taken gets a fresh one.
        """
        added: list[BatchItem] = []
        for item in items:
            item_id = item.id
            if not item_id or item_id in self._index:
                item_id = str(uuid4())
                log.debug("Reassigning item id %r -> %s", item.id, item_id)
            entry = replace(item, id=item_id, status=ItemStatus.PENDING,
                            result=None, error=None, completed_at=None)
            self._items.append(entry)
            self._index[item_id] = entry
            added.append(entry)
        return added

    def add_text(self, content: str = "") -> BatchItem:
        """Append a free-text item (empty by default, edited later)."""
        return self.add([make_item(ItemKind.TEXT, content)])[0]

    def add_files(self, files: Iterable[FileHandle]) -> tuple[list[BatchItem], list[FileHandle]]:
        """Append one item per accepted file.

        Returns ``(added_items, rejected_files)``.  Raises
        :class:`~voicewavelib.ingest.IngestRejected` when too many files
        are offered at once.
        """
        accepted, rejected = filter_files(files, self._mode, self._max_files)
        for f in rejected:
            log.info("Skipping %s: not a %s file", f.name, self._kind.value)
        added = self.add(make_item(self._kind, f.name, f) for f in accepted)
        return added, rejected

    # ── Mutations ────────────────────────────────────────────────────────

    def update(self, item_id: str, content: str) -> BatchItem:
        """Replace a pending item's content."""
        item = self.get(item_id)
        if item.status != ItemStatus.PENDING:
            raise EditRejected(
                f"Item {item_id} is {item.status.value}; only pending items can be edited"
            )
        item.content = content
        return item

    def remove(self, item_id: str) -> BatchItem:
        """Remove an item that is not currently processing."""
        item = self.get(item_id)
        if item.status == ItemStatus.PROCESSING:
            raise RemoveRejected(f"Item {item_id} is being processed")
        self._items.remove(item)
        del self._index[item_id]
        return item

    def reset(self, item_id: str) -> BatchItem:
        """Make a failed item eligible for the next run again."""
        item = self.get(item_id)
        if item.status == ItemStatus.PENDING:
            return item
        if item.status != ItemStatus.FAILED:
            raise EditRejected(
                f"Item {item_id} is {item.status.value}; only failed items can be reset"
            )
        item.status = ItemStatus.PENDING
        item.error = None
        item.completed_at = None
        return item

    def clear(self) -> int:
        """Remove every item that is not processing.  Returns how many."""
        keep = [i for i in self._items if i.status == ItemStatus.PROCESSING]
        removed = len(self._items) - len(keep)
        self._items = keep
        self._index = {i.id: i for i in keep}
        return removed

    # ── Lifecycle transitions (pipeline only) ────────────────────────────

    def begin_processing(self) -> list[BatchItem]:
        """Move every pending item to processing in one step."""
        batch = self.pending()
        for item in batch:
            item.status = ItemStatus.PROCESSING
        return batch

    def complete(self, item_id: str, result: str) -> BatchItem:
        item = self._processing(item_id)
        item.status = ItemStatus.COMPLETED
        item.result = result
        item.error = None
        item.completed_at = datetime.now()
        return item

    def fail(self, item_id: str, error: str) -> BatchItem:
        item = self._processing(item_id)
        item.status = ItemStatus.FAILED
        item.error = error
        item.completed_at = datetime.now()
        return item

    def _processing(self, item_id: str) -> BatchItem:
        item = self.get(item_id)
        if item.status != ItemStatus.PROCESSING:
            raise StoreRejected(f"Item {item_id} is not processing")
        return item

    # ── Queries ──────────────────────────────────────────────────────────

    def get(self, item_id: str) -> BatchItem:
        try:
            return self._index[item_id]
        except KeyError:
            raise KeyError(f"No batch item with id {item_id!r}") from None

    def all_items(self) -> list[BatchItem]:
        return list(self._items)

    def with_status(self, status: ItemStatus) -> list[BatchItem]:
        return [i for i in self._items if i.status == status]

    def pending(self) -> list[BatchItem]:
        return self.with_status(ItemStatus.PENDING)

    def processing(self) -> list[BatchItem]:
        return self.with_status(ItemStatus.PROCESSING)

    def completed(self) -> list[BatchItem]:
        return self.with_status(ItemStatus.COMPLETED)

    def failed(self) -> list[BatchItem]:
        return self.with_status(ItemStatus.FAILED)

    def counts(self) -> dict[ItemStatus, int]:
        counts = {status: 0 for status in ItemStatus}
        for item in self._items:
            counts[item.status] += 1
        return counts

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[BatchItem]:
        return iter(list(self._items))

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._index
