# date_slicer/services/bookmarks.py
from __future__ import annotations

import datetime as dt
import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol

from pydantic import BaseModel, Field

from date_slicer.core.logging_setup import get_logger
from date_slicer.filters.snapshot import SnapshotBlob
from date_slicer.services.filter_bus import FilterBus

log = get_logger("bookmarks")


class Restorable(Protocol):
    def capture_state(self) -> Dict[str, Any]: ...
    def restore_state(self, blob: Any) -> None: ...


class Bookmark(BaseModel):
    """A named dashboard capture: each slicer's blob plus the bus filters at that moment."""
    name: str
    created_at: dt.datetime = Field(default_factory=dt.datetime.now)
    slicers: Dict[str, SnapshotBlob] = Field(default_factory=dict)
    filters: List[Dict[str, Any]] = Field(default_factory=list)


class BookmarkStore:
    """
    Bookmarks keyed by name, optionally persisted to a JSON file.

    Applying a bookmark restores the bus filters first, then queues each
    slicer's restore; slicers re-derive preset ranges on their next update.
    """

    def __init__(self, path: Optional[str | Path] = None):
        self.path = Path(path) if path else None
        self._items: Dict[str, Bookmark] = {}

    def names(self) -> List[str]:
        return sorted(self._items)

    def get(self, name: str) -> Bookmark:
        try:
            return self._items[name]
        except KeyError:
            raise KeyError(f"No bookmark named {name!r}") from None

    def capture(
        self,
        name: str,
        slicers: Mapping[str, Restorable],
        bus: FilterBus,
        *,
        clear_selection: bool = False,
    ) -> Bookmark:
        """
        Capture the current dashboard. With `clear_selection` the bookmark
        carries no filters and tells every slicer to behave as after a clear-all.
        """
        blobs = {}
        for key, slicer in slicers.items():
            blob = SnapshotBlob.model_validate(slicer.capture_state())
            if clear_selection:
                blob = blob.model_copy(update={"is_clear_selection": True})
            blobs[key] = blob
        bm = Bookmark(name=name, slicers=blobs, filters=[] if clear_selection else bus.snapshot())
        self._items[name] = bm
        log.info(f"[capture] - bookmark_captured - name={name!r} slicers={len(blobs)} filters={len(bm.filters)}")
        return bm

    def apply(self, name: str, slicers: Mapping[str, Restorable], bus: FilterBus) -> Bookmark:
        bm = self.get(name)
        bus.restore(bm.filters)
        for key, slicer in slicers.items():
            blob = bm.slicers.get(key)
            if blob is None:
                log.warning(f"[apply] - slicer_missing_from_bookmark - name={name!r} slicer={key}")
                continue
            slicer.restore_state(blob)
        log.info(f"[apply] - bookmark_applied - name={name!r}")
        return bm

    def delete(self, name: str) -> bool:
        return self._items.pop(name, None) is not None

    # -------------------------- persistence --------------------------

    def save(self) -> Optional[Path]:
        if self.path is None:
            return None
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [bm.model_dump(mode="json", by_alias=True) for bm in self._items.values()]
        with self.path.open("w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2)
        log.debug(f"[save] - bookmarks_saved - path={self.path} count={len(payload)}")
        return self.path

    def load(self) -> int:
        if self.path is None or not self.path.exists():
            return 0
        with self.path.open("r", encoding="utf-8") as fh:
            payload = json.load(fh)
        self._items = {bm.name: bm for bm in (Bookmark.model_validate(d) for d in payload)}
        log.debug(f"[load] - bookmarks_loaded - path={self.path} count={len(self._items)}")
        return len(self._items)
