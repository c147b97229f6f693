# date_slicer/services/filter_bus.py
from __future__ import annotations

import copy
from collections import deque
import threading
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Literal, Optional, Tuple

from pydantic import ValidationError

from date_slicer.core.logging_setup import get_logger
from date_slicer.filters.codec import AdvancedFilter

log = get_logger("filter_bus")

MergeStrategy = Literal["merge", "replace", "remove"]
_STRATEGIES = ("merge", "replace", "remove")

TargetKey = Tuple[str, str]


@dataclass
class BusWrite:
    """One accepted write, kept for the status HUD."""
    version: int
    strategy: str
    targets: List[TargetKey] = field(default_factory=list)


class FilterBus:
    """
    In-process stand-in for the host's dashboard filter store.

    Filters are advanced-filter JSON dicts keyed by their (table, column) target.
    `merge` replaces only the targets it names, so other widgets' filters
    survive. Reads return copies.
    """

    def __init__(self, history: int = 50):
        self._lock = threading.Lock()
        self._filters: Dict[TargetKey, Dict[str, Any]] = {}
        self._version = 0
        self._writes: Deque[BusWrite] = deque(maxlen=max(history, 0))

    # -------------------------- writes --------------------------

    def apply_predicate(self, predicate: Any, merge_strategy: MergeStrategy = "merge") -> int:
        if merge_strategy not in _STRATEGIES:
            raise ValueError(f"Unknown merge strategy {merge_strategy!r}; expected one of {_STRATEGIES}")

        entries = self._normalize(predicate)
        with self._lock:
            if merge_strategy == "replace":
                self._filters = {}
            for key, payload in entries:
                if merge_strategy == "remove":
                    self._filters.pop(key, None)
                else:
                    self._filters[key] = payload
            version = self._bump(merge_strategy, [k for k, _ in entries])

        log.info(
            f"[apply_predicate] - bus_write - strategy={merge_strategy} "
            f"targets={[f'{t}[{c}]' for t, c in (k for k, _ in entries)]} version={version}"
        )
        return version

    def remove(self, table: str, column: str) -> bool:
        with self._lock:
            removed = self._filters.pop((table, column), None) is not None
            if removed:
                self._bump("remove", [(table, column)])
        return removed

    def clear_all(self) -> int:
        """Dashboard-wide clear: every widget's filter goes at once."""
        with self._lock:
            targets = list(self._filters)
            self._filters = {}
            version = self._bump("clear_all", targets)
        log.info(f"[clear_all] - bus_cleared - removed={len(targets)} version={version}")
        return version

    # -------------------------- reads --------------------------

    def filters(self, exclude: Optional[TargetKey] = None) -> List[Dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(v) for k, v in self._filters.items() if k != exclude]

    def get(self, table: str, column: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            payload = self._filters.get((table, column))
            return copy.deepcopy(payload) if payload is not None else None

    @property
    def version(self) -> int:
        return self._version

    def recent_writes(self) -> List[BusWrite]:
        with self._lock:
            return list(self._writes)

    def __len__(self) -> int:
        return len(self._filters)

    # -------------------------- persistence --------------------------

    def snapshot(self) -> List[Dict[str, Any]]:
        return self.filters()

    def restore(self, filters: List[Dict[str, Any]]) -> int:
        return self.apply_predicate(filters, merge_strategy="replace")

    # -------------------------- internals --------------------------

    @staticmethod
    def _normalize(predicate: Any) -> List[Tuple[TargetKey, Dict[str, Any]]]:
        if predicate is None:
            return []
        items = predicate if isinstance(predicate, (list, tuple)) else [predicate]
        out: List[Tuple[TargetKey, Dict[str, Any]]] = []
        for item in items:
            try:
                f = item if isinstance(item, AdvancedFilter) else AdvancedFilter.model_validate(item)
            except ValidationError as exc:
                log.warning(f"[_normalize] - rejected_filter - errors={exc.error_count()}")
                continue
            out.append(((f.target.table, f.target.column), f.to_json_dict()))
        return out

    def _bump(self, strategy: str, targets: List[TargetKey]) -> int:
        self._version += 1
        self._writes.append(BusWrite(self._version, strategy, list(targets)))
        return self._version
