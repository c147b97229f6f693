# date_slicer/filters/clear_all.py
from __future__ import annotations


def observe(was_present: bool, is_present: bool, is_first_tick: bool) -> bool:
    """
    Edge detector for a dashboard-wide "clear all": the predicate on our column
    was there last tick and is gone now. The host never signals this directly.
    A first tick has no history, so it can never be an edge.
    """
    return was_present and not is_present and not is_first_tick


def latch(pending: bool, edge: bool, is_present: bool) -> bool:
    """
    Keep a detected edge until the engine handles it. A predicate reappearing
    means the filter set is no longer cleared, so the latch drops.
    """
    if is_present:
        return False
    return pending or edge
