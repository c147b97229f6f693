# date_slicer/filters/loop_guard.py
from __future__ import annotations

from enum import Enum
from typing import Optional


class EchoClass(str, Enum):
    ABSENT = "absent"          # no predicate on our column
    ECHO = "echo"              # our own last write coming back
    GENUINE = "genuine"        # someone else changed the filter
    SUPPRESSED = "suppressed"  # differs, but our own write is still in flight


def classify(
    external_hash: Optional[str],
    last_written_hash: Optional[str],
    local_change_in_flight: bool,
) -> EchoClass:
    """
    Classify the external predicate seen this tick against the last predicate
    this instance wrote. With nothing written yet, any predicate is genuine.
    """
    if external_hash is None:
        return EchoClass.ABSENT
    if last_written_hash is not None and external_hash == last_written_hash:
        return EchoClass.ECHO
    if local_change_in_flight:
        return EchoClass.SUPPRESSED
    return EchoClass.GENUINE


def is_echo(external_hash: Optional[str], last_written_hash: Optional[str]) -> bool:
    return classify(external_hash, last_written_hash, False) is EchoClass.ECHO
