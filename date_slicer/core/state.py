# date_slicer/core/state.py
from __future__ import annotations

from typing import Callable, TypeVar

import streamlit as st

T = TypeVar("T")


def ns(prefix: str, name: str) -> str:
    return f"{prefix}:{name}"


def set(name: str, value, *, prefix: str = ""):
    st.session_state[ns(prefix, name) if prefix else name] = value


def get_or_create(name: str, factory: Callable[[], T], *, prefix: str = "") -> T:
    """Session-scoped singleton: slicer instances and the bus live here between reruns."""
    key = ns(prefix, name) if prefix else name
    if key not in st.session_state:
        st.session_state[key] = factory()
    return st.session_state[key]
