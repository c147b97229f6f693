import datetime as dt
from pathlib import Path
import sys

import pytest

# Make sure project root is importable so `date_slicer/...` works
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from date_slicer.core.dates import DataBounds, day_end
from date_slicer.filters.columns import ColumnRef, ColumnSource


class Clock:
    """Settable clock handed to slicers in place of datetime.now."""

    def __init__(self, now: dt.datetime):
        self.now = now

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, **delta) -> dt.datetime:
        self.now += dt.timedelta(**delta)
        return self.now


@pytest.fixture
def now() -> dt.datetime:
    return dt.datetime(2024, 3, 15, 9, 0)


@pytest.fixture
def clock(now) -> Clock:
    return Clock(now)


@pytest.fixture
def bounds() -> DataBounds:
    return DataBounds(dt.datetime(2024, 1, 1), day_end(dt.datetime(2024, 3, 31)))


@pytest.fixture
def column() -> ColumnRef:
    return ColumnRef("Sales", "OrderDate")


@pytest.fixture
def source() -> ColumnSource:
    return ColumnSource(query_name="Sales.OrderDate", display_name="OrderDate")


@pytest.fixture
def q1_values():
    # 2024-01-01 .. 2024-03-31, one value per day
    return [dt.datetime(2024, 1, 1) + dt.timedelta(days=i) for i in range(91)]
