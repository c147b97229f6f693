import datetime as dt

import pytest

from date_slicer.core.dates import DateRange
from date_slicer.filters.codec import (
    ADVANCED_FILTER_SCHEMA,
    GREATER_OR_EQUAL,
    LESS_OR_EQUAL,
    AdvancedFilter,
    decode,
    encode,
    predicate_hash,
)
from date_slicer.filters.columns import ColumnRef


def _rng(a, b) -> DateRange:
    return DateRange.whole_days(dt.datetime(*a), dt.datetime(*b))


def _raw(column, lo, hi, *, lo_op="GreaterThanOrEqual", hi_op="LessThanOrEqual"):
    return {
        "$schema": ADVANCED_FILTER_SCHEMA,
        "target": {"table": column.table, "column": column.column},
        "logicalOperator": "And",
        "conditions": [{"operator": lo_op, "value": lo}, {"operator": hi_op, "value": hi}],
    }


def test_encode_emits_both_inclusive_bounds(column):
    f = encode(_rng((2024, 2, 1), (2024, 2, 10)), column)
    js = f.to_json_dict()
    assert js["$schema"] == ADVANCED_FILTER_SCHEMA
    assert js["target"] == {"table": "Sales", "column": "OrderDate"}
    assert js["logicalOperator"] == "And"
    assert js["conditions"] == [
        {"operator": GREATER_OR_EQUAL, "value": "2024-02-01T00:00:00.000"},
        {"operator": LESS_OR_EQUAL, "value": "2024-02-10T23:59:59.999"},
    ]


@pytest.mark.parametrize(
    "rng",
    [
        _rng((2024, 2, 1), (2024, 2, 10)),
        _rng((2024, 2, 29), (2024, 2, 29)),
        _rng((1999, 12, 31), (2030, 1, 1)),
    ],
)
def test_decode_inverts_encode(rng, column):
    assert decode(encode(rng, column), column) == rng
    assert decode([encode(rng, column).to_json_dict()], column) == rng


def test_decode_picks_our_column_out_of_the_dashboard_list(column):
    other = _raw(ColumnRef("Sales", "ShipDate"), "2023-01-01", "2023-01-02")
    region = {"target": {"table": "Sales", "column": "Region"}, "conditions": [{"operator": "Is", "value": "North"}]}
    ours = _raw(column, "2024-01-03", "2024-01-04")
    assert decode([other, region, ours], column) == _rng((2024, 1, 3), (2024, 1, 4))


def test_decode_accepts_strict_operators_and_numeric_values(column):
    raw = _raw(column, 1704067200000, 45296, lo_op="GreaterThan", hi_op="LessThan")
    assert decode(raw, column) == _rng((2024, 1, 1), (2024, 1, 5))


@pytest.mark.parametrize(
    "predicate",
    [
        None,
        [],
        42,
        {"conditions": []},
        {"target": {"table": "Sales", "column": "OrderDate"}, "conditions": [{"operator": "GreaterThanOrEqual", "value": "2024-01-01"}]},
    ],
)
def test_undecodable_predicates_are_absent(predicate, column):
    assert decode(predicate, column) is None


def test_wrong_column_and_inverted_bounds(column):
    assert decode(_raw(ColumnRef("Other", "OrderDate"), "2024-01-01", "2024-01-02"), column) is None
    assert predicate_hash(_raw(ColumnRef("Other", "OrderDate"), "2024-01-01", "2024-01-02"), column) is None
    assert predicate_hash(None, column) is None
    assert decode(_raw(column, "2024-01-05", "2024-01-01"), column) is None
    assert decode(_raw(column, "garbage", "2024-01-01"), column) is None


def test_hash_is_stable_across_reserialization(column):
    canonical = encode(_rng((2024, 2, 1), (2024, 2, 10)), column)
    reordered = _raw(column, "2024-02-01", "2024-02-10T23:59:59.999")
    reordered["conditions"].reverse()
    assert predicate_hash(canonical, column) == predicate_hash(reordered, column)


def test_hash_changes_with_the_range(column):
    a = encode(_rng((2024, 2, 1), (2024, 2, 10)), column)
    b = encode(_rng((2024, 2, 1), (2024, 2, 11)), column)
    assert predicate_hash(a, column) != predicate_hash(b, column)


def test_advanced_filter_validates_host_json(column):
    f = AdvancedFilter.model_validate(_raw(column, "2024-01-01", "2024-01-02"))
    assert f.target.matches(column)
    assert f.schema_ == ADVANCED_FILTER_SCHEMA
