"""Tests for nested path access."""

import pytest

from syncbridge.engine.paths import UNSET, get_value, parse_segment, set_value


class TestGetValue:

    def test_reads_nested_and_indexed_values(self):
        record = {"order": {"items": [{"sku": "A1"}, {"sku": "B2"}]}}
        assert get_value(record, "order.items[1].sku") == "B2"
        assert get_value(record, "order.items[0]") == {"sku": "A1"}

    @pytest.mark.parametrize("path", [
        "missing",
        "order.missing.deeper",
        "order.items[5].sku",
        "order.total[0]",
        "order.total.amount",
    ])
    def test_missing_paths_are_unset(self, path):
        record = {"order": {"items": [{"sku": "A1"}], "total": 10}}
        assert get_value(record, path) is UNSET

    def test_none_record_and_empty_path(self):
        assert get_value(None, "a") is UNSET
        assert get_value({"a": 1}, "") is UNSET

    def test_default_is_returned_for_missing(self):
        assert get_value({}, "a.b", default="fallback") == "fallback"

    def test_explicit_none_is_not_unset(self):
        assert get_value({"a": None}, "a") is None

    def test_unset_is_falsy(self):
        assert not UNSET
        assert repr(UNSET) == "UNSET"


class TestSetValue:

    def test_creates_intermediate_dicts(self):
        record = {}
        set_value(record, "customer.address.city", "Paris")
        assert record == {"customer": {"address": {"city": "Paris"}}}

    def test_creates_padded_lists_for_indexed_segments(self):
        record = {}
        set_value(record, "lines[2].sku", "X")
        assert record == {"lines": [None, None, {"sku": "X"}]}

    def test_overwrites_non_container_intermediates(self):
        record = {"a": 5}
        set_value(record, "a.b", 1)
        assert record == {"a": {"b": 1}}

    def test_none_record_and_empty_path_are_noops(self):
        set_value(None, "a", 1)
        record = {"x": 1}
        set_value(record, "", 2)
        assert record == {"x": 1}

    def test_set_then_get_returns_value(self):
        record = {"keep": True}
        set_value(record, "deep.list[1].name", "n")
        assert get_value(record, "deep.list[1].name") == "n"
        assert record["keep"] is True


def test_parse_segment():
    assert parse_segment("items[3]") == ("items", 3)
    assert parse_segment("items") == ("items", None)
