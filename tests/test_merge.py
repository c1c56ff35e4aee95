import pytest

from lunch_order_client.core import merge_selections, restrict_to_members


def test_empty_local_edits_return_saved_view():
    saved = {"a": {"d1": 2}, "b": {"d2": 1}}
    assert merge_selections(saved, {}, "a", True) == saved
    assert merge_selections(saved, {}, "zz", True) == saved


def test_member_local_overrides_and_removes():
    saved = {"a": {"d1": 2, "d2": 1}}
    merged = merge_selections(saved, {"d1": 5, "d2": 0, "d3": 1}, "a", True)
    assert merged == {"a": {"d1": 5, "d3": 1}}


def test_local_zero_suppresses_last_saved_dish():
    merged = merge_selections({"a": {"d1": 2}, "b": {"d1": 1}}, {"d1": 0}, "a", True)
    assert "a" not in merged
    assert merged["b"] == {"d1": 1}


def test_non_member_local_picks_do_not_leak():
    saved = {"a": {"d1": 2}}
    merged = merge_selections(saved, {"d1": 3, "d9": 4}, "viewer", False)
    assert merged.get("viewer", {}) == {}
    assert merged == saved


def test_input_is_not_mutated_or_aliased():
    saved = {"a": {"d1": 2}}
    local = {"d1": 7}
    merged = merge_selections(saved, local, "a", True)
    assert saved == {"a": {"d1": 2}}
    assert local == {"d1": 7}
    saved["a"]["d1"] = 100
    assert merged["a"]["d1"] == 7


def test_output_is_read_only():
    merged = merge_selections({"a": {"d1": 2}}, {}, "a", True)
    with pytest.raises(TypeError):
        merged["a"]["d1"] = 3
    with pytest.raises(TypeError):
        merged["b"] = {}


def test_restrict_to_members_drops_departed():
    merged = merge_selections({"a": {"d1": 2}, "gone": {"d1": 1}}, {}, "a", True)
    assert restrict_to_members(merged, ["a"]) == {"a": {"d1": 2}}
