# test_dedup.py
#
# Imports
import pytest
#
# Third-Party Imports
from hypothesis import given, strategies as st, settings, HealthCheck
#
# Local Imports
from continuity_sync.Sync.dedup import deduplicate_keys, deduplicate_scene_numbers
#
########################################################################################################################
#
# Hypothesis Setup:

settings.register_profile("dedup", deadline=None, suppress_health_check=[HealthCheck.too_slow])
settings.load_profile("dedup")

scene_numbers = st.lists(st.sampled_from(["1", "2", "12", "12-2", "7", "7A", ""]), max_size=25)


def _rows(numbers):
    return [{"id": f"sc-{i}", "scene_number": n} for i, n in enumerate(numbers)]


# --- Tests ---

def test_repeated_scene_numbers_get_suffixes_in_first_seen_order():
    result = deduplicate_scene_numbers(_rows(["12", "12", "7", "12"]))
    assert [r["scene_number"] for r in result] == ["12", "12-2", "7", "12-3"]


def test_unique_batch_is_unchanged():
    rows = _rows(["1", "2", "3"])
    assert deduplicate_scene_numbers(rows) == rows


def test_input_rows_are_not_mutated():
    rows = _rows(["4", "4"])
    deduplicate_scene_numbers(rows)
    assert [r["scene_number"] for r in rows] == ["4", "4"]


def test_generated_suffix_skips_a_number_already_present_in_the_batch():
    result = deduplicate_scene_numbers(_rows(["12", "12", "12-2"]))
    assert [r["scene_number"] for r in result] == ["12", "12-3", "12-2"]


def test_other_fields_are_kept():
    rows = [{"id": "a", "scene_number": "5", "synopsis": "x"}, {"id": "b", "scene_number": "5", "synopsis": "y"}]
    result = deduplicate_keys(rows, "scene_number")
    assert result[1] == {"id": "b", "scene_number": "5-2", "synopsis": "y"}


def test_empty_batch():
    assert deduplicate_scene_numbers([]) == []


@given(numbers=scene_numbers)
def test_property_keys_are_unique_and_order_is_kept(numbers):
    result = deduplicate_scene_numbers(_rows(numbers))
    keys = [r["scene_number"] for r in result]
    assert len(keys) == len(set(keys))
    assert [r["id"] for r in result] == [f"sc-{i}" for i in range(len(numbers))]


@given(numbers=scene_numbers)
def test_property_first_occurrence_keeps_its_key(numbers):
    result = deduplicate_scene_numbers(_rows(numbers))
    first_index = {}
    for i, n in enumerate(numbers):
        first_index.setdefault(n, i)
    for n, i in first_index.items():
        assert result[i]["scene_number"] == n


@given(numbers=scene_numbers)
def test_property_idempotent(numbers):
    once = deduplicate_scene_numbers(_rows(numbers))
    assert deduplicate_scene_numbers(once) == once

#
# End of test_dedup.py
########################################################################################################################
