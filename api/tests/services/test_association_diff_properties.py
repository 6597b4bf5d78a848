"""Property-based tests for association set reconciliation using Hypothesis.

Whatever the stored and requested id sets, applying the diff to the stored
set must yield exactly the requested set while touching only ids that
actually change.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from services.estabelecimento_service import diff_association_ids

pytestmark = pytest.mark.unit

id_lists = st.lists(st.integers(min_value=1, max_value=50), max_size=30)

hypothesis_settings = settings(max_examples=200)


@given(current=id_lists, desired=id_lists)
@hypothesis_settings
def test_applying_diff_reaches_desired_set(current, desired):
    diff = diff_association_ids(current, desired)

    result = (set(current) - diff.to_remove) | diff.to_add

    assert result == set(desired)


@given(current=id_lists, desired=id_lists)
@hypothesis_settings
def test_diff_only_touches_changed_ids(current, desired):
    diff = diff_association_ids(current, desired)

    assert diff.to_add.isdisjoint(current)
    assert diff.to_remove.isdisjoint(desired)
    assert diff.to_add.isdisjoint(diff.to_remove)


@given(ids=id_lists)
@hypothesis_settings
def test_same_set_in_any_order_is_unchanged(ids):
    assert diff_association_ids(ids, list(reversed(ids)) + ids).unchanged


@given(current=id_lists)
@hypothesis_settings
def test_empty_desired_removes_everything(current):
    diff = diff_association_ids(current, [])

    assert diff.to_remove == set(current)
    assert not diff.to_add
