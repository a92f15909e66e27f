"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of Casebook, licensed under the MIT License.
See LICENSE file for details.
"""

import pytest

from casebook.models import DerivedStatus, Severity
from casebook.query import FilterView, filter_test_cases, matches
from tests.fixtures.factories import TestCaseFactory


def names(test_cases):
    return [tc.name for tc in test_cases]


@pytest.mark.unit
class TestFilter:
    def test_no_filters_returns_everything_in_order(self, sample_test_cases):
        assert names(filter_test_cases(sample_test_cases)) == ["Login", "Logout", "Search"]

    def test_term_and_status(self, sample_test_cases):
        """Test that 'log' matches Login, Logout and Search but only Logout failed."""
        result = filter_test_cases(sample_test_cases, term="log", status_filter="failed")
        assert names(result) == ["Logout"]

    def test_term_searches_name_description_and_tags(self):
        by_name = TestCaseFactory.create(name="Checkout", description="", tags="")
        by_description = TestCaseFactory.create(name="A", description="Pays at CHECKOUT", tags="")
        by_tag = TestCaseFactory.create(name="B", description="", tags="cart, checkout")
        other = TestCaseFactory.create(name="C", description="", tags="")

        result = filter_test_cases([by_name, by_description, by_tag, other], term="Checkout")
        assert result == [by_name, by_description, by_tag]

    @pytest.mark.parametrize("any_value", [None, "", "any", "ANY"])
    def test_any_filters(self, sample_test_cases, any_value):
        result = filter_test_cases(
            sample_test_cases, status_filter=any_value, severity_filter=any_value,
        )
        assert len(result) == 3

    def test_status_filter_mixed(self, sample_test_cases):
        assert names(filter_test_cases(sample_test_cases, status_filter="mixed")) == ["Search"]

    def test_enum_filters(self, sample_test_cases):
        assert names(
            filter_test_cases(sample_test_cases, status_filter=DerivedStatus.PASSED),
        ) == ["Login"]
        assert names(
            filter_test_cases(sample_test_cases, severity_filter=Severity.MINOR),
        ) == ["Search"]

    def test_severity_filter_is_case_insensitive(self, sample_test_cases):
        assert names(filter_test_cases(sample_test_cases, severity_filter="critical")) == ["Login"]

    def test_filters_are_conjunctive(self, sample_test_cases):
        assert filter_test_cases(
            sample_test_cases, term="login", severity_filter="NORMAL",
        ) == []

    def test_matches_has_no_side_effects(self, sample_test_cases):
        before = [tc.model_dump() for tc in sample_test_cases]
        for tc in sample_test_cases:
            matches(tc, term="x", status_filter="failed", severity_filter="MINOR")
        assert [tc.model_dump() for tc in sample_test_cases] == before


@pytest.mark.unit
class TestFilterView:
    def test_view_tracks_store(self, populated_store):
        view = FilterView(populated_store, status_filter="failed")
        assert names(view.results) == ["Logout"]

        populated_store.insert(TestCaseFactory.create(name="Broken", steps=[{"status": "failed"}]))
        assert names(view.refresh()) == ["Logout", "Broken"]

    def test_update(self, populated_store):
        view = FilterView(populated_store)
        assert not view.is_filtered
        assert names(view.update(term="search")) == ["Search"]
        assert view.is_filtered

    def test_update_rejects_unknown_filter(self, populated_store):
        with pytest.raises(TypeError):
            FilterView(populated_store).update(owner="me")
