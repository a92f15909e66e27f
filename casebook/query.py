"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of Casebook, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Filtered views over a test case store.

A view is a pure projection: it never mutates the store and keeps nothing but its last
computed result.
"""

from collections.abc import Iterable

from casebook.models import DerivedStatus, Severity, TestCase
from casebook.store import TestCaseStore

ANY = "any"


def _is_any(value: str | None) -> bool:
    return value is None or value == "" or str(value).lower() == ANY


def matches(
    test_case: TestCase,
    term: str = "",
    status_filter: str | DerivedStatus | None = ANY,
    severity_filter: str | Severity | None = ANY,
) -> bool:
    """
    Check one test case against the search term, status and severity filters.

    Args:
        test_case: The test case to check
        term: Case-insensitive substring searched in name, description and tags
        status_filter: A derived status value, or "any"
        severity_filter: A severity value, or "any"

    Returns:
        True when all three filters accept the test case

    """
    if term:
        needle = term.lower()
        haystacks = (test_case.name, test_case.description, test_case.tags)
        if not any(needle in text.lower() for text in haystacks):
            return False

    if not _is_any(status_filter):
        wanted = status_filter.value if isinstance(status_filter, DerivedStatus) else status_filter
        if test_case.derive_status().value != wanted.lower():
            return False

    if not _is_any(severity_filter):
        wanted = severity_filter.value if isinstance(severity_filter, Severity) else severity_filter
        if test_case.severity.value != wanted.upper():
            return False

    return True


def filter_test_cases(
    test_cases: Iterable[TestCase],
    term: str = "",
    status_filter: str | DerivedStatus | None = ANY,
    severity_filter: str | Severity | None = ANY,
) -> list[TestCase]:
    """Return the test cases accepted by :func:`matches`, in their original order."""
    return [
        tc for tc in test_cases if matches(tc, term, status_filter, severity_filter)
    ]


class FilterView:
    """Filter inputs bound to a store, with the last computed result."""

    def __init__(
        self,
        store: TestCaseStore,
        term: str = "",
        status_filter: str | DerivedStatus | None = ANY,
        severity_filter: str | Severity | None = ANY,
    ):
        self.store = store
        self.term = term
        self.status_filter = status_filter
        self.severity_filter = severity_filter
        self.results: list[TestCase] = []
        self.refresh()

    def update(self, **filters) -> list[TestCase]:
        """Change any of ``term``, ``status_filter`` or ``severity_filter`` and recompute."""
        for name, value in filters.items():
            if name not in ("term", "status_filter", "severity_filter"):
                raise TypeError(f"Unknown filter: {name}")
            setattr(self, name, value)
        return self.refresh()

    def refresh(self) -> list[TestCase]:
        """Recompute the result from the store's current contents."""
        self.results = filter_test_cases(
            self.store, self.term, self.status_filter, self.severity_filter,
        )
        return self.results

    @property
    def is_filtered(self) -> bool:
        return bool(self.term) or not (
            _is_any(self.status_filter) and _is_any(self.severity_filter)
        )
