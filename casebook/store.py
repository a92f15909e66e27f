"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of Casebook, licensed under the MIT License.
See LICENSE file for details.
"""

import logging
from collections.abc import Iterable, Iterator

from casebook.core.exceptions import DuplicateRecordError, RecordNotFoundError
from casebook.models import TestCase

logger = logging.getLogger(__name__)


class TestCaseStore:
    """
    Ordered in-memory collection of test cases.

    Insertion order is iteration order. The store owns its test cases; no two of them
    share an id.
    """

    __test__ = False

    def __init__(self, test_cases: Iterable[TestCase] | None = None):
        """Initialize the store.

        Args:
            test_cases: Optional test cases to insert in order
        """
        self._test_cases: list[TestCase] = []
        for test_case in test_cases or ():
            self.insert(test_case)

    def __len__(self) -> int:
        return len(self._test_cases)

    def __iter__(self) -> Iterator[TestCase]:
        return iter(list(self._test_cases))

    def __contains__(self, record_id: object) -> bool:
        return any(tc.id == record_id for tc in self._test_cases)

    def all(self) -> list[TestCase]:
        """Return a snapshot list of every test case in order."""
        return list(self._test_cases)

    def insert(self, test_case: TestCase) -> TestCase:
        """Append a test case.

        Raises:
            DuplicateRecordError: If a test case with the same id is already stored
        """
        if test_case.id in self:
            raise DuplicateRecordError(test_case.id)
        self._test_cases.append(test_case)
        logger.debug(f"Inserted test case {test_case.id} ({test_case.name})")
        return test_case

    def find_by_id(self, record_id: str) -> TestCase | None:
        return next((tc for tc in self._test_cases if tc.id == record_id), None)

    def find_by_name(self, name: str) -> TestCase | None:
        """Return the first test case whose name matches exactly (case-sensitive)."""
        return next((tc for tc in self._test_cases if tc.name == name), None)

    def _index_of(self, record_id: str) -> int:
        for i, tc in enumerate(self._test_cases):
            if tc.id == record_id:
                return i
        return -1

    def replace_by_id(self, record_id: str, test_case: TestCase) -> TestCase:
        """Put ``test_case`` in the position held by ``record_id``.

        The replacement may carry a different id, but not one that another stored
        test case already uses.

        Raises:
            RecordNotFoundError: If ``record_id`` is not stored
            DuplicateRecordError: If the replacement id belongs to another test case
        """
        index = self._index_of(record_id)
        if index == -1:
            raise RecordNotFoundError(record_id)
        if test_case.id != record_id and test_case.id in self:
            raise DuplicateRecordError(test_case.id)
        self._test_cases[index] = test_case
        logger.debug(f"Replaced test case {record_id} with {test_case.id}")
        return test_case

    def delete_by_id(self, record_id: str) -> bool:
        """Remove a test case; deleting an unknown id is a no-op.

        Returns:
            Whether a test case was removed
        """
        index = self._index_of(record_id)
        if index == -1:
            return False
        del self._test_cases[index]
        logger.debug(f"Deleted test case {record_id}")
        return True

    def clear(self) -> None:
        self._test_cases = []
