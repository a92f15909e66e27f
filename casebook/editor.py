"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of Casebook, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Editing operations on a test case store.

These mirror what a test case form does: text input is trimmed, a name is required,
and saving an existing test case replaces its fields and steps wholesale.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from casebook.core.exceptions import RecordValidationError
from casebook.models import StepStatus, TestCase
from casebook.store import TestCaseStore

logger = logging.getLogger(__name__)

CLONE_SUFFIX = " (Copy)"


def _trimmed(fields: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value.strip() if isinstance(value, str) else value for key, value in fields.items()}


class TestCaseEditor:
    """Creates, updates, clones and deletes test cases in a store."""

    __test__ = False

    def __init__(self, store: TestCaseStore):
        self.store = store

    @staticmethod
    def collect_steps(raw_steps: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
        """
        Normalize step input.

        Text is trimmed, steps without a name are dropped, and the bug link or skip
        reason is cleared unless the step status calls for it.
        """
        steps = []
        for raw in raw_steps:
            step = _trimmed(raw)
            if not step.get("name"):
                continue

            status = str(step.get("status") or StepStatus.PASSED.value).lower()
            step["status"] = status
            bug_link = step.pop("bug_link", step.pop("bugLink", ""))
            skip_reason = step.pop("skip_reason", step.pop("skipReason", ""))
            step["bugLink"] = bug_link if status == StepStatus.FAILED.value else ""
            step["skipReason"] = skip_reason if status == StepStatus.SKIPPED.value else ""
            steps.append(step)
        return steps

    @staticmethod
    def _require_name(form: Mapping[str, Any]) -> dict[str, Any]:
        fields = _trimmed(form)
        if not fields.get("name"):
            raise RecordValidationError("A test case name is required")
        return fields

    def create_test_case(
        self,
        form: Mapping[str, Any],
        steps: Iterable[Mapping[str, Any]] = (),
    ) -> TestCase:
        """
        Create a test case from form input and add it to the store.

        Raises:
            RecordValidationError: If the name is blank or a value is unusable; the store
                is unchanged

        """
        fields = self._require_name(form)
        try:
            test_case = TestCase.create(fields)
            test_case.replace_steps(self.collect_steps(steps))
        except ValidationError as e:
            raise RecordValidationError(f'Invalid test case "{fields["name"]}": {e}') from e
        self.store.insert(test_case)
        logger.info(f'Created test case "{test_case.name}" with {len(test_case.steps)} steps')
        return test_case

    def update_test_case(
        self,
        record_id: str,
        form: Mapping[str, Any],
        steps: Iterable[Mapping[str, Any]] = (),
    ) -> TestCase | None:
        """
        Replace the fields and steps of a stored test case.

        Fields missing from ``form`` revert to their defaults.

        Returns:
            The updated test case, or None if ``record_id`` is not stored

        Raises:
            RecordValidationError: If the name is blank or a field or step value is
                unusable; the test case is unchanged

        """
        fields = self._require_name(form)
        test_case = self.store.find_by_id(record_id)
        if test_case is None:
            logger.warning(f"Cannot update missing test case {record_id}")
            return None

        try:
            test_case.replace(fields, self.collect_steps(steps))
        except ValidationError as e:
            raise RecordValidationError(f'Invalid test case "{fields["name"]}": {e}') from e
        logger.info(f'Updated test case "{test_case.name}"')
        return test_case

    def default_clone_name(self, record_id: str) -> str | None:
        test_case = self.store.find_by_id(record_id)
        if test_case is None:
            return None
        return f"{test_case.name}{CLONE_SUFFIX}"

    def clone_test_case(self, record_id: str, new_name: str) -> TestCase | None:
        """
        Clone a stored test case under ``new_name`` and append the copy.

        Returns:
            The clone, or None if ``record_id`` is not stored

        Raises:
            RecordValidationError: If ``new_name`` is blank

        """
        new_name = (new_name or "").strip()
        if not new_name:
            raise RecordValidationError("A name is required for the cloned test case")

        original = self.store.find_by_id(record_id)
        if original is None:
            logger.warning(f"Cannot clone missing test case {record_id}")
            return None

        clone = original.clone(new_name)
        self.store.insert(clone)
        logger.info(f'Cloned test case "{original.name}" as "{new_name}"')
        return clone

    def delete_test_case(self, record_id: str) -> bool:
        """Remove a test case. Deleting an unknown id changes nothing."""
        return self.store.delete_by_id(record_id)
