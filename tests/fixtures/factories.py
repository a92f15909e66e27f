"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of Casebook, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Test data factories for the Casebook testing framework.

Factories build raw JSON-shaped payloads (camelCase keys, as found in exported files)
and model instances with sensible defaults that a test can override.
"""

import random
import string
import uuid
from typing import Any

from casebook.models import TestCase


class BaseFactory:
    """Common helpers for generating test data."""

    @staticmethod
    def random_string(length: int = 10, prefix: str = "") -> str:
        chars = string.ascii_letters + string.digits
        random_part = "".join(random.choice(chars) for _ in range(length))
        return f"{prefix}{random_part}"

    @staticmethod
    def random_id() -> str:
        return str(uuid.uuid4())


class StepFactory(BaseFactory):
    """Factory for step payloads."""

    @classmethod
    def payload(cls, **kwargs) -> dict[str, Any]:
        data = {
            "id": cls.random_id(),
            "name": cls.random_string(prefix="Step "),
            "description": "",
            "expectedResult": "",
            "status": "passed",
            "bugLink": "",
            "skipReason": "",
            "attachments": "",
        }
        data.update(kwargs)
        return data

    @classmethod
    def failed(cls, bug_link: str = "https://jira.example.com/BUG-1", **kwargs) -> dict[str, Any]:
        return cls.payload(status="failed", bugLink=bug_link, **kwargs)

    @classmethod
    def skipped(cls, skip_reason: str = "Environment unavailable", **kwargs) -> dict[str, Any]:
        return cls.payload(status="skipped", skipReason=skip_reason, **kwargs)


class TestCaseFactory(BaseFactory):
    """Factory for test case payloads and models."""

    __test__ = False

    @classmethod
    def payload(cls, **kwargs) -> dict[str, Any]:
        """
        Build a JSON-shaped test case.

        Args:
            **kwargs: Fields to override, using JSON keys

        Returns:
            A dict as found in an exported testcase file

        """
        data = {
            "id": cls.random_id(),
            "name": cls.random_string(prefix="Test case "),
            "description": "Generated test case",
            "preconditions": "",
            "expectedResult": "",
            "epic": "",
            "feature": "",
            "story": "",
            "component": "",
            "testLayer": "",
            "severity": "NORMAL",
            "priority": "MEDIUM",
            "environment": "",
            "browser": "",
            "owner": "",
            "author": "",
            "reviewer": "",
            "testCaseId": "",
            "issueLinks": "",
            "testCaseLinks": "",
            "tags": "",
            "testType": "manual",
            "steps": [],
            "createdAt": 1700000000000,
            "updatedAt": 1700000000000,
        }
        data.update(kwargs)
        return data

    @classmethod
    def create(cls, **kwargs) -> TestCase:
        return TestCase.model_validate(cls.payload(**kwargs))

    @classmethod
    def backup(cls, test_cases: list[dict[str, Any]], **kwargs) -> dict[str, Any]:
        data = {"timestamp": 1700000000000, "version": "1.0", "testCases": test_cases}
        data.update(kwargs)
        return data
