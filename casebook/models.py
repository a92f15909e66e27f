"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of Casebook, licensed under the MIT License.
See LICENSE file for details.
"""

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, Field, field_validator, model_validator

from casebook.core.exceptions import RecordValidationError
from casebook.core.ids import generate_uuid, now_ms

BACKUP_VERSION = "1.0"


class Severity(str, Enum):
    """Severity of a test case."""

    BLOCKER = "BLOCKER"
    CRITICAL = "CRITICAL"
    NORMAL = "NORMAL"
    MINOR = "MINOR"
    TRIVIAL = "TRIVIAL"


class Priority(str, Enum):
    """Priority of a test case."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class TestType(str, Enum):
    """Whether a test case is run by hand or by automation."""

    __test__ = False

    MANUAL = "manual"
    AUTOMATED = "automated"


class StepStatus(str, Enum):
    """Outcome of a single step."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class DerivedStatus(str, Enum):
    """Outcome of a test case, computed from its steps."""

    PASSED = "passed"
    FAILED = "failed"
    MIXED = "mixed"


def _blank_to(default: Any, value: Any) -> Any:
    if value is None or value == "":
        return default
    return value


class Step(BaseModel):
    """Represents one action of a test case procedure."""

    id: str = Field(default_factory=generate_uuid)
    name: str = ""
    description: str = ""
    expected_result: str = Field("", alias="expectedResult")
    status: StepStatus = StepStatus.PASSED
    bug_link: str = Field("", alias="bugLink")  # only meaningful when failed
    skip_reason: str = Field("", alias="skipReason")  # only meaningful when skipped
    attachments: str = ""  # comma separated URLs

    model_config = {"populate_by_name": True}

    @field_validator("id", mode="before")
    @classmethod
    def default_id(cls, value):
        """Generate an id when the payload carries none."""
        return _blank_to(None, value) or generate_uuid()

    @field_validator(
        "name", "description", "expected_result", "bug_link", "skip_reason", "attachments",
        mode="before",
    )
    @classmethod
    def default_text(cls, value):
        return _blank_to("", value)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value):
        value = _blank_to(StepStatus.PASSED, value)
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def status_detail(self) -> str:
        """The detail that the current status makes relevant, or an empty string."""
        if self.status == StepStatus.FAILED:
            return self.bug_link
        if self.status == StepStatus.SKIPPED:
            return self.skip_reason
        return ""


def derive_status(steps: Iterable[Step]) -> DerivedStatus:
    """
    Compute the outcome of a sequence of steps.

    A failed step beats a skipped one, and a skipped one beats a pass. No steps at all
    counts as passed.
    """
    statuses = {step.status for step in steps}
    if StepStatus.FAILED in statuses:
        return DerivedStatus.FAILED
    if StepStatus.SKIPPED in statuses:
        return DerivedStatus.MIXED
    return DerivedStatus.PASSED


class TestCase(BaseModel):
    """
    Represents a test case specification and its last known outcome.

    The ``id`` is assigned once and cannot be reassigned. Text fields default to empty
    strings; a ``None`` or empty value in the input falls back to the field default.
    """

    __test__: ClassVar[bool] = False

    id: str = Field(default_factory=generate_uuid, frozen=True)
    name: str = ""
    description: str = ""
    preconditions: str = ""
    expected_result: str = Field("", alias="expectedResult")

    # Classification labels
    epic: str = ""
    feature: str = ""
    story: str = ""
    component: str = ""
    test_layer: str = Field("", alias="testLayer")
    severity: Severity = Severity.NORMAL
    priority: Priority = Priority.MEDIUM
    environment: str = ""
    browser: str = ""

    # Members
    owner: str = ""
    author: str = ""
    reviewer: str = ""

    # External references
    test_case_id: str = Field("", alias="testCaseId")
    issue_links: str = Field("", alias="issueLinks")
    test_case_links: str = Field("", alias="testCaseLinks")

    tags: str = ""
    test_type: TestType = Field(TestType.MANUAL, alias="testType")

    steps: list[Step] = Field(default_factory=list)
    created_at: int = Field(default_factory=now_ms, alias="createdAt")
    updated_at: int = Field(default_factory=now_ms, alias="updatedAt")

    model_config = {"populate_by_name": True}

    @field_validator("id", mode="before")
    @classmethod
    def default_id(cls, value):
        """Generate an id when the payload carries none."""
        return _blank_to(None, value) or generate_uuid()

    @field_validator(
        "name", "description", "preconditions", "expected_result",
        "epic", "feature", "story", "component", "test_layer", "environment", "browser",
        "owner", "author", "reviewer",
        "test_case_id", "issue_links", "test_case_links", "tags",
        mode="before",
    )
    @classmethod
    def default_text(cls, value):
        return _blank_to("", value)

    @field_validator("severity", mode="before")
    @classmethod
    def normalize_severity(cls, value):
        value = _blank_to(Severity.NORMAL, value)
        return value.strip().upper() if isinstance(value, str) else value

    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, value):
        value = _blank_to(Priority.MEDIUM, value)
        return value.strip().upper() if isinstance(value, str) else value

    @field_validator("test_type", mode="before")
    @classmethod
    def normalize_test_type(cls, value):
        value = _blank_to(TestType.MANUAL, value)
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("steps", mode="before")
    @classmethod
    def default_steps(cls, value):
        return _blank_to([], value)

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def default_timestamp(cls, value):
        return _blank_to(None, value) or now_ms()

    @model_validator(mode="after")
    def check_timestamps(self):
        """Keep updated_at from preceding created_at."""
        if self.updated_at < self.created_at:
            self.updated_at = self.created_at
        return self

    @classmethod
    def create(cls, fields: Mapping[str, Any] | None = None) -> "TestCase":
        """
        Create a new test case with defaults for everything not in ``fields``.

        Steps are never taken from ``fields``; add them with :meth:`add_step`.
        """
        data = dict(fields or {})
        data.pop("steps", None)
        return cls.model_validate(data)

    @property
    def status(self) -> DerivedStatus:
        """Derived outcome, recomputed on every read."""
        return self.derive_status()

    def derive_status(self) -> DerivedStatus:
        return derive_status(self.steps)

    def touch(self) -> None:
        """Mark the test case as modified now."""
        self.updated_at = max(now_ms(), self.created_at)

    @staticmethod
    def build_steps(steps: Iterable[Mapping[str, Any] | Step | None]) -> list[Step]:
        """
        Validate step input into new steps, each with a fresh id.

        Raises:
            pydantic.ValidationError: If any step has an unusable value

        """
        built = []
        for step_fields in steps:
            if isinstance(step_fields, Step):
                data = step_fields.model_dump()
            else:
                data = dict(step_fields or {})
            data.pop("id", None)
            built.append(Step.model_validate(data))
        return built

    def add_step(self, step_fields: Mapping[str, Any] | Step | None = None) -> Step:
        """
        Append a new step with a fresh id.

        Args:
            step_fields: Step attributes (aliases or attribute names); any id is ignored

        Returns:
            The created step

        """
        step = self.build_steps([step_fields])[0]
        self.steps.append(step)
        self.touch()
        return step

    @staticmethod
    def _editable_copy(fields: Mapping[str, Any]) -> "TestCase":
        payload = {key: value for key, value in fields.items() if key not in _PROTECTED_KEYS}
        return TestCase.model_validate(payload)

    def _apply_fields(self, fresh: "TestCase") -> None:
        for name in EDITABLE_FIELDS:
            setattr(self, name, getattr(fresh, name))

    def replace_fields(self, fields: Mapping[str, Any]) -> None:
        """
        Replace every editable field wholesale.

        Fields missing from ``fields`` revert to their defaults instead of keeping their
        old values. Identity, timestamps and steps are not touched by the payload.
        """
        self._apply_fields(self._editable_copy(fields))
        self.touch()

    def replace_steps(self, steps: Iterable[Mapping[str, Any] | Step]) -> None:
        """Replace the step sequence; every new step gets a fresh id."""
        self.steps = self.build_steps(steps)
        self.touch()

    def replace(
        self,
        fields: Mapping[str, Any],
        steps: Iterable[Mapping[str, Any] | Step],
    ) -> None:
        """
        Replace the editable fields and the steps together.

        Everything is validated before the first assignment, so a failure leaves the
        test case as it was.

        Raises:
            pydantic.ValidationError: If a field or step has an unusable value

        """
        fresh = self._editable_copy(fields)
        new_steps = self.build_steps(steps)
        self._apply_fields(fresh)
        self.steps = new_steps
        self.touch()

    def clone(self, new_name: str) -> "TestCase":
        """
        Copy this test case under a new name.

        The copy gets a fresh id, fresh timestamps and fresh step ids; this test case is
        left untouched.

        Raises:
            RecordValidationError: If ``new_name`` is empty

        """
        if not new_name or not new_name.strip():
            raise RecordValidationError("A name is required for the cloned test case")

        data = self.model_dump()
        timestamp = now_ms()
        data.update(
            id=generate_uuid(),
            name=new_name,
            created_at=timestamp,
            updated_at=timestamp,
            steps=[{**step, "id": generate_uuid()} for step in data["steps"]],
        )
        return TestCase.model_validate(data)

    def to_canonical(self) -> dict[str, Any]:
        """Full field set with JSON keys; empty fields are kept."""
        return self.model_dump(mode="json", by_alias=True)


_PROTECTED_KEYS = frozenset(
    {"id", "steps", "created_at", "createdAt", "updated_at", "updatedAt"},
)

EDITABLE_FIELDS = tuple(
    name
    for name in TestCase.model_fields
    if name not in {"id", "steps", "created_at", "updated_at"}
)


class Backup(BaseModel):
    """Snapshot of every test case in a store."""

    timestamp: int = Field(default_factory=now_ms)
    version: str = BACKUP_VERSION
    test_cases: list[TestCase] = Field(default_factory=list, alias="testCases")

    model_config = {"populate_by_name": True}
