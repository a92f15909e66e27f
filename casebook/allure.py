"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of Casebook, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Allure result transformer.

This module converts test cases into Allure result documents (``<uuid>-result.json``).
Allure identifiers (uuid, historyId, testCaseId) are generated independently of the
internal test case and step ids and live only in the models defined here.
"""

import logging
import random
import re
from collections.abc import Callable, Iterable
from typing import Any

from pydantic import BaseModel, Field

from casebook.core.config import ExportConfig
from casebook.core.ids import generate_uuid, now_ms
from casebook.models import DerivedStatus, Step, StepStatus, TestCase

logger = logging.getLogger(__name__)

# (test case attribute, Allure label name), in output order
LABEL_FIELDS: tuple[tuple[str, str], ...] = (
    ("epic", "epic"),
    ("feature", "feature"),
    ("story", "story"),
    ("severity", "severity"),
    ("priority", "priority"),
    ("owner", "owner"),
    ("author", "author"),
    ("test_layer", "layer"),
    ("component", "component"),
    ("environment", "environment"),
)
LOWERCASE_LABELS = frozenset({"severity", "priority"})

_WHITESPACE = re.compile(r"\s+")


def split_list(value: str) -> list[str]:
    """
    Split a comma separated field into trimmed entries.

    An empty field has no entries. Blank entries inside a non-empty field are kept, so
    ``"a, ,b"`` yields three entries.
    """
    if not value:
        return []
    return [item.strip() for item in value.split(",")]


class AllureStatusDetails(BaseModel):
    message: str | None = None
    trace: str | None = None


class AllureAttachment(BaseModel):
    name: str
    source: str


class AllureStepResult(BaseModel):
    """Represents one step of an Allure result."""

    name: str
    status: StepStatus
    start: int
    stop: int
    status_details: AllureStatusDetails | None = Field(None, alias="statusDetails")
    attachments: list[AllureAttachment] | None = None

    model_config = {"populate_by_name": True}


class AllureLabel(BaseModel):
    name: str
    value: str


class AllureLink(BaseModel):
    name: str
    url: str
    type: str  # "issue" or "tms"


class AllureParameter(BaseModel):
    name: str
    value: str


class AllureResult(BaseModel):
    """Represents an Allure result document."""

    uuid: str
    history_id: str = Field(..., alias="historyId")
    test_case_id: str = Field(..., alias="testCaseId")
    full_name: str = Field(..., alias="fullName")
    name: str
    description: str
    status: DerivedStatus
    start: int
    stop: int
    steps: list[AllureStepResult] = Field(default_factory=list)
    labels: list[AllureLabel] = Field(default_factory=list)
    links: list[AllureLink] = Field(default_factory=list)
    parameters: list[AllureParameter] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    @property
    def filename(self) -> str:
        return f"{self.uuid}-result.json"

    def to_document(self) -> dict[str, Any]:
        """JSON-ready dict; absent statusDetails and attachments are omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AllureTransformer:
    """Transforms test cases into Allure result documents."""

    def __init__(
        self,
        namespace: str = "TestClass",
        max_step_duration_ms: int = 1000,
        max_result_duration_ms: int = 5000,
        clock: Callable[[], int] = now_ms,
        rng: random.Random | None = None,
        id_factory: Callable[[], str] = generate_uuid,
    ):
        """
        Initialize the transformer.

        Args:
            namespace: Prefix of every ``fullName``
            max_step_duration_ms: Upper bound of the synthesized step duration
            max_result_duration_ms: Upper bound of the synthesized result duration
            clock: Source of the start timestamp in milliseconds
            rng: Random generator for synthesized durations
            id_factory: Source of Allure uuid, historyId and missing testCaseId values

        """
        self.namespace = namespace
        self.max_step_duration_ms = max_step_duration_ms
        self.max_result_duration_ms = max_result_duration_ms
        self.clock = clock
        self.rng = rng or random.Random()
        self.id_factory = id_factory

    @classmethod
    def from_config(cls, config: ExportConfig, **kwargs) -> "AllureTransformer":
        return cls(
            namespace=config.allure_namespace,
            max_step_duration_ms=config.max_step_duration_ms,
            max_result_duration_ms=config.max_result_duration_ms,
            **kwargs,
        )

    def full_name(self, name: str) -> str:
        compact = _WHITESPACE.sub("", name)
        return f"{self.namespace}.{compact}" if self.namespace else compact

    def _duration(self, upper_bound: int) -> int:
        return self.rng.randint(0, upper_bound) if upper_bound > 0 else 0

    def transform_step(self, step: Step, start: int) -> AllureStepResult:
        """
        Transform one step.

        Only the detail that matches the step status is emitted: the bug link of a
        failed step as ``message``, the skip reason of a skipped step as ``trace``.
        """
        result = AllureStepResult(
            name=step.name,
            status=step.status,
            start=start,
            stop=start + self._duration(self.max_step_duration_ms),
        )

        if step.status == StepStatus.FAILED and step.bug_link:
            result.status_details = AllureStatusDetails(message=f"Bug link: {step.bug_link}")
        elif step.status == StepStatus.SKIPPED and step.skip_reason:
            result.status_details = AllureStatusDetails(trace=f"Skip reason: {step.skip_reason}")

        sources = split_list(step.attachments)
        if sources:
            result.attachments = [
                AllureAttachment(name=source.split("/")[-1], source=source)
                for source in sources
            ]

        return result

    def build_labels(self, test_case: TestCase) -> list[AllureLabel]:
        labels = []
        for attribute, label_name in LABEL_FIELDS:
            value = getattr(test_case, attribute)
            value = value.value if hasattr(value, "value") else value
            if not value:
                continue
            if label_name in LOWERCASE_LABELS:
                value = value.lower()
            labels.append(AllureLabel(name=label_name, value=value))

        labels.extend(AllureLabel(name="tag", value=tag) for tag in split_list(test_case.tags))
        return labels

    def build_links(self, test_case: TestCase) -> list[AllureLink]:
        links = [
            AllureLink(name="Issue", url=url, type="issue")
            for url in split_list(test_case.issue_links)
        ]
        links.extend(
            AllureLink(name="Test Case", url=url, type="tms")
            for url in split_list(test_case.test_case_links)
        )
        return links

    def transform(self, test_case: TestCase) -> AllureResult:
        """
        Transform a test case into an Allure result.

        Args:
            test_case: The test case to transform

        Returns:
            A new AllureResult with freshly generated Allure identifiers

        """
        start = self.clock()
        result = AllureResult(
            uuid=self.id_factory(),
            history_id=self.id_factory(),
            test_case_id=test_case.test_case_id or self.id_factory(),
            full_name=self.full_name(test_case.name),
            name=test_case.name,
            description=test_case.description,
            status=test_case.derive_status(),
            start=start,
            stop=start + self._duration(self.max_result_duration_ms),
            steps=[self.transform_step(step, start) for step in test_case.steps],
            labels=self.build_labels(test_case),
            links=self.build_links(test_case),
        )
        logger.debug(f"Transformed test case {test_case.id} into Allure result {result.uuid}")
        return result

    def transform_all(self, test_cases: Iterable[TestCase]) -> list[AllureResult]:
        return [self.transform(test_case) for test_case in test_cases]
