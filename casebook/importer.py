"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of Casebook, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Import reconciler for single test case files, backups and zip archives.

Every candidate record is matched against the store by exact name. A match is skipped
unless overwrite is enabled, in which case the stored test case is replaced wholesale.
Malformed entries are skipped and tallied; only an input that cannot be read at all
aborts the import, and it does so before the store is touched.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from casebook.archive import ProgressCallback, read_archive
from casebook.core.exceptions import (
    NameCollisionError,
    PayloadParseError,
    ReadError,
    RecordValidationError,
)
from casebook.core.ids import generate_uuid
from casebook.core.logging import ErrorTracker
from casebook.models import TestCase
from casebook.store import TestCaseStore

logger = logging.getLogger(__name__)


class RecordPayload(BaseModel):
    """A document holding a single test case."""

    kind: Literal["record"] = "record"
    data: Any = None


class BackupPayload(BaseModel):
    """A backup document: ``{timestamp, version, testCases: [...]}``."""

    kind: Literal["backup"] = "backup"
    timestamp: Any = None
    version: Any = None
    test_cases: list[Any] = Field(default_factory=list, alias="testCases")

    model_config = {"populate_by_name": True}


ImportPayload = Annotated[RecordPayload | BackupPayload, Field(discriminator="kind")]

_payload_adapter: TypeAdapter[RecordPayload | BackupPayload] = TypeAdapter(ImportPayload)


def classify_payload(data: Any) -> RecordPayload | BackupPayload:
    """Tag a parsed JSON document as a backup (has a ``testCases`` list) or a record."""
    if isinstance(data, Mapping) and isinstance(data.get("testCases"), list):
        shaped = {
            "kind": "backup",
            "timestamp": data.get("timestamp"),
            "version": data.get("version"),
            "testCases": data["testCases"],
        }
    else:
        shaped = {"kind": "record", "data": data}
    return _payload_adapter.validate_python(shaped)


class ImportOutcome(str, Enum):
    IMPORTED = "imported"
    REPLACED = "replaced"


@dataclass
class ImportResult:
    """
    Tally of an import operation.

    Attributes:
        imported: New test cases inserted
        replaced: Existing test cases overwritten
        skipped_invalid: Records without a name or with malformed fields
        skipped_duplicates: Records whose name already existed with overwrite off
        files_skipped: Archive entries that were not valid JSON
        errors: Per-entry error details

    """

    imported: int = 0
    replaced: int = 0
    skipped_invalid: int = 0
    skipped_duplicates: int = 0
    files_skipped: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def imported_count(self) -> int:
        return self.imported + self.replaced

    @property
    def skipped_count(self) -> int:
        return self.skipped_invalid + self.skipped_duplicates

    @property
    def warnings(self) -> list[str]:
        """One readable line per skipped record or entry."""
        return [f"{error['error_type']}: {error['message']}" for error in self.errors]

    def merge(self, other: "ImportResult") -> "ImportResult":
        self.imported += other.imported
        self.replaced += other.replaced
        self.skipped_invalid += other.skipped_invalid
        self.skipped_duplicates += other.skipped_duplicates
        self.files_skipped += other.files_skipped
        self.errors.extend(other.errors)
        return self


class ImportReconciler:
    """Merges incoming test case payloads into a store."""

    def __init__(
        self,
        store: TestCaseStore,
        overwrite: bool = False,
        json_extension: str = ".json",
    ):
        """
        Initialize the reconciler.

        Args:
            store: The store to merge into
            overwrite: Replace test cases whose name already exists instead of skipping
            json_extension: Archive entries with this suffix are imported

        """
        self.store = store
        self.overwrite = overwrite
        self.json_extension = json_extension

    def _unused_id(self, test_case: TestCase, replacing: TestCase | None = None) -> TestCase:
        """Give ``test_case`` a fresh id if another stored test case already owns its id."""
        if test_case.id in self.store and (replacing is None or test_case.id != replacing.id):
            logger.debug(f"Incoming id {test_case.id} already in use, generating a new one")
            return TestCase.model_validate({**test_case.model_dump(), "id": generate_uuid()})
        return test_case

    def import_record(self, data: Any) -> ImportOutcome:
        """
        Reconcile one record payload with the store.

        With overwrite enabled the stored test case is replaced by the incoming one,
        including its id: the payload's id when present, a generated one otherwise.

        Raises:
            RecordValidationError: If the payload has no name
            NameCollisionError: If the name exists and overwrite is off
            pydantic.ValidationError: If a field has an unusable value

        """
        if not isinstance(data, Mapping):
            raise RecordValidationError("Test case payload is not a JSON object")

        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise RecordValidationError("Skipped test case without a name")

        existing = self.store.find_by_name(name)
        if existing is not None and not self.overwrite:
            raise NameCollisionError(name)

        incoming = TestCase.model_validate(dict(data))

        if existing is not None:
            self.store.replace_by_id(existing.id, self._unused_id(incoming, existing))
            logger.debug(f'Replaced test case "{name}"')
            return ImportOutcome.REPLACED

        self.store.insert(self._unused_id(incoming))
        logger.debug(f'Imported test case "{name}"')
        return ImportOutcome.IMPORTED

    def import_payload(self, payload: Any, source: str = "<input>") -> ImportResult:
        """
        Import a parsed JSON document: a backup or a single test case.

        Per-record failures are tallied in the result and never raised.
        """
        if not isinstance(payload, (RecordPayload, BackupPayload)):
            payload = classify_payload(payload)

        records = payload.test_cases if isinstance(payload, BackupPayload) else [payload.data]
        result = ImportResult()
        tracker = ErrorTracker(logger)

        for index, record in enumerate(records):
            context = {"source": source, "index": index}
            try:
                outcome = self.import_record(record)
            except NameCollisionError as e:
                result.skipped_duplicates += 1
                tracker.add_error(e, context)
            except (RecordValidationError, ValidationError) as e:
                result.skipped_invalid += 1
                tracker.add_error(e, context)
            else:
                if outcome == ImportOutcome.REPLACED:
                    result.replaced += 1
                else:
                    result.imported += 1

        result.errors.extend(tracker.errors)
        return result

    @staticmethod
    def parse_json(content: str | bytes, source: str) -> Any:
        """
        Decode and parse a JSON document.

        Raises:
            PayloadParseError: If the content is not valid UTF-8 JSON

        """
        try:
            text = content.decode("utf-8-sig") if isinstance(content, bytes) else content
            return json.loads(text)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise PayloadParseError(source, str(e)) from e

    def import_json_text(self, content: str | bytes, source: str = "<input>") -> ImportResult:
        """
        Import a standalone JSON document.

        Raises:
            PayloadParseError: If the document is not valid JSON; nothing is imported

        """
        return self.import_payload(self.parse_json(content, source), source)

    def import_archive(
        self,
        data: bytes,
        source: str = "<archive>",
        progress_callback: ProgressCallback | None = None,
    ) -> ImportResult:
        """
        Import every JSON entry of a zip archive.

        The whole archive is read and parsed before the store is modified. Entries that
        do not end with the JSON extension are ignored; entries that fail to parse are
        skipped with a warning.

        Raises:
            ReadError: If the archive cannot be read

        """
        entries = list(read_archive(data))
        result = ImportResult()
        tracker = ErrorTracker(logger)

        staged: list[tuple[str, Any]] = []
        for name, content in entries:
            if not name.lower().endswith(self.json_extension):
                continue
            try:
                staged.append((name, self.parse_json(content, name)))
            except PayloadParseError as e:
                result.files_skipped += 1
                tracker.add_error(e, {"source": source, "entry": name})

        result.errors.extend(tracker.errors)

        for done, (name, document) in enumerate(staged, start=1):
            result.merge(self.import_payload(document, f"{source}:{name}"))
            if progress_callback:
                progress_callback(done / len(staged))

        logger.info(
            f"Imported {result.imported_count} test cases from archive {source} "
            f"({result.skipped_count} skipped, {result.files_skipped} unreadable entries)",
        )
        return result

    def import_bytes(
        self,
        filename: str,
        data: bytes,
        progress_callback: ProgressCallback | None = None,
    ) -> ImportResult:
        """Route ``.zip`` input to archive import and anything else to JSON import."""
        if filename.lower().endswith(".zip"):
            return self.import_archive(data, filename, progress_callback)

        result = self.import_json_text(data, filename)
        if progress_callback:
            progress_callback(1.0)
        logger.info(f"Imported {result.imported_count} test cases from {filename}")
        return result

    def import_file(
        self,
        path: Path | str,
        progress_callback: ProgressCallback | None = None,
    ) -> ImportResult:
        """
        Read a file from disk and import it.

        Raises:
            ReadError: If the file cannot be read

        """
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise ReadError(f"Could not read {path}: {e}") from e
        return self.import_bytes(path.name, data, progress_callback)

