"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of Casebook, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Workspace: the owner of a test case store and the services that act on it.

Imports and exports run one at a time. Starting one while another is in flight raises
OperationInProgressError instead of waiting.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from casebook.archive import ProgressCallback
from casebook.core.config import AppConfig
from casebook.core.exceptions import OperationInProgressError, RecordNotFoundError
from casebook.core.logging import correlation_id, get_logger, log_operation
from casebook.editor import TestCaseEditor
from casebook.exporter import TestCaseExporter, write_output
from casebook.importer import ImportReconciler, ImportResult
from casebook.models import DerivedStatus, Severity, TestCase
from casebook.query import ANY, FilterView
from casebook.store import TestCaseStore

logger = get_logger(__name__)


class Workspace:
    """Holds the store for the lifetime of the application."""

    def __init__(self, config: AppConfig | None = None, store: TestCaseStore | None = None):
        self.config = config or AppConfig()
        self.store = store if store is not None else TestCaseStore()
        self.editor = TestCaseEditor(self.store)
        self.exporter = TestCaseExporter(self.config.export)
        self._lock = threading.Lock()
        self._running: str | None = None

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def _exclusive(self, operation: str) -> Iterator[dict]:
        if not self._lock.acquire(blocking=False):
            raise OperationInProgressError(self._running or "another operation", operation)
        self._running = operation
        try:
            with correlation_id(), log_operation(
                logger, operation, context={"records": len(self.store)},
            ) as context:
                yield context
        finally:
            self._running = None
            self._lock.release()

    # Import

    def reconciler(self, overwrite: bool | None = None) -> ImportReconciler:
        if overwrite is None:
            overwrite = self.config.importing.overwrite
        return ImportReconciler(
            self.store,
            overwrite=overwrite,
            json_extension=self.config.importing.json_extension,
        )

    def import_file(
        self,
        path: Path | str,
        overwrite: bool | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> ImportResult:
        """Import a JSON or zip file from disk."""
        with self._exclusive("import") as context:
            context["source"] = str(path)
            result = self.reconciler(overwrite).import_file(path, progress_callback)
            context["imported"] = result.imported_count
            context["skipped"] = result.skipped_count
            return result

    def import_bytes(
        self,
        filename: str,
        data: bytes,
        overwrite: bool | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> ImportResult:
        """Import in-memory content; ``filename`` decides between zip and JSON."""
        with self._exclusive("import") as context:
            context["source"] = filename
            result = self.reconciler(overwrite).import_bytes(filename, data, progress_callback)
            context["imported"] = result.imported_count
            context["skipped"] = result.skipped_count
            return result

    # Export

    def export_bundle(
        self,
        output_dir: Path | str,
        progress_callback: ProgressCallback | None = None,
    ) -> Path | None:
        """Write the canonical zip bundle; None when the store is empty."""
        with self._exclusive("export"):
            archive = self.exporter.export_bundle(self.store.all(), progress_callback)
            if archive is None:
                return None
            return write_output(Path(output_dir), self.exporter.bundle_filename(), archive)

    def export_allure(
        self,
        output_dir: Path | str,
        progress_callback: ProgressCallback | None = None,
    ) -> Path | None:
        """Write the Allure results zip; None when the store is empty."""
        with self._exclusive("allure export"):
            archive = self.exporter.export_allure_bundle(self.store.all(), progress_callback)
            if archive is None:
                return None
            return write_output(
                Path(output_dir), self.exporter.allure_bundle_filename(), archive,
            )

    def export_backup(self, output_dir: Path | str) -> Path:
        """Write a backup of every test case, even when there are none."""
        with self._exclusive("backup"):
            document = self.exporter.export_backup(self.store.all())
            return write_output(Path(output_dir), self.exporter.backup_filename(), document)

    def export_test_case(self, record_id: str, output_dir: Path | str) -> Path:
        """
        Write one test case as canonical JSON.

        Raises:
            RecordNotFoundError: If ``record_id`` is not stored

        """
        test_case = self.store.find_by_id(record_id)
        if test_case is None:
            raise RecordNotFoundError(record_id)
        with self._exclusive("export"):
            return write_output(
                Path(output_dir),
                self.exporter.single_export_filename(test_case),
                self.exporter.export_test_case(test_case),
            )

    # Query

    def view(
        self,
        term: str = "",
        status_filter: str | DerivedStatus | None = ANY,
        severity_filter: str | Severity | None = ANY,
    ) -> FilterView:
        return FilterView(self.store, term, status_filter, severity_filter)

    def test_cases(self) -> list[TestCase]:
        return self.store.all()
