"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of Casebook, licensed under the MIT License.
See LICENSE file for details.
"""

import json
import logging
import os
import re
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from casebook.allure import AllureTransformer
from casebook.archive import ArchivePackager, ProgressCallback
from casebook.core.config import ExportConfig
from casebook.core.exceptions import PackagingError
from casebook.core.ids import now_ms
from casebook.models import Backup, TestCase

logger = logging.getLogger(__name__)

BUNDLE_FOLDER = "test-cases"


def sanitize_filename(name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9]`` with an underscore."""
    return re.sub(r"[^a-zA-Z0-9]", "_", name)


class TestCaseExporter:
    """Exports test cases as canonical JSON, backups, zip bundles and Allure results."""

    __test__ = False

    def __init__(
        self,
        config: ExportConfig | None = None,
        packager: ArchivePackager | None = None,
        allure_transformer: AllureTransformer | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        """Initialize the exporter.

        Args:
            config: Export settings (defaults when omitted)
            packager: Zip packager for bundles
            allure_transformer: Transformer for Allure results
            clock: Source of the timestamps used in file names and backups
        """
        self.config = config or ExportConfig()
        self.packager = packager or ArchivePackager(self.config.compression_level)
        self.allure_transformer = allure_transformer or AllureTransformer.from_config(
            self.config,
        )
        self.clock = clock

    def dumps(self, data: Any) -> str:
        return json.dumps(data, indent=self.config.json_indent or None, ensure_ascii=False)

    # Canonical JSON

    def export_test_case(self, test_case: TestCase) -> str:
        """Serialize one test case with its full field set."""
        return self.dumps(test_case.to_canonical())

    def single_export_filename(self, test_case: TestCase) -> str:
        return f"testcase-{sanitize_filename(test_case.name)}-{self.clock()}.json"

    @staticmethod
    def bundle_entry_name(test_case: TestCase) -> str:
        return f"{BUNDLE_FOLDER}/testcase-{test_case.id}.json"

    # Backups

    def build_backup(self, test_cases: Sequence[TestCase]) -> Backup:
        return Backup(
            timestamp=self.clock(),
            version=self.config.backup_version,
            test_cases=list(test_cases),
        )

    def export_backup(self, test_cases: Sequence[TestCase]) -> str:
        """Serialize every test case into a backup document."""
        backup = self.build_backup(test_cases)
        return self.dumps(backup.model_dump(mode="json", by_alias=True))

    def backup_filename(self) -> str:
        return f"backup-{self.clock()}.json"

    # Zip bundles

    def export_bundle(
        self,
        test_cases: Sequence[TestCase],
        progress_callback: ProgressCallback | None = None,
    ) -> bytes | None:
        """Bundle every test case as canonical JSON into one zip archive.

        Returns:
            The archive bytes, or None when there is nothing to export

        Raises:
            PackagingError: If the archive cannot be generated
        """
        if not test_cases:
            logger.info("No test cases to export")
            return None

        entries = (
            (self.bundle_entry_name(test_case), self.export_test_case(test_case))
            for test_case in test_cases
        )
        archive = self.packager.package(entries, len(test_cases), progress_callback)
        logger.info(f"Exported {len(test_cases)} test cases")
        return archive

    def bundle_filename(self) -> str:
        return f"{BUNDLE_FOLDER}-{self.clock()}.zip"

    def export_allure_bundle(
        self,
        test_cases: Sequence[TestCase],
        progress_callback: ProgressCallback | None = None,
    ) -> bytes | None:
        """Bundle one ``<uuid>-result.json`` Allure document per test case.

        Returns:
            The archive bytes, or None when there is nothing to export

        Raises:
            PackagingError: If the archive cannot be generated
        """
        if not test_cases:
            logger.info("No test cases to transform into Allure results")
            return None

        def entries():
            for test_case in test_cases:
                result = self.allure_transformer.transform(test_case)
                yield result.filename, self.dumps(result.to_document())

        archive = self.packager.package(entries(), len(test_cases), progress_callback)
        logger.info(f"Generated {len(test_cases)} Allure result files")
        return archive

    def allure_bundle_filename(self) -> str:
        return f"allure-results-{self.clock()}.zip"


def write_output(output_dir: Path, filename: str, payload: str | bytes) -> Path:
    """Write an export into ``output_dir`` without leaving a partial file behind.

    Raises:
        PackagingError: If the file cannot be written
    """
    output_dir = Path(output_dir)
    target = output_dir / filename
    partial = target.with_name(f"{target.name}.part")
    data = payload.encode("utf-8") if isinstance(payload, str) else payload

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        partial.write_bytes(data)
        os.replace(partial, target)
    except OSError as e:
        if partial.exists():
            partial.unlink()
        raise PackagingError(f"Could not write {target}: {e}") from e

    logger.debug(f"Wrote {len(data)} bytes to {target}")
    return target
