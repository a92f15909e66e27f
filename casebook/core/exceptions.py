"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of Casebook, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Exception hierarchy for Casebook.

Whole-operation failures (ReadError, PackagingError) abort an import or export.
Per-record failures (RecordValidationError, NameCollisionError, PayloadParseError
inside an archive) are tallied by the import reconciler and never abort a batch.
"""


class CasebookError(Exception):
    """Base class for all Casebook errors."""


class RecordValidationError(CasebookError):
    """Raised when a test case or clone is submitted without a name."""


class RecordNotFoundError(CasebookError):
    """Raised when an operation targets a test case id that is not in the store."""

    def __init__(self, record_id: str):
        super().__init__(f"Test case {record_id} not found")
        self.record_id = record_id


class DuplicateRecordError(CasebookError):
    """Raised when a test case is inserted with an id the store already holds."""

    def __init__(self, record_id: str):
        super().__init__(f"Test case {record_id} already exists")
        self.record_id = record_id


class NameCollisionError(CasebookError):
    """Raised when an imported test case name already exists and overwrite is off."""

    def __init__(self, name: str):
        super().__init__(f'Test case "{name}" already exists')
        self.name = name


class PayloadParseError(CasebookError):
    """Raised when an import payload is not valid JSON."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"Could not parse {source}: {reason}")
        self.source = source
        self.reason = reason


class ReadError(CasebookError):
    """Raised when an import file or archive cannot be read at all."""


class PackagingError(CasebookError):
    """Raised when an export archive cannot be generated."""


class OperationInProgressError(CasebookError):
    """Raised when an import or export starts while another one is running."""

    def __init__(self, running: str, requested: str):
        super().__init__(f"Cannot start {requested} while {running} is in progress")
        self.running = running
        self.requested = requested
