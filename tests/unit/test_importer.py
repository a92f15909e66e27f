"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of Casebook, licensed under the MIT License.
See LICENSE file for details.
"""

import json

import pytest
from pydantic import ValidationError

from casebook.core.exceptions import (
    NameCollisionError,
    PayloadParseError,
    ReadError,
    RecordValidationError,
)
from casebook.exporter import TestCaseExporter
from casebook.importer import (
    BackupPayload,
    ImportOutcome,
    ImportReconciler,
    ImportResult,
    RecordPayload,
    classify_payload,
)
from casebook.store import TestCaseStore
from tests.fixtures.base import make_zip, write_json
from tests.fixtures.factories import StepFactory, TestCaseFactory


def comparable(test_case):
    """Canonical form without the id, which an overwrite import may change."""
    document = test_case.to_canonical()
    document.pop("id")
    document.pop("updatedAt")
    for step in document["steps"]:
        step.pop("id")
    return document


@pytest.mark.unit
class TestClassifyPayload:
    def test_backup(self):
        payload = classify_payload(TestCaseFactory.backup([TestCaseFactory.payload()]))
        assert isinstance(payload, BackupPayload)
        assert payload.version == "1.0"
        assert len(payload.test_cases) == 1

    def test_record(self):
        data = TestCaseFactory.payload()
        payload = classify_payload(data)
        assert isinstance(payload, RecordPayload)
        assert payload.data == data

    def test_test_cases_must_be_a_list(self):
        assert isinstance(classify_payload({"testCases": "nope", "name": "x"}), RecordPayload)

    def test_non_object(self):
        assert isinstance(classify_payload([1, 2]), RecordPayload)


@pytest.mark.unit
class TestImportRecord:
    def test_insert_new(self, store):
        reconciler = ImportReconciler(store)
        data = TestCaseFactory.payload(name="Login", steps=[StepFactory.payload()])

        assert reconciler.import_record(data) == ImportOutcome.IMPORTED
        stored = store.find_by_name("Login")
        assert stored.id == data["id"]
        assert len(stored.steps) == 1

    def test_defaults_filled_for_sparse_record(self, store):
        ImportReconciler(store).import_record({"name": "Sparse"})
        stored = store.find_by_name("Sparse")
        assert stored.id
        assert stored.severity.value == "NORMAL"
        assert stored.steps == []

    @pytest.mark.parametrize("data", [{}, {"name": ""}, {"name": None}, "text", ["list"]])
    def test_missing_name(self, store, data):
        with pytest.raises(RecordValidationError):
            ImportReconciler(store).import_record(data)
        assert len(store) == 0

    def test_name_collision_without_overwrite(self, store):
        store.insert(TestCaseFactory.create(name="Login", description="original"))
        with pytest.raises(NameCollisionError):
            ImportReconciler(store).import_record(
                TestCaseFactory.payload(name="Login", description="incoming"),
            )
        assert store.find_by_name("Login").description == "original"

    def test_overwrite_replaces_wholesale(self, store):
        existing = store.insert(
            TestCaseFactory.create(name="Login", description="original", tags="old"),
        )
        store.insert(TestCaseFactory.create(name="Other"))
        incoming = TestCaseFactory.payload(name="Login", description="incoming")

        outcome = ImportReconciler(store, overwrite=True).import_record(incoming)

        assert outcome == ImportOutcome.REPLACED
        assert len(store) == 2
        replaced = store.find_by_name("Login")
        assert replaced.id == incoming["id"]
        assert existing.id not in store
        assert replaced.description == "incoming"
        assert replaced.tags == ""
        assert [tc.name for tc in store] == ["Login", "Other"]

    def test_overwrite_without_incoming_id_generates_one(self, store):
        existing = store.insert(TestCaseFactory.create(name="Login"))
        ImportReconciler(store, overwrite=True).import_record({"name": "Login"})
        assert store.find_by_name("Login").id != existing.id

    def test_incoming_id_owned_by_another_record_is_regenerated(self, store):
        other = store.insert(TestCaseFactory.create(name="Other"))
        ImportReconciler(store).import_record(TestCaseFactory.payload(name="New", id=other.id))

        new = store.find_by_name("New")
        assert new.id != other.id
        assert len({tc.id for tc in store}) == 2

    def test_invalid_field_value(self, store):
        with pytest.raises(ValidationError):
            ImportReconciler(store).import_record({"name": "Bad", "severity": "URGENT"})
        assert len(store) == 0


@pytest.mark.unit
class TestImportPayload:
    def test_backup_tallies(self, store):
        store.insert(TestCaseFactory.create(name="Existing"))
        backup = TestCaseFactory.backup([
            TestCaseFactory.payload(name="A"),
            TestCaseFactory.payload(name="Existing"),
            TestCaseFactory.payload(name=""),
            TestCaseFactory.payload(name="Bad", steps=[{"status": "exploded"}]),
            TestCaseFactory.payload(name="B"),
        ])

        result = ImportReconciler(store).import_payload(backup, "backup.json")

        assert result.imported == 2
        assert result.replaced == 0
        assert result.skipped_duplicates == 1
        assert result.skipped_invalid == 2
        assert result.skipped_count == 3
        assert len(result.errors) == 3
        assert {e["error_type"] for e in result.errors} == {
            "NameCollisionError", "RecordValidationError", "ValidationError",
        }
        assert [tc.name for tc in store] == ["Existing", "A", "B"]

    def test_duplicate_names_within_one_batch(self, store):
        backup = TestCaseFactory.backup([
            TestCaseFactory.payload(name="Same", description="first"),
            TestCaseFactory.payload(name="Same", description="second"),
        ])
        result = ImportReconciler(store).import_payload(backup)
        assert result.imported == 1
        assert result.skipped_duplicates == 1
        assert store.find_by_name("Same").description == "first"

    def test_import_is_idempotent_without_overwrite(self, store, sample_test_cases):
        backup = json.loads(TestCaseExporter().export_backup(sample_test_cases))
        reconciler = ImportReconciler(store)

        first = reconciler.import_payload(backup)
        snapshot = [tc.to_canonical() for tc in store]
        second = reconciler.import_payload(backup)

        assert first.imported == 3
        assert second.imported == 0
        assert second.skipped_duplicates == 3
        assert [tc.to_canonical() for tc in store] == snapshot


@pytest.mark.unit
class TestRoundTrip:
    def test_export_then_overwrite_import(self, sample_test_cases):
        """Test that exported test cases come back field for field, ids aside."""
        exporter = TestCaseExporter()
        bundle = exporter.export_bundle(sample_test_cases)

        store = TestCaseStore([tc.clone(tc.name) for tc in sample_test_cases])
        result = ImportReconciler(store, overwrite=True).import_archive(bundle)

        assert result.replaced == 3
        assert len(store) == 3
        for original in sample_test_cases:
            restored = store.find_by_name(original.name)
            assert comparable(restored) == comparable(original)
            assert restored.status == original.status

    def test_backup_round_trip_into_empty_store(self, store, sample_test_cases):
        text = TestCaseExporter().export_backup(sample_test_cases)
        ImportReconciler(store).import_json_text(text)
        assert [tc.to_canonical() for tc in store] == [tc.to_canonical() for tc in sample_test_cases]


@pytest.mark.unit
class TestImportArchive:
    def test_archive_with_bad_entries(self, store):
        archive = make_zip({
            "test-cases/testcase-1.json": json.dumps(TestCaseFactory.payload(name="A")),
            "test-cases/broken.json": "{not json",
            "README.txt": "ignored",
            "backup.json": json.dumps(
                TestCaseFactory.backup([TestCaseFactory.payload(name="B")]),
            ),
        })

        result = ImportReconciler(store).import_archive(archive, "cases.zip")

        assert result.imported == 2
        assert result.files_skipped == 1
        assert result.errors[0]["error_type"] == "PayloadParseError"
        assert sorted(tc.name for tc in store) == ["A", "B"]

    def test_progress(self, store):
        archive = make_zip({
            f"{name}.json": json.dumps(TestCaseFactory.payload(name=name)) for name in "ABCD"
        })
        progress = []
        ImportReconciler(store).import_archive(archive, progress_callback=progress.append)
        assert progress == [0.25, 0.5, 0.75, 1.0]

    def test_unreadable_archive_leaves_store_untouched(self, populated_store):
        before = populated_store.all()
        with pytest.raises(ReadError):
            ImportReconciler(populated_store).import_bytes("cases.zip", b"garbage")
        assert populated_store.all() == before


@pytest.mark.unit
class TestImportSources:
    def test_invalid_top_level_json(self, populated_store):
        before = populated_store.all()
        with pytest.raises(PayloadParseError):
            ImportReconciler(populated_store).import_bytes("cases.json", b"{oops")
        assert populated_store.all() == before

    def test_import_bytes_routes_json(self, store):
        data = json.dumps(TestCaseFactory.payload(name="Login")).encode("utf-8")
        progress = []
        result = ImportReconciler(store).import_bytes("login.JSON", data, progress.append)
        assert result.imported_count == 1
        assert progress == [1.0]

    def test_import_file(self, store, tmp_path):
        path = write_json(tmp_path / "case.json", TestCaseFactory.payload(name="Login"))
        result = ImportReconciler(store).import_file(path)
        assert result.imported == 1

    def test_import_missing_file(self, store, tmp_path):
        with pytest.raises(ReadError):
            ImportReconciler(store).import_file(tmp_path / "missing.json")

    def test_utf8_bom_is_accepted(self, store):
        data = "\ufeff".encode("utf-8") + json.dumps({"name": "Вход"}).encode("utf-8")
        ImportReconciler(store).import_bytes("case.json", data)
        assert store.find_by_name("Вход") is not None


@pytest.mark.unit
class TestImportResult:
    def test_merge(self):
        total = ImportResult(imported=1, skipped_invalid=1, errors=[{"a": 1}])
        total.merge(ImportResult(replaced=2, skipped_duplicates=1, files_skipped=1, errors=[{"b": 2}]))
        assert total.imported_count == 3
        assert total.skipped_count == 2
        assert total.files_skipped == 1
        assert total.errors == [{"a": 1}, {"b": 2}]

    def test_warnings(self, store):
        store.insert(TestCaseFactory.create(name="Login"))
        result = ImportReconciler(store).import_payload(TestCaseFactory.payload(name="Login"))
        assert result.warnings == ['NameCollisionError: Test case "Login" already exists']
