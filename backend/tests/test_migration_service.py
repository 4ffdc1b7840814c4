"""
Unit tests for MigrationService record classification and upgrades.
"""

import pytest

from myshelf.models.library_models import RecordFormat
from myshelf.services.errors import StorageFormatError
from myshelf.services.migration_service import MigrationService, default_storage_dict


class TestClassify:
    def setup_method(self):
        self.migrations = MigrationService()

    def test_missing(self):
        assert self.migrations.classify(None) == (RecordFormat.MISSING, 0)

    def test_unversioned(self):
        assert self.migrations.classify({"books": []}) == (RecordFormat.UNVERSIONED, 0)

    def test_versioned(self):
        record = {"version": 1, "data": {"books": []}}
        assert self.migrations.classify(record) == (RecordFormat.VERSIONED, 1)

    def test_future(self):
        record = {"version": 7, "data": {}}
        assert self.migrations.classify(record) == (RecordFormat.FUTURE, 7)

    @pytest.mark.parametrize(
        "record",
        [
            [],
            "text",
            {"version": "1", "data": {}},
            {"version": True, "data": {}},
            {"version": 1, "data": []},
        ],
    )
    def test_malformed(self, record):
        with pytest.raises(StorageFormatError):
            self.migrations.classify(record)


class TestMigrateRecord:
    def setup_method(self):
        self.migrations = MigrationService()

    def test_missing_record_gives_defaults(self):
        data, record_format = self.migrations.migrate_record(None)
        assert record_format == RecordFormat.MISSING
        assert data == default_storage_dict()

    def test_unversioned_record_is_upgraded(self):
        data, record_format = self.migrations.migrate_record(
            {"books": None, "languages": ["English"]}
        )

        assert record_format == RecordFormat.UNVERSIONED
        assert data["books"] == []
        assert data["authors"] == []
        assert data["languages"] == ["English"]
        assert data["settings"] == {"currency": "$"}

    def test_versioned_record_gets_new_defaults(self):
        data, _ = self.migrations.migrate_record({"version": 1, "data": {"books": []}})
        assert data["publishers"] == []
        assert data["settings"] == {"currency": "$"}

    def test_future_record_is_returned_as_stored(self):
        stored = {"books": [], "shelves": ["favourites"]}
        data, record_format = self.migrations.migrate_record({"version": 2, "data": stored})

        assert record_format == RecordFormat.FUTURE
        assert data == stored

    def test_upgrades_apply_in_order(self):
        calls = []

        def step(version):
            def _upgrade(data):
                calls.append(version)
                return {**data, "steps": data.get("steps", 0) + 1}

            return _upgrade

        migrations = MigrationService(upgrades={1: step(1), 0: step(0), 2: step(2)}, current_version=3)

        assert migrations.get_pending_upgrades(1) == [1, 2]
        data, _ = migrations.migrate_record({"version": 1, "data": {}})

        assert calls == [1, 2]
        assert data["steps"] == 2


class TestMigrateLegacy:
    def setup_method(self):
        self.migrations = MigrationService()

    def test_legacy_with_books(self):
        data = self.migrations.migrate_legacy({"books": [{"id": "1"}]})
        assert data["books"] == [{"id": "1"}]
        assert data["authors"] == []

    def test_legacy_with_empty_lists_is_library_data(self):
        data = self.migrations.migrate_legacy({"books": [], "authors": [], "languages": ["English"]})
        assert data["books"] == []
        assert data["languages"] == ["English"]

    @pytest.mark.parametrize("legacy", [None, [], {}, {"theme": "x"}])
    def test_non_library_legacy_is_ignored(self, legacy):
        assert self.migrations.migrate_legacy(legacy) is None
