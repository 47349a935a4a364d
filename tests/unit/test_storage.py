"""
Unit tests for storage.py module.

Tests the Store value, document conversion, interchange bundles and the
file-backed repository.
"""

import json
from datetime import date, datetime, timezone

import pytest

from stepsave.exceptions import BundleImportError, ConfigurationError, PreconditionError
from stepsave.metrics import compute_metrics
from stepsave.migrations import SCHEMA_VERSION
from stepsave.plan import User
from stepsave.storage import (
    Store,
    StoreRepository,
    build_store,
    export_bundle,
    import_bundle,
    store_from_document,
    store_to_document,
)

PLAN_RECORD = {"id": "p1", "name": "One", "startDate": "2024-01-01", "mode": "full", "completedDays": [1, 2]}


class TestStore:
    """Test Store value operations."""

    def test_user_state(self, store, weekly_plan):
        state = store.user_state("alice")
        assert [p.id for p in state.plans] == ["full-1", "weekly-1"]
        assert state.active_plan == weekly_plan

    def test_unknown_user_state_is_empty(self, store):
        state = store.user_state("nobody")
        assert state.plans == ()
        assert state.active_plan is None

    def test_with_plan_replaces_by_id(self, store, full_plan):
        updated = store.with_plan("alice", full_plan.with_completed({1}))
        plans = updated.user_state("alice").plans
        assert len(plans) == 2
        assert plans[0].completed_days == {1}
        assert store.user_state("alice").plans[0].completed_days == frozenset()

    def test_with_plans_unknown_user(self, store):
        with pytest.raises(PreconditionError, match="No account"):
            store.with_plans("ghost", [])

    def test_padded_username_keeps_plans(self, store, simple_plan):
        updated = store.with_plans(" alice ", [simple_plan])
        assert updated.user_state("alice").plans == (simple_plan,)
        assert set(updated.plans_by_user) == {"alice"}

    def test_padded_username_sets_active_plan(self, store):
        updated = store.with_active_plan(" alice", "full-1")
        assert updated.active_plan_by_user == {"alice": "full-1"}

    def test_repository_save_plans_padded_username(self, repo, store, simple_plan):
        repo.save(store)
        repo.save_plans(" alice", [simple_plan])
        assert repo.load_user("alice").plans == (simple_plan,)

    def test_with_active_plan_falls_back(self, store):
        assert store.with_active_plan("alice", "full-1").active_plan_by_user == {"alice": "full-1"}
        assert store.with_active_plan("alice", "missing").active_plan_by_user == {"alice": "full-1"}

    def test_with_user_keeps_plans(self, store):
        replaced = store.with_user(User(username="alice", password_hash="other"))
        assert replaced.get_user("alice").password_hash == "other"
        assert len(replaced.user_state("alice").plans) == 2

    def test_build_store_dedupes_and_buckets(self, alice):
        duplicate = User(username="alice", password_hash="newer")
        built = build_store([alice, duplicate], {"ghost": []}, {})
        assert len(built.users) == 1
        assert built.users[0].password_hash == "newer"
        assert built.plans_by_user == {"alice": ()}


class TestDocuments:
    """Test store ↔ document conversion."""

    def test_round_trip(self, store):
        restored = store_from_document(json.loads(json.dumps(store_to_document(store))))
        assert restored.user_state("alice").plans == store.user_state("alice").plans
        assert restored.active_plan_by_user == store.active_plan_by_user
        assert restored.users == store.users

    def test_document_shape(self, store):
        document = store_to_document(store)
        assert document["schemaVersion"] == SCHEMA_VERSION
        assert set(document["plansByUser"]) == {"alice"}
        assert document["session"] is None

    def test_legacy_document(self):
        restored = store_from_document({"user": {"username": "bob", "passwordHash": "h"}, "plans": [PLAN_RECORD]})
        assert restored.user_state("bob").active_plan.id == "p1"

    def test_garbage_document(self):
        assert store_from_document("nonsense") == Store()


class TestBundles:
    """Test export and import."""

    def test_export_excludes_session(self, store):
        bundle = export_bundle(store, datetime(2024, 2, 1, tzinfo=timezone.utc))
        assert bundle["version"] == SCHEMA_VERSION
        assert bundle["exportedAt"] == "2024-02-01T00:00:00.000Z"
        assert "session" not in bundle
        assert bundle["activePlanByUser"] == {"alice": "weekly-1"}

    def test_export_import_round_trip(self, store):
        imported = import_bundle(export_bundle(store))
        assert imported.users == store.users
        assert imported.plans_by_user == store.plans_by_user
        assert imported.session is None

    def test_user_without_password_hash_dropped(self):
        bundle = {
            "users": [{"username": "amy", "passwordHash": "x"}, {"username": "bob"}],
            "plansByUser": {"amy": [PLAN_RECORD], "bob": [PLAN_RECORD]},
            "activePlanByUser": {"amy": "p1", "bob": "p1"},
        }
        imported = import_bundle(bundle)
        assert [u.username for u in imported.users] == ["amy"]
        assert set(imported.plans_by_user) == {"amy"}
        assert imported.user_state("amy").plans[0].completed_days == {1, 2}

    def test_oversized_plan_imports_with_default_length(self):
        record = {**PLAN_RECORD, "totalDays": 1e12}
        imported = import_bundle({
            "users": [{"username": "amy", "passwordHash": "x"}],
            "plansByUser": {"amy": [record]},
        })
        plan = imported.user_state("amy").plans[0]
        assert plan.total_days == 365
        metrics = compute_metrics(plan, date(2024, 1, 10))
        assert metrics.completed_count == 2

    def test_legacy_single_user_bundle(self):
        imported = import_bundle({
            "user": {"username": "bob", "passwordHash": "h"},
            "plans": [PLAN_RECORD],
            "activePlanId": "p1",
        })
        assert imported.active_plan_by_user == {"bob": "p1"}

    def test_legacy_bundle_without_valid_user(self):
        imported = import_bundle({"user": {"username": "bob"}, "plans": [PLAN_RECORD]})
        assert imported.users == ()

    @pytest.mark.parametrize("bundle", [
        None,
        [1, 2],
        "text",
        {"something": "else"},
        {"users": "alice"},
        {"users": [], "plansByUser": [1]},
    ])
    def test_invalid_payload(self, bundle):
        with pytest.raises(BundleImportError, match="Invalid import payload"):
            import_bundle(bundle)


class TestRepository:
    """Test the file-backed repository."""

    def test_directory_path_rejected(self, tmp_path):
        with pytest.raises(ConfigurationError):
            StoreRepository(tmp_path)

    def test_missing_file_is_empty(self, repo):
        assert repo.load() == Store()

    def test_save_and_load(self, repo, store):
        repo.save(store)
        assert repo.load().user_state("alice").plans == store.user_state("alice").plans
        leftovers = [p for p in repo.path.parent.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []

    def test_corrupt_file_loads_empty(self, repo):
        repo.path.write_text("{not json")
        assert repo.load() == Store()

    def test_non_object_file_loads_empty(self, repo):
        repo.path.write_text("[1, 2, 3]")
        assert repo.load() == Store()

    def test_load_migrates_and_persists(self, repo):
        repo.path.write_text(json.dumps({
            "user_v1": json.dumps({"username": "bob", "passwordHash": "h"}),
            "plans_v1": json.dumps([PLAN_RECORD]),
        }))
        store = repo.load()
        assert store.user_state("bob").active_plan.id == "p1"
        on_disk = json.loads(repo.path.read_text())
        assert on_disk["schemaVersion"] == SCHEMA_VERSION
        assert "user_v1" not in on_disk

    def test_per_user_helpers(self, repo, store, full_plan):
        repo.save(store)
        repo.save_plan("alice", full_plan.with_completed({5}))
        repo.set_active_plan("alice", "full-1")
        state = repo.load_user("alice")
        assert state.active_plan.completed_days == {5}

    def test_save_plans_unknown_user(self, repo, full_plan):
        with pytest.raises(PreconditionError):
            repo.save_plans("ghost", [full_plan])

    def test_import_replaces_store(self, repo, store):
        repo.save(store)
        repo.import_bundle({"users": [{"username": "zed", "passwordHash": "h"}]})
        loaded = repo.load()
        assert [u.username for u in loaded.users] == ["zed"]
        assert loaded.plans_by_user == {"zed": ()}

    def test_failed_import_leaves_store(self, repo, store):
        repo.save(store)
        with pytest.raises(BundleImportError):
            repo.import_bundle("garbage")
        assert repo.load().get_user("alice") is not None

    def test_parent_directory_created(self, tmp_path, store):
        repo = StoreRepository(tmp_path / "nested" / "dir" / "store.json")
        repo.save(store)
        assert repo.path.exists()
