"""
Integration test for the full StepSave workflow.

Drives the engine the way the CLI does: register, create plans, record
payments over several days, persist through the repository, migrate a
legacy store, and move data between installations with bundles.
"""

import json
from datetime import date, datetime, timedelta, timezone

import pytest

from stepsave.analytics import build_analytics
from stepsave.auth import current_session, login, register
from stepsave.ledger import create_plan, mark_current_paid, toggle_completion
from stepsave.metrics import compute_metrics
from stepsave.report import build_report, report_totals
from stepsave.storage import StoreRepository

NOW = datetime(2024, 1, 1, 8, tzinfo=timezone.utc)


@pytest.mark.integration
class TestFullWorkflow:
    """Integration tests for the complete savings workflow."""

    def test_thirty_days_of_payments(self, tmp_path):
        """
        Pay every day for a month and check metrics, milestones and persistence.
        """
        repo = StoreRepository(tmp_path / "store.json")

        # 1. Account
        store, user, _ = register(repo.load(), "alice", "secret1", NOW)
        repo.save(store)

        # 2. Plan
        plan = create_plan({"name": "Rent", "start_date": date(2024, 1, 1), "mode": "half"}, now=NOW)
        repo.save(repo.load().with_plan(user.username, plan).with_active_plan(user.username, plan.id))

        # 3. Pay each day, reloading from disk every time
        events_seen = []
        for offset in range(30):
            today = date(2024, 1, 1) + timedelta(days=offset)
            store = repo.load()
            active = store.user_state("alice").active_plan
            updated, events = mark_current_paid(active, today)
            events_seen.extend(event.tag for event in events)
            repo.save(store.with_plan("alice", updated))

        assert events_seen == ["30"]

        # 4. Metrics on day 30
        active = repo.load_user("alice").active_plan
        metrics = compute_metrics(active, date(2024, 1, 30))
        assert metrics.completed_count == 30
        assert metrics.completed_amount == 232.50      # 0.5 × (30 × 31 / 2)
        assert metrics.variance_by_now == 0.0
        assert metrics.streak == 30
        assert metrics.overdue == 0
        assert metrics.next_due_index == 31

        # 5. Analytics from the persisted plan
        bundle = build_analytics(active, metrics)
        assert bundle.cumulative.actual[29] == 232.50
        assert bundle.streak.values == [1] * 30
        assert bundle.rolling.values[29] == 100
        assert bundle.projection.finish_index is not None

        # 6. Report across plans
        frame = build_report(repo.load_user("alice").plans, date(2024, 1, 30))
        assert report_totals(frame)["saved"] == 232.50

    def test_legacy_store_upgrade_and_login(self, tmp_path):
        """
        A flat legacy store is migrated on load; its half plan is upgraded.
        """
        from stepsave.auth import hash_password

        path = tmp_path / "store.json"
        path.write_text(json.dumps({
            "user_v1": json.dumps({"username": "bob", "passwordHash": hash_password("hunter22")}),
            "plans_v1": json.dumps([{
                "id": "legacy",
                "name": "Old plan",
                "startDate": "2023-06-01",
                "mode": "half",
                "totalDays": 182,
                "completedDays": {"1": True, "2": True, "3": False},
            }]),
            "active_plan_id_v1": json.dumps("legacy"),
        }))

        repo = StoreRepository(path)
        store = repo.load()
        plan = store.user_state("bob").active_plan
        assert plan.total_days == 365
        assert plan.target_amount == 33397.50
        assert plan.completed_days == {1, 2}

        store, session = login(store, "bob", "hunter22", NOW)
        repo.save(store)
        _, live = current_session(repo.load(), NOW + timedelta(hours=1))
        assert live.username == "bob"

    def test_bundle_moves_between_installations(self, tmp_path):
        """
        Export from one repository and import into another.
        """
        source = StoreRepository(tmp_path / "a.json")
        target = StoreRepository(tmp_path / "b.json")

        store, _, _ = register(source.load(), "carol", "secret1", NOW)
        plan = create_plan({"name": "Trip", "start_date": "2024-01-01", "mode": "weekly"}, now=NOW)
        plan, _ = toggle_completion(plan, 1)
        source.save(store.with_plan("carol", plan))

        target.import_bundle(json.loads(json.dumps(source.export_bundle(NOW))))

        moved = target.load_user("carol")
        assert moved.active_plan.id == plan.id
        assert moved.active_plan.completed_days == {1}
        assert target.load().session is None
