"""
Pytest configuration and fixtures for the StepSave test suite.

Fixtures build plans directly from the Plan value type so tests do not
depend on id generation or the current clock.
"""

from datetime import date, datetime, timezone

import matplotlib
import pytest

from stepsave.plan import Plan, User
from stepsave.auth import hash_password
from stepsave.storage import StoreRepository, build_store

matplotlib.use("Agg")

CREATED = datetime(2024, 1, 1, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Date Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def start_date() -> date:
    """Standard start date for tests (a Monday)."""
    return date(2024, 1, 1)


@pytest.fixture
def now() -> datetime:
    """Fixed reference instant."""
    return datetime(2024, 1, 10, 9, 30, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Plan Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def full_plan(start_date) -> Plan:
    """Full mode: 365 entries, amount = index."""
    return Plan(id="full-1", name="Full", start_date=start_date, mode="full", created_at=CREATED)


@pytest.fixture
def half_plan(start_date) -> Plan:
    """Half mode: 365 entries, amount = index × 0.5."""
    return Plan(id="half-1", name="Half", start_date=start_date, mode="half", created_at=CREATED)


@pytest.fixture
def simple_plan(start_date) -> Plan:
    """Simple mode: 365 entries of 10.00."""
    return Plan(
        id="simple-1",
        name="Simple",
        start_date=start_date,
        mode="simple",
        fixed_daily_amount=10.0,
        created_at=CREATED,
    )


@pytest.fixture
def weekly_plan(start_date) -> Plan:
    """Weekly mode: 52 entries seven days apart."""
    return Plan(id="weekly-1", name="Weekly", start_date=start_date, mode="weekly", created_at=CREATED)


@pytest.fixture
def short_plan(start_date) -> Plan:
    """Ten-entry full plan for hand-checked sums."""
    return Plan(id="short-1", name="Short", start_date=start_date, mode="full", total_days=10,
                created_at=CREATED)


# ---------------------------------------------------------------------------
# Store Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def alice() -> User:
    return User(
        username="alice",
        password_hash=hash_password("secret1"),
        created_at=CREATED,
    )


@pytest.fixture
def store(alice, full_plan, weekly_plan):
    """Store with one user owning two plans; the weekly plan is active."""
    return build_store(
        [alice],
        {"alice": [full_plan, weekly_plan]},
        {"alice": weekly_plan.id},
    )


@pytest.fixture
def repo(tmp_path) -> StoreRepository:
    """Repository backed by a temporary file."""
    return StoreRepository(tmp_path / "store.json")
