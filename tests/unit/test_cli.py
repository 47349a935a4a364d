"""
Unit tests for CLI module.

Tests command-line interface functionality using Click's testing utilities.
Each test gets its own store file; "today" is pinned to 2024-01-10.
"""

import json
from datetime import date

import pytest
from click.testing import CliRunner

from stepsave import cli
from stepsave.cli import __version__, main


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def runner():
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def pinned_today(monkeypatch):
    monkeypatch.setattr(cli, "_today", lambda: date(2024, 1, 10))


@pytest.fixture
def data_path(tmp_path):
    return tmp_path / "store.json"


@pytest.fixture
def invoke(runner, data_path):
    """Invoke the CLI against the temporary store."""
    def _invoke(*args, input=None):
        return runner.invoke(main, ["--data", str(data_path), *args], input=input)
    return _invoke


@pytest.fixture
def signed_in(invoke):
    """Registered user with one full plan starting 2024-01-01."""
    result = invoke("register", "alice", "--password", "secret1")
    assert result.exit_code == 0, result.output
    result = invoke("plan", "create", "--name", "Rent", "--start", "2024-01-01")
    assert result.exit_code == 0, result.output
    return invoke


# ============================================================================
# MAIN COMMAND
# ============================================================================

class TestMainCommand:
    """Test main CLI group."""

    def test_main_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "StepSave" in result.output
        assert "calendar" in result.output

    def test_main_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_data_path_directory(self, runner, tmp_path, monkeypatch):
        monkeypatch.setenv("STEPSAVE_DATA_PATH", str(tmp_path))
        result = runner.invoke(main, ["whoami"])
        assert result.exit_code == 1
        assert "is a directory" in result.output

    def test_info(self, invoke, data_path):
        result = invoke("info")
        assert result.exit_code == 0
        assert __version__ in result.output


# ============================================================================
# ACCOUNTS
# ============================================================================

class TestAccounts:
    """Test register, login, logout and whoami."""

    def test_register_creates_store(self, invoke, data_path):
        result = invoke("register", "alice", "--password", "secret1")
        assert result.exit_code == 0
        assert "Signed in as alice" in result.output
        document = json.loads(data_path.read_text())
        assert document["users"][0]["username"] == "alice"
        assert document["session"]["username"] == "alice"

    def test_register_short_password(self, invoke):
        result = invoke("register", "alice", "--password", "123")
        assert result.exit_code == 1
        assert "at least 6 characters" in result.output

    def test_logout_then_whoami(self, signed_in):
        assert signed_in("whoami").output.strip() == "alice"
        assert signed_in("logout").exit_code == 0
        result = signed_in("whoami")
        assert result.exit_code == 1
        assert "Sign in first" in result.output

    def test_login(self, signed_in):
        signed_in("logout")
        result = signed_in("login", "alice", "--password", "secret1")
        assert result.exit_code == 0
        assert signed_in("whoami").output.strip() == "alice"

    def test_login_failure_is_generic(self, signed_in):
        wrong = signed_in("login", "alice", "--password", "wrong11")
        unknown = signed_in("login", "bob", "--password", "secret1")
        assert wrong.exit_code == unknown.exit_code == 1
        assert "Invalid username or password." in wrong.output
        assert "Invalid username or password." in unknown.output


# ============================================================================
# PLANS
# ============================================================================

class TestPlans:
    """Test plan commands."""

    def test_create_reports_target(self, invoke):
        invoke("register", "alice", "--password", "secret1")
        result = invoke("plan", "create", "-n", "Fees", "-s", "2024-01-01", "-m", "simple", "-a", "10")
        assert result.exit_code == 0
        assert "GHS 3,650.00" in result.output

    def test_create_simple_without_amount(self, invoke):
        invoke("register", "alice", "--password", "secret1")
        result = invoke("plan", "create", "-n", "Fees", "-m", "simple")
        assert result.exit_code == 1
        assert "daily amount greater than 0" in result.output

    def test_create_bad_date(self, invoke):
        invoke("register", "alice", "--password", "secret1")
        result = invoke("plan", "create", "-n", "Fees", "-s", "tomorrow")
        assert result.exit_code != 0

    def test_requires_session(self, invoke):
        result = invoke("plan", "list")
        assert result.exit_code == 1

    def test_list_and_use(self, signed_in, data_path):
        signed_in("plan", "create", "--name", "Second", "--start", "2024-01-01", "--mode", "weekly")
        result = signed_in("--quiet", "plan", "list")
        assert "Rent" in result.output and "Second" in result.output

        document = json.loads(data_path.read_text())
        first_id = document["plansByUser"]["alice"][0]["id"]
        assert document["activePlanByUser"]["alice"] != first_id

        assert signed_in("plan", "use", first_id).exit_code == 0
        document = json.loads(data_path.read_text())
        assert document["activePlanByUser"]["alice"] == first_id

    def test_use_unknown_plan(self, signed_in):
        result = signed_in("plan", "use", "nope")
        assert result.exit_code == 1


# ============================================================================
# PROGRESS
# ============================================================================

class TestProgress:
    """Test status, pay, toggle and calendar."""

    def test_status(self, signed_in):
        result = signed_in("status")
        assert result.exit_code == 0
        assert "Rent" in result.output
        assert "Behind by GHS 55.00" in result.output

    def test_pay_today(self, signed_in, data_path):
        result = signed_in("pay")
        assert result.exit_code == 0
        assert "Paid entry 10: GHS 10.00" in result.output
        document = json.loads(data_path.read_text())
        assert document["plansByUser"]["alice"][0]["completedDays"] == [10]

    def test_pay_twice(self, signed_in):
        signed_in("pay")
        result = signed_in("pay")
        assert result.exit_code == 1
        assert "already completed" in result.output

    def test_toggle(self, signed_in):
        result = signed_in("toggle", "3")
        assert result.exit_code == 0
        assert "Entry 3 is now done" in result.output
        result = signed_in("toggle", "3")
        assert "Entry 3 is now pending" in result.output

    def test_toggle_out_of_range(self, signed_in):
        result = signed_in("toggle", "400")
        assert result.exit_code == 1

    def test_milestone_message(self, signed_in):
        for index in range(1, 30):
            signed_in("--quiet", "toggle", str(index))
        result = signed_in("toggle", "30")
        assert "Milestone unlocked: 30 entries completed." in result.output

    def test_calendar(self, signed_in):
        result = signed_in("calendar", "--month", "2024-01")
        assert result.exit_code == 0
        assert "January 2024" in result.output
        assert "Mon" in result.output

    def test_calendar_empty_month(self, signed_in):
        result = signed_in("calendar", "--month", "2023-11")
        assert "No entries due this month." in result.output

    def test_calendar_bad_month(self, signed_in):
        result = signed_in("calendar", "--month", "2024-13")
        assert result.exit_code != 0

    def test_no_plan(self, invoke):
        invoke("register", "alice", "--password", "secret1")
        result = invoke("status")
        assert result.exit_code == 1
        assert "Create a plan first." in result.output


# ============================================================================
# ANALYTICS, REPORTS, INTERCHANGE
# ============================================================================

class TestOutputs:
    """Test analytics, report, export and import."""

    def test_analytics_files(self, signed_in, tmp_path):
        signed_in("toggle", "1")
        out_dir = tmp_path / "series"
        png = tmp_path / "plan.png"
        result = signed_in("analytics", "-o", str(out_dir), "-p", str(png))
        assert result.exit_code == 0
        assert "Projected finish" in result.output
        assert {p.name for p in out_dir.iterdir()} == {
            "cumulative.csv", "weekly.csv", "streak.csv", "rolling.csv", "projection.csv",
        }
        assert png.exists()

    def test_report_table_and_csv(self, signed_in, tmp_path):
        result = signed_in("--quiet", "report")
        assert result.exit_code == 0
        assert "Rent" in result.output

        csv_path = tmp_path / "report.csv"
        result = signed_in("report", "--output", str(csv_path))
        assert result.exit_code == 0
        assert csv_path.read_text().splitlines()[0].startswith("id,name,mode")

    def test_export_import(self, signed_in, tmp_path, data_path):
        bundle_path = tmp_path / "backup.json"
        assert signed_in("export", str(bundle_path)).exit_code == 0
        bundle = json.loads(bundle_path.read_text())
        assert "session" not in bundle
        assert [u["username"] for u in bundle["users"]] == ["alice"]

        result = signed_in("import", str(bundle_path), "--yes")
        assert result.exit_code == 0
        document = json.loads(data_path.read_text())
        assert document["session"] is None
        assert len(document["plansByUser"]["alice"]) == 1

    def test_import_invalid_bundle(self, signed_in, tmp_path, data_path):
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"nothing": True}))
        before = data_path.read_text()
        result = signed_in("import", str(bad), "--yes")
        assert result.exit_code == 1
        assert "Invalid import payload" in result.output
        assert data_path.read_text() == before

    def test_import_requires_confirmation(self, signed_in, tmp_path):
        bundle_path = tmp_path / "backup.json"
        signed_in("export", str(bundle_path))
        result = signed_in("import", str(bundle_path), input="n\n")
        assert result.exit_code == 1
