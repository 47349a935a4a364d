"""
Serialization module for StepSave persistence and interchange.

Purpose
-------
Converts domain objects to the camelCase JSON records used by the persisted
store document and by the import/export bundle, and reads/writes bundle
files.

Wire shapes
-----------
Plan:
    {id, name, startDate, mode, totalDays, incrementMultiplier,
     fixedDailyAmount, targetAmount, completedDays, colorTheme,
     milestonesHit, createdAt}
User:
    {username, passwordHash, createdAt}
Session:
    {token, username, issuedAt, expiresAt}

targetAmount is written for the benefit of readers but is always
recomputed on load. completedDays is a sorted list of indices and
milestonesHit a sorted list of tags.

Example
-------
>>> record = plan_to_dict(plan)
>>> record["targetAmount"]
66795.0
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

from .exceptions import BundleImportError
from .plan import Plan, Session, User
from .types import PlanDict, SessionDict, UserDict
from .utils import format_timestamp, parse_timestamp

__all__ = [
    "plan_to_dict",
    "user_to_dict",
    "session_to_dict",
    "session_from_dict",
    "save_bundle",
    "load_bundle",
]


def _milestone_sort_key(tag: str):
    return (0, int(tag), tag) if tag.isdigit() else (1, 0, tag)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

def plan_to_dict(plan: Plan) -> PlanDict:
    """
    Convert Plan to its wire record.

    Parameters
    ----------
    plan : Plan
        Plan to serialize.

    Returns
    -------
    dict
        camelCase record, JSON-serializable.
    """
    return {
        "id": plan.id,
        "name": plan.name,
        "startDate": plan.start_date.isoformat(),
        "mode": plan.mode,
        "totalDays": plan.total_days,
        "incrementMultiplier": plan.increment_multiplier,
        "fixedDailyAmount": plan.fixed_daily_amount,
        "targetAmount": plan.target_amount,
        "completedDays": sorted(plan.completed_days),
        "colorTheme": plan.color_theme,
        "milestonesHit": sorted(plan.milestones_hit, key=_milestone_sort_key),
        "createdAt": format_timestamp(plan.created_at),
    }


def user_to_dict(user: User) -> UserDict:
    return {
        "username": user.username,
        "passwordHash": user.password_hash,
        "createdAt": format_timestamp(user.created_at),
    }


def session_to_dict(session: Session) -> SessionDict:
    return {
        "token": session.token,
        "username": session.username,
        "issuedAt": format_timestamp(session.issued_at),
        "expiresAt": format_timestamp(session.expires_at),
    }


def session_from_dict(data: Any) -> Optional[Session]:
    """Rebuild a Session; None if any field is missing or malformed."""
    if not isinstance(data, dict):
        return None
    token = str(data.get("token") or "")
    username = str(data.get("username") or "")
    issued_at = parse_timestamp(data.get("issuedAt"))
    expires_at = parse_timestamp(data.get("expiresAt"))
    if not token or not username or issued_at is None or expires_at is None:
        return None
    return Session(token=token, username=username, issued_at=issued_at, expires_at=expires_at)


# ---------------------------------------------------------------------------
# Bundle files
# ---------------------------------------------------------------------------

def save_bundle(bundle: Dict[str, Any], path: Path) -> None:
    """
    Write an interchange bundle to a JSON file.

    Examples
    --------
    >>> save_bundle(repo.export_bundle(), Path("backup.json"))
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(bundle, f, indent=2, ensure_ascii=False)


def load_bundle(path: Path) -> Dict[str, Any]:
    """
    Read an interchange bundle from a JSON file.

    Raises
    ------
    BundleImportError
        If the file cannot be read, is not valid JSON, or does not hold a
        JSON object.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            bundle = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise BundleImportError(f"Import failed. Invalid JSON payload: {e}") from e
    if not isinstance(bundle, dict):
        raise BundleImportError("Import failed. Invalid JSON payload.")
    return bundle
