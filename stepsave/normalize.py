"""
Record normalization for persisted and imported documents.

Purpose
-------
Turns loosely-typed stored records into validated domain objects. These
functions never raise: a record missing a required field, or one that
cannot be coerced, is dropped (logged at DEBUG) and the rest of the
collection loads normally.

Plan rules
----------
- Required: id, name, startDate, mode (one of the five modes)
- totalDays missing or non-positive → the mode's default
- incrementMultiplier missing or non-positive → the mode's default
- simple mode without fixedDailyAmount → legacy targetAmount / totalDays,
  else 1.00
- half/quarter plans stored with the deprecated 182/91 entry counts are
  upgraded to 365 entries, unless an explicit multiplier is stored
- stored targetAmount is never trusted; Plan derives it on access
- completedDays accepts either a list of indices or a mapping of
  index → flag; only integral indices in [1, totalDays] survive

Collection rules
----------------
- Repeated usernames: the later record wins
- Every known user gets a plan bucket; buckets of unknown users are dropped
- An active-plan pointer that names no existing plan moves to the user's
  first plan, or is cleared if the user has none
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .constants import DEFAULT_COLOR_THEME, LEGACY_MODE_DAYS, MAX_TOTAL_DAYS, MODES
from .plan import Plan, User, mode_defaults, utc_now
from .utils import coerce_index, parse_date, parse_timestamp, round_money

logger = logging.getLogger(__name__)

__all__ = [
    "normalize_user",
    "normalize_plan",
    "normalize_users",
    "dedupe_users",
    "normalize_plans",
    "normalize_plans_by_user",
    "normalize_active_plan_by_user",
    "ensure_user_buckets",
]


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------

def _positive_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 and number != float("inf") else None


def _flag_keys(value: Any) -> List[Any]:
    """Keys with a truthy flag (mapping) or the items themselves (sequence)."""
    if isinstance(value, Mapping):
        return [key for key, flag in value.items() if flag]
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return []


# ---------------------------------------------------------------------------
# Single records
# ---------------------------------------------------------------------------

def normalize_user(record: Any) -> Optional[User]:
    """Validate a stored user record; None if username or passwordHash is missing."""
    if isinstance(record, User):
        return record
    if not isinstance(record, Mapping):
        return None
    username = str(record.get("username") or "").strip()
    password_hash = str(record.get("passwordHash") or "").strip()
    if not username or not password_hash:
        logger.debug("Dropping user record without username or passwordHash: %r", username)
        return None
    return User(
        username=username,
        password_hash=password_hash,
        created_at=parse_timestamp(record.get("createdAt")) or utc_now(),
    )


def normalize_plan(record: Any) -> Optional[Plan]:
    """Validate and default a stored plan record; None if it is unusable."""
    if isinstance(record, Plan):
        return record
    if not isinstance(record, Mapping):
        return None
    if not all(record.get(key) for key in ("id", "name", "startDate", "mode")):
        logger.debug("Dropping plan record missing id/name/startDate/mode: %r", record.get("id"))
        return None

    mode = str(record["mode"])
    if mode not in MODES:
        logger.debug("Dropping plan %r with unknown mode %r", record["id"], mode)
        return None
    try:
        start_date = parse_date(str(record["startDate"]))
    except ValueError:
        logger.debug("Dropping plan %r with bad startDate %r", record["id"], record["startDate"])
        return None

    default_days, default_multiplier = mode_defaults(mode)
    explicit_multiplier = _positive_number(record.get("incrementMultiplier"))
    stored_days = coerce_index(record.get("totalDays"))
    total_days = stored_days if stored_days is not None and stored_days > 0 else default_days
    if total_days > MAX_TOTAL_DAYS:
        logger.debug("Plan %r has %d entries, above %d; using %d",
                     record["id"], total_days, MAX_TOTAL_DAYS, default_days)
        total_days = default_days
    multiplier = explicit_multiplier or default_multiplier

    fixed_daily_amount = None
    if mode == "simple":
        raw_fixed = _positive_number(record.get("fixedDailyAmount"))
        fixed_daily_amount = round_money(raw_fixed) if raw_fixed else None
        if not fixed_daily_amount:
            legacy_target = _positive_number(record.get("targetAmount"))
            if legacy_target:
                fixed_daily_amount = round_money(legacy_target / total_days) or None
        fixed_daily_amount = fixed_daily_amount or 1.0

    if explicit_multiplier is None and LEGACY_MODE_DAYS.get(mode) == total_days:
        logger.debug("Upgrading legacy %s plan %r from %d to %d entries",
                     mode, record["id"], total_days, default_days)
        total_days = default_days

    completed = set()
    for key in _flag_keys(record.get("completedDays")):
        index = coerce_index(key)
        if index is not None and 1 <= index <= total_days:
            completed.add(index)

    color_theme = record.get("colorTheme")
    try:
        return Plan(
            id=str(record["id"]),
            name=str(record["name"]),
            start_date=start_date,
            mode=mode,
            total_days=total_days,
            increment_multiplier=multiplier,
            fixed_daily_amount=fixed_daily_amount,
            completed_days=frozenset(completed),
            color_theme=color_theme if isinstance(color_theme, str) and color_theme else DEFAULT_COLOR_THEME,
            milestones_hit=frozenset(str(tag) for tag in _flag_keys(record.get("milestonesHit"))),
            created_at=parse_timestamp(record.get("createdAt")) or utc_now(),
        )
    except ValueError as e:
        logger.debug("Dropping invalid plan %r: %s", record["id"], e)
        return None


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------

def dedupe_users(users: Iterable[User]) -> List[User]:
    """Unique by username; a later record replaces an earlier one in place."""
    by_name: Dict[str, User] = {}
    for user in users:
        by_name[user.username] = user
    return list(by_name.values())


def normalize_users(records: Any) -> List[User]:
    if not isinstance(records, (list, tuple)):
        return []
    return dedupe_users(user for user in map(normalize_user, records) if user is not None)


def normalize_plans(records: Any) -> List[Plan]:
    if not isinstance(records, (list, tuple)):
        return []
    return [plan for plan in map(normalize_plan, records) if plan is not None]


def normalize_plans_by_user(value: Any) -> Dict[str, List[Plan]]:
    if not isinstance(value, Mapping):
        return {}
    return {str(username): normalize_plans(plans) for username, plans in value.items()}


def normalize_active_plan_by_user(value: Any) -> Dict[str, str]:
    if not isinstance(value, Mapping):
        return {}
    return {str(username): str(plan_id) for username, plan_id in value.items() if plan_id}


def ensure_user_buckets(
    users: Sequence[User],
    plans_by_user: Mapping[str, Sequence[Plan]],
    active_plan_by_user: Mapping[str, str],
) -> Tuple[Dict[str, List[Plan]], Dict[str, str]]:
    """
    Reconcile plan buckets and active-plan pointers with the user list.

    Returns new ``(plans_by_user, active_plan_by_user)`` mappings holding
    exactly one bucket per known user and only pointers that name an
    existing plan.
    """
    buckets: Dict[str, List[Plan]] = {}
    active: Dict[str, str] = {}
    for user in users:
        plans = list(plans_by_user.get(user.username, []))
        buckets[user.username] = plans
        pointer = active_plan_by_user.get(user.username)
        if any(plan.id == pointer for plan in plans):
            active[user.username] = pointer
        elif plans:
            active[user.username] = plans[0].id

    dropped = set(plans_by_user) - set(buckets)
    if dropped:
        logger.debug("Dropping plan buckets of unknown users: %s", sorted(dropped))
    return buckets, active
