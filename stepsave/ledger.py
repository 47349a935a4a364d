"""
Completion ledger: plan creation and the mutations that flow back to storage.

Purpose
-------
Every mutation is a pure function returning an updated copy of the plan and
the milestone events it triggered. Callers persist the copy through
StoreRepository.save_plans.

Entries have exactly two states, pending and completed. toggle_completion
flips one entry; mark_current_paid completes the entry in effect today and
refuses (PreconditionError) when that is not possible.

Milestones
----------
Tags "30", "60", "100", "200" are recorded once the completed count reaches
each threshold, and "final" once every entry is completed. A tag is
recorded at most once per plan and is kept when entries are later unmarked.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Tuple, Union

from .config import DailyPlanConfig, SimplePlanConfig, WeeklyPlanConfig, parse_plan_config
from .constants import FINAL_MILESTONE, MILESTONES
from .exceptions import PreconditionError
from .metrics import completed_count
from .plan import Plan, mode_defaults, utc_now
from .schedule import current_index
from .utils import DateLike, coerce_index

logger = logging.getLogger(__name__)

__all__ = [
    "MilestoneEvent",
    "new_plan_id",
    "create_plan",
    "record_milestones",
    "toggle_completion",
    "mark_current_paid",
]


@dataclass(frozen=True)
class MilestoneEvent:
    """One-time event emitted when a milestone is first reached."""
    tag: str
    completed_count: int

    @property
    def is_final(self) -> bool:
        return self.tag == FINAL_MILESTONE

    @property
    def message(self) -> str:
        if self.is_final:
            return "Plan completed. Outstanding consistency."
        return f"Milestone unlocked: {self.tag} entries completed."


def new_plan_id() -> str:
    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

def create_plan(
    payload: Union[Mapping[str, Any], DailyPlanConfig, SimplePlanConfig, WeeklyPlanConfig],
    *,
    now: Optional[datetime] = None,
    id_factory: Callable[[], str] = new_plan_id,
) -> Plan:
    """
    Build a new plan from creation input.

    Parameters
    ----------
    payload : mapping or PlanConfig
        name, start_date, mode (default "full"), color_theme and, for
        simple mode, fixed_daily_amount.
    now : datetime, optional
        Creation timestamp. Defaults to the current UTC time.
    id_factory : callable
        Produces the plan id.

    Raises
    ------
    ValidationError
        If the input is missing a name or start date, or a simple plan has
        a non-positive amount.
    """
    config = payload if isinstance(payload, (DailyPlanConfig, SimplePlanConfig, WeeklyPlanConfig)) \
        else parse_plan_config(payload)

    total_days, multiplier = mode_defaults(config.mode)
    plan = Plan(
        id=id_factory(),
        name=config.name,
        start_date=config.start_date,
        mode=config.mode,
        total_days=total_days,
        increment_multiplier=multiplier,
        fixed_daily_amount=getattr(config, "fixed_daily_amount", None),
        color_theme=config.color_theme,
        created_at=now or utc_now(),
    )
    logger.info("Created plan %s (%s, %d entries)", plan.id, plan.mode, plan.total_days)
    return plan


# ---------------------------------------------------------------------------
# Milestones
# ---------------------------------------------------------------------------

def record_milestones(plan: Plan) -> Tuple[Plan, List[MilestoneEvent]]:
    """Record every milestone the plan has reached but not yet recorded."""
    count = completed_count(plan)
    hit = set(plan.milestones_hit)
    events: List[MilestoneEvent] = []

    for threshold in MILESTONES:
        tag = str(threshold)
        if count >= threshold and tag not in hit:
            hit.add(tag)
            events.append(MilestoneEvent(tag=tag, completed_count=count))

    if count >= plan.total_days and FINAL_MILESTONE not in hit:
        hit.add(FINAL_MILESTONE)
        events.append(MilestoneEvent(tag=FINAL_MILESTONE, completed_count=count))

    if not events:
        return plan, events
    for event in events:
        logger.info("Plan %s reached milestone %s", plan.id, event.tag)
    return plan.with_milestones(hit), events


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

def _require_plan(plan: Optional[Plan]) -> Plan:
    if plan is None:
        raise PreconditionError("Create a plan first.")
    return plan


def toggle_completion(plan: Optional[Plan], index: object) -> Tuple[Plan, List[MilestoneEvent]]:
    """
    Flip entry *index* between pending and completed.

    Indices that are not integral or fall outside ``[1, total_days]`` leave
    the plan unchanged and emit no events.

    Raises
    ------
    PreconditionError
        If no plan is selected.
    """
    plan = _require_plan(plan)
    safe_index = coerce_index(index)
    if safe_index is None or not 1 <= safe_index <= plan.total_days:
        logger.debug("Ignoring toggle of out-of-range index %r on plan %s", index, plan.id)
        return plan, []

    completed = set(plan.completed_days)
    if safe_index in completed:
        completed.discard(safe_index)
    else:
        completed.add(safe_index)
    return record_milestones(plan.with_completed(completed))


def mark_current_paid(plan: Optional[Plan], now: DateLike) -> Tuple[Plan, List[MilestoneEvent]]:
    """
    Complete the entry in effect at *now*.

    Raises
    ------
    PreconditionError
        If no plan is selected, the plan has not started, *now* is past
        the last entry, or today's entry is already completed.
    """
    plan = _require_plan(plan)
    index = current_index(plan, now)
    if index < 1:
        raise PreconditionError(f"Plan starts on {plan.start_date.isoformat()}.")
    if index > plan.total_days:
        raise PreconditionError("Today is outside this plan range.")
    if index in plan.completed_days:
        raise PreconditionError("Today's entry is already completed.")
    return record_milestones(plan.with_completed(set(plan.completed_days) | {index}))
