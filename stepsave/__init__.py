"""
StepSave: incremental savings-plan tracker

Builds deposit schedules that grow by a fixed step, tracks which entries
have been paid, and reports progress against the plan's target.

Modules
-------
- plan        : Plan, User and Session value types, mode defaults
- schedule    : Entry dates, amounts and plan totals
- metrics     : Progress, variance, backlog and streak at an instant
- ledger      : Plan creation, entry completion, milestones
- analytics   : Chart series (cumulative, weekly, streak, rolling, projection)
- month_view  : Monday-first month grid and weekly entry lists
- report      : Multi-plan summary table
- storage     : Store document, repository, import/export bundles
- auth        : Registration, login and sessions
- cli         : Command-line interface
"""

from .plan import Plan, User, Session
from .schedule import amount_for_index, date_for_index, index_for_date, target_amount
from .metrics import PlanMetrics, compute_metrics
from .ledger import create_plan, toggle_completion, mark_current_paid
from .storage import Store, StoreRepository
from . import utils
