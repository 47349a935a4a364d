"""
Store document and repository for StepSave.

Purpose
-------
Holds the whole installation state (users, per-user plan buckets, active
plan pointers, at most one session) as a single immutable Store value, and
persists it as one versioned JSON document.

Consistency
-----------
Every Store is produced by build_store, which de-duplicates users, gives
every user a bucket, drops buckets of unknown users and repairs dangling
active-plan pointers. StoreRepository.save writes the full document to a
temporary file and renames it over the target, so readers never observe
users, buckets and pointers from different writes.

There is a single logical owner of the document at a time. Concurrent
writers are not arbitrated: the last completed save wins.

Example
-------
>>> repo = StoreRepository(Path("store.json"))
>>> state = repo.load_user("ama")
>>> repo.save_plans("ama", [*state.plans, new_plan])
>>> repo.set_active_plan("ama", new_plan.id)
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .exceptions import BundleImportError, ConfigurationError, PreconditionError
from .migrations import SCHEMA_VERSION, migrate_document
from .normalize import (
    dedupe_users,
    ensure_user_buckets,
    normalize_active_plan_by_user,
    normalize_plans,
    normalize_plans_by_user,
    normalize_user,
    normalize_users,
)
from .plan import Plan, Session, User, utc_now
from .serialization import plan_to_dict, session_from_dict, session_to_dict, user_to_dict
from .types import BundleDict, StoreDocumentDict
from .utils import format_timestamp

logger = logging.getLogger(__name__)

__all__ = [
    "Store",
    "UserState",
    "build_store",
    "store_from_document",
    "store_to_document",
    "export_bundle",
    "import_bundle",
    "StoreRepository",
]


# ---------------------------------------------------------------------------
# Store value
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class UserState:
    """What one user sees: their plans and the active plan id."""
    username: str
    plans: Tuple[Plan, ...]
    active_plan_id: Optional[str]

    @property
    def active_plan(self) -> Optional[Plan]:
        return next((plan for plan in self.plans if plan.id == self.active_plan_id), None)


@dataclass(frozen=True)
class Store:
    """
    Whole-installation state.

    Attributes
    ----------
    users : tuple of User
        Unique by username.
    plans_by_user : dict
        username → tuple of Plan, one entry per user.
    active_plan_by_user : dict
        username → plan id; present only when it names an existing plan.
    session : Session, optional
        At most one login session.
    """
    users: Tuple[User, ...] = ()
    plans_by_user: Dict[str, Tuple[Plan, ...]] = field(default_factory=dict)
    active_plan_by_user: Dict[str, str] = field(default_factory=dict)
    session: Optional[Session] = None
    schema_version: int = SCHEMA_VERSION

    def get_user(self, username: str) -> Optional[User]:
        name = str(username or "").strip()
        return next((user for user in self.users if user.username == name), None)

    def user_state(self, username: str) -> UserState:
        """Plans and active plan id for *username* (empty for unknown users)."""
        name = str(username or "").strip()
        if self.get_user(name) is None:
            return UserState(username=name, plans=(), active_plan_id=None)
        return UserState(
            username=name,
            plans=self.plans_by_user.get(name, ()),
            active_plan_id=self.active_plan_by_user.get(name),
        )

    def with_user(self, user: User) -> "Store":
        """Insert or replace *user*, keeping their plans."""
        others = [entry for entry in self.users if entry.username != user.username]
        return build_store([*others, user], self.plans_by_user, self.active_plan_by_user, self.session)

    def with_plans(self, username: str, plans: Sequence[Plan]) -> "Store":
        """Replace the plan bucket of *username*."""
        user = self.get_user(username)
        if user is None:
            raise PreconditionError(f"No account named {username!r}.")
        buckets = dict(self.plans_by_user)
        buckets[user.username] = tuple(normalize_plans(list(plans)))
        return build_store(self.users, buckets, self.active_plan_by_user, self.session)

    def with_plan(self, username: str, plan: Plan) -> "Store":
        """Replace the plan with the same id, or append it."""
        plans = list(self.user_state(username).plans)
        position = next((i for i, entry in enumerate(plans) if entry.id == plan.id), None)
        if position is None:
            plans.append(plan)
        else:
            plans[position] = plan
        return self.with_plans(username, plans)

    def with_active_plan(self, username: str, plan_id: Optional[str]) -> "Store":
        """Point *username* at *plan_id*; None or an unknown id falls back to the first plan."""
        name = str(username or "").strip()
        active = dict(self.active_plan_by_user)
        if plan_id:
            active[name] = str(plan_id)
        else:
            active.pop(name, None)
        return build_store(self.users, self.plans_by_user, active, self.session)

    def with_session(self, session: Optional[Session]) -> "Store":
        return replace(self, session=session)


def build_store(
    users: Iterable[User],
    plans_by_user: Mapping[str, Sequence[Plan]],
    active_plan_by_user: Mapping[str, str],
    session: Optional[Session] = None,
) -> Store:
    """Assemble a consistent Store from possibly inconsistent parts."""
    unique_users = dedupe_users(users)
    buckets, active = ensure_user_buckets(unique_users, plans_by_user, active_plan_by_user)
    return Store(
        users=tuple(unique_users),
        plans_by_user={name: tuple(plans) for name, plans in buckets.items()},
        active_plan_by_user=active,
        session=session,
    )


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

def store_from_document(document: Mapping[str, Any]) -> Store:
    """
    Migrate and normalize a raw store document. Never raises.

    Malformed user and plan records are dropped; everything else loads.
    """
    migrated, _ = migrate_document(document if isinstance(document, Mapping) else {})
    return _store_from_current(migrated)


def _store_from_current(migrated: Mapping[str, Any]) -> Store:
    return build_store(
        normalize_users(migrated.get("users")),
        normalize_plans_by_user(migrated.get("plansByUser")),
        normalize_active_plan_by_user(migrated.get("activePlanByUser")),
        session_from_dict(migrated.get("session")),
    )


def _plans_by_user_to_dict(store: Store) -> Dict[str, List[Dict[str, Any]]]:
    return {name: [plan_to_dict(plan) for plan in plans] for name, plans in store.plans_by_user.items()}


def store_to_document(store: Store) -> StoreDocumentDict:
    return {
        "schemaVersion": SCHEMA_VERSION,
        "users": [user_to_dict(user) for user in store.users],
        "plansByUser": _plans_by_user_to_dict(store),
        "activePlanByUser": dict(store.active_plan_by_user),
        "session": session_to_dict(store.session) if store.session else None,
    }


# ---------------------------------------------------------------------------
# Interchange bundles
# ---------------------------------------------------------------------------

def export_bundle(store: Store, now: Optional[datetime] = None) -> BundleDict:
    """Canonical multi-user bundle (sessions are never exported)."""
    return {
        "version": SCHEMA_VERSION,
        "exportedAt": format_timestamp(now or utc_now()),
        "users": [user_to_dict(user) for user in store.users],
        "plansByUser": _plans_by_user_to_dict(store),
        "activePlanByUser": dict(store.active_plan_by_user),
    }


def import_bundle(bundle: Any) -> Store:
    """
    Build a Store from an interchange bundle.

    Accepts the canonical shape ``{users, plansByUser, activePlanByUser}``
    and the legacy single-user shape ``{user, plans, activePlanId}``.
    Malformed records inside a well-formed bundle are dropped; the
    resulting store has no session.

    Raises
    ------
    BundleImportError
        If *bundle* is not a mapping, or has neither shape.
    """
    if not isinstance(bundle, Mapping):
        raise BundleImportError("Invalid import payload.")

    if any(key in bundle for key in ("users", "plansByUser", "activePlanByUser")):
        if not isinstance(bundle.get("users") or [], list):
            raise BundleImportError("Invalid import payload: users must be a list.")
        for key in ("plansByUser", "activePlanByUser"):
            if not isinstance(bundle.get(key) or {}, Mapping):
                raise BundleImportError(f"Invalid import payload: {key} must be an object.")
        users = normalize_users(bundle.get("users") or [])
        plans_by_user = normalize_plans_by_user(bundle.get("plansByUser") or {})
        active = normalize_active_plan_by_user(bundle.get("activePlanByUser") or {})
        return build_store(users, plans_by_user, active)

    if "user" not in bundle and "plans" not in bundle:
        raise BundleImportError("Invalid import payload: no users or plans found.")

    user = normalize_user(bundle.get("user"))
    if user is None:
        return build_store([], {}, {})
    plans = normalize_plans(bundle.get("plans"))
    requested = bundle.get("activePlanId")
    active = {user.username: str(requested)} if requested else {}
    return build_store([user], {user.username: plans}, active)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class StoreRepository:
    """
    File-backed persistence for the Store document.

    Parameters
    ----------
    path : Path
        JSON document location. Parent directories are created on save.

    Notes
    -----
    load() migrates older documents and writes the migrated form back.
    Each mutating method reloads, applies one change, and saves the whole
    document.
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()
        if self.path.is_dir():
            raise ConfigurationError(f"Data path {self.path} is a directory, expected a JSON file.")

    # ===================== Document I/O =====================

    def _read_document(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            text = self.path.read_text(encoding="utf-8")
            document = json.loads(text) if text.strip() else {}
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Could not read store at %s (%s); starting empty", self.path, e)
            return None
        if not isinstance(document, dict):
            logger.warning("Store at %s is not a JSON object; starting empty", self.path)
            return None
        return document

    def load(self) -> Store:
        """Load, migrate and normalize the store. Never raises on bad content."""
        document = self._read_document()
        if document is None:
            return Store()
        migrated, applied = migrate_document(document)
        store = _store_from_current(migrated)
        if applied:
            self.save(store)
        return store

    def save(self, store: Store) -> Store:
        """Atomically replace the persisted document with *store*."""
        payload = json.dumps(store_to_document(store), indent=2, ensure_ascii=False)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.debug("Saved store with %d users to %s", len(store.users), self.path)
        return store

    # ===================== Per-user interface =====================

    def load_user(self, username: str) -> UserState:
        """Plans and active plan id for *username*."""
        return self.load().user_state(username)

    def save_plans(self, username: str, plans: Sequence[Plan]) -> Store:
        """Replace *username*'s plans. Raises PreconditionError for unknown users."""
        return self.save(self.load().with_plans(username, plans))

    def save_plan(self, username: str, plan: Plan) -> Store:
        """Insert or replace a single plan of *username*."""
        return self.save(self.load().with_plan(username, plan))

    def set_active_plan(self, username: str, plan_id: Optional[str]) -> Store:
        return self.save(self.load().with_active_plan(username, plan_id))

    def upsert_user(self, user: User) -> Store:
        return self.save(self.load().with_user(user))

    def set_session(self, session: Optional[Session]) -> Store:
        return self.save(self.load().with_session(session))

    def clear_session(self) -> Store:
        return self.set_session(None)

    # ===================== Interchange =====================

    def export_bundle(self, now: Optional[datetime] = None) -> BundleDict:
        return export_bundle(self.load(), now)

    def import_bundle(self, bundle: Any) -> Store:
        """Replace the whole store with *bundle*; all-or-nothing."""
        store = import_bundle(bundle)
        logger.info("Imported %d users", len(store.users))
        return self.save(store)
