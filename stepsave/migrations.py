"""
Schema migrations for the persisted store document.

Purpose
-------
The store is one JSON document tagged with an integer ``schemaVersion``.
On load, every step between the stored version and SCHEMA_VERSION runs in
order before anything reads the document.

Versions
--------
0  flat legacy key-value namespace, one JSON-encoded value per key
   (``user_v1``, ``plans_v1``, ``active_plan_id_v1``, ``session_v1``, each
   optionally prefixed with ``zenith365_``)
1  single-user document ``{user, plans, activePlanId, session}``
2  multi-user document ``{users, plansByUser, activePlanByUser, session}``

Each step is keyed by the version it produces, works on raw dicts, and is
idempotent: running it on its own output returns an equal document. Record
level validation is left to stepsave.normalize, which runs after the chain.
"""

from __future__ import annotations

import json
import logging
import warnings
from typing import Any, Callable, Dict, List, Mapping, Tuple

logger = logging.getLogger(__name__)

__all__ = [
    "SCHEMA_VERSION",
    "LEGACY_KEY_PREFIX",
    "LEGACY_FLAT_KEYS",
    "MIGRATIONS",
    "detect_version",
    "migrate_document",
]


# ---------------------------------------------------------------------------
# Schema Version
# ---------------------------------------------------------------------------

SCHEMA_VERSION = 2

LEGACY_KEY_PREFIX = "zenith365_"

_FLAT_KEYS: Dict[str, str] = {
    "user_v1": "user",
    "plans_v1": "plans",
    "active_plan_id_v1": "activePlanId",
    "session_v1": "session",
}

# Browser dumps carry the namespace prefix; both spellings migrate.
LEGACY_FLAT_KEYS: Dict[str, str] = {
    **_FLAT_KEYS,
    **{LEGACY_KEY_PREFIX + key: value for key, value in _FLAT_KEYS.items()},
}

_SINGLE_USER_KEYS = ("user", "plans", "activePlanId")
_MULTI_USER_KEYS = ("users", "plansByUser", "activePlanByUser")

Document = Dict[str, Any]


def _decode(value: Any) -> Any:
    """Flat-namespace values were stored JSON-encoded; decode when possible."""
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value


def detect_version(document: Mapping[str, Any]) -> int:
    """
    Schema version of *document*.

    Uses ``schemaVersion`` when it is a usable integer, otherwise infers the
    version from the document's shape.
    """
    raw = document.get("schemaVersion")
    if not isinstance(raw, bool):
        try:
            version = int(raw)
        except (TypeError, ValueError):
            version = None
        if version is not None and version >= 0:
            return version
    if any(key in document for key in _MULTI_USER_KEYS):
        return 2
    if any(key in document for key in _SINGLE_USER_KEYS):
        return 1
    return 0


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------

def _flat_to_single_user(document: Mapping[str, Any]) -> Document:
    """v0 → v1: lift flat legacy keys into a single-user document."""
    migrated: Document = {
        key: value for key, value in document.items()
        if key not in LEGACY_FLAT_KEYS and key != "schemaVersion"
    }
    for legacy_key, key in LEGACY_FLAT_KEYS.items():
        if key not in migrated and legacy_key in document:
            migrated[key] = _decode(document[legacy_key])
    migrated.setdefault("user", None)
    migrated.setdefault("plans", [])
    migrated.setdefault("activePlanId", None)
    migrated.setdefault("session", None)
    migrated["schemaVersion"] = 1
    return migrated


def _single_to_multi_user(document: Mapping[str, Any]) -> Document:
    """
    v1 → v2: move the single user and its plans into per-user maps.

    The legacy active plan id is kept only if it names one of the legacy
    plans; otherwise the first legacy plan becomes active.
    """
    if any(key in document for key in _MULTI_USER_KEYS):
        migrated = {key: value for key, value in document.items() if key not in _SINGLE_USER_KEYS}
        migrated["schemaVersion"] = 2
        return migrated

    user = document.get("user")
    plans = document.get("plans")
    plans = plans if isinstance(plans, list) else []
    username = str(user.get("username") or "").strip() if isinstance(user, Mapping) else ""

    users: List[Any] = []
    plans_by_user: Dict[str, Any] = {}
    active_plan_by_user: Dict[str, str] = {}
    if username:
        users.append(dict(user))
        plans_by_user[username] = plans
        plan_ids = [str(p.get("id")) for p in plans if isinstance(p, Mapping) and p.get("id")]
        requested = document.get("activePlanId")
        if requested and str(requested) in plan_ids:
            active_plan_by_user[username] = str(requested)
        elif plan_ids:
            active_plan_by_user[username] = plan_ids[0]

    return {
        "schemaVersion": 2,
        "users": users,
        "plansByUser": plans_by_user,
        "activePlanByUser": active_plan_by_user,
        "session": document.get("session"),
    }


MIGRATIONS: Dict[int, Callable[[Mapping[str, Any]], Document]] = {
    1: _flat_to_single_user,
    2: _single_to_multi_user,
}
"""Migration steps keyed by the schema version each one produces."""


# ---------------------------------------------------------------------------
# Chain
# ---------------------------------------------------------------------------

def migrate_document(document: Mapping[str, Any]) -> Tuple[Document, List[int]]:
    """
    Bring *document* up to SCHEMA_VERSION.

    Returns
    -------
    (document, applied)
        The migrated document and the versions produced, in order. Documents
        already at or above the current version are returned unchanged; a
        newer version additionally triggers a UserWarning.
    """
    version = detect_version(document)
    migrated: Document = dict(document)
    if version > SCHEMA_VERSION:
        warnings.warn(
            f"Store schema version {version} is newer than supported version "
            f"{SCHEMA_VERSION}. Unknown fields will be ignored.",
            UserWarning,
        )
        return migrated, []

    applied: List[int] = []
    for target in range(version + 1, SCHEMA_VERSION + 1):
        migrated = MIGRATIONS[target](migrated)
        applied.append(target)
        logger.info("Migrated store document to schema version %d", target)
    if not applied:
        migrated["schemaVersion"] = version
    return migrated, applied
