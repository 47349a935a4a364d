"""
Type definitions for StepSave.

Purpose
-------
TypedDict definitions for the JSON records exchanged with persistence and
import/export collaborators. Keys are camelCase to match the wire format.

Type Definitions
----------------
PlanDict
    Serialized plan record
UserDict
    Serialized user record
SessionDict
    Serialized session record
StoreDocumentDict
    Persisted store document (current schema)
BundleDict
    Import/export bundle (canonical multi-user shape)
LegacyBundleDict
    Single-user bundle accepted by import
"""

from typing import Dict, List, Optional
from typing_extensions import NotRequired, TypedDict

__all__ = [
    "PlanDict",
    "UserDict",
    "SessionDict",
    "StoreDocumentDict",
    "BundleDict",
    "LegacyBundleDict",
]


class PlanDict(TypedDict):
    """
    Serialized plan.

    Attributes
    ----------
    startDate : str
        ISO date (YYYY-MM-DD).
    fixedDailyAmount : float or None
        Set for simple mode only.
    targetAmount : float
        Informational; recomputed on load.
    completedDays : list of int
        Completed indices, sorted.
    milestonesHit : list of str
        Milestone tags reached, e.g. ["30", "60", "final"].
    """

    id: str
    name: str
    startDate: str
    mode: str
    totalDays: int
    incrementMultiplier: float
    fixedDailyAmount: Optional[float]
    targetAmount: float
    completedDays: List[int]
    colorTheme: str
    milestonesHit: List[str]
    createdAt: str


class UserDict(TypedDict):
    username: str
    passwordHash: str
    createdAt: str


class SessionDict(TypedDict):
    token: str
    username: str
    issuedAt: str
    expiresAt: str


class StoreDocumentDict(TypedDict):
    """Persisted store document at the current schema version."""

    schemaVersion: int
    users: List[UserDict]
    plansByUser: Dict[str, List[PlanDict]]
    activePlanByUser: Dict[str, str]
    session: Optional[SessionDict]


class BundleDict(TypedDict):
    """Canonical export bundle."""

    version: int
    exportedAt: str
    users: List[UserDict]
    plansByUser: Dict[str, List[PlanDict]]
    activePlanByUser: Dict[str, str]


class LegacyBundleDict(TypedDict, total=False):
    """Single-user bundle produced by early releases."""

    user: UserDict
    plans: List[PlanDict]
    activePlanId: NotRequired[Optional[str]]
