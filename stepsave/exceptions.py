"""
Custom exceptions for StepSave.

Purpose
-------
Provides a unified exception hierarchy for consistent error handling
across all StepSave modules. All exceptions inherit from StepSaveError,
enabling catch-all handling at the CLI boundary.

Exception Hierarchy
-------------------
StepSaveError (base)
├── ConfigurationError - Invalid settings or environment
├── ValidationError - Malformed plan creation input
├── BundleImportError - Structurally invalid interchange document
├── PreconditionError - Mutation invoked without a usable active plan
└── AuthError - Registration or login failure

Notes
-----
Schedule, metrics and analytics functions never raise for malformed
indices; they clamp or ignore. Persistence normalization never raises
either: bad records are dropped. These exceptions are reserved for the
boundaries (creation input, import, mutations, authentication).

Usage
-----
>>> from stepsave.exceptions import PreconditionError
>>> try:
...     plan, events = mark_current_paid(None, now)
... except PreconditionError as e:
...     print(e)
Create a plan first.
"""


class StepSaveError(Exception):
    """
    Base exception for all StepSave errors.

    Examples
    --------
    >>> try:
    ...     repo.import_bundle(payload)
    ... except StepSaveError as e:
    ...     logger.error(f"Import failed: {e}")
    """
    pass


class ConfigurationError(StepSaveError):
    """
    Invalid application settings.

    Raised when the data path cannot be used or settings are inconsistent.
    """
    pass


class ValidationError(StepSaveError):
    """
    Malformed plan creation input.

    Raised at the creation boundary, before anything is stored:
    - Missing plan name or start date
    - Non-positive fixed daily amount in simple mode
    - Unknown mode

    Examples
    --------
    >>> raise ValidationError("Plan name and start date are required.")
    """
    pass


class BundleImportError(StepSaveError):
    """
    Structurally invalid interchange document.

    Import is all-or-nothing: when this is raised the store is left
    exactly as it was.

    Examples
    --------
    >>> raise BundleImportError("Invalid import payload.")
    """
    pass


class PreconditionError(StepSaveError):
    """
    A mutation was requested in a state that cannot honour it.

    Raised when no plan is selected, or when the current entry is outside
    the plan range or already completed. The message is meant to be shown
    to the user as-is; it is never fatal.
    """
    pass


class AuthError(StepSaveError):
    """
    Registration or login failure.

    Login failures always carry the same generic message so that callers
    cannot tell an unknown username from a wrong password.
    """
    pass
