"""
Configuration management module for StepSave.

Purpose
-------
Pydantic models for type-safe validation of plan creation input and
environment-driven application settings.

Plan creation input is a tagged union discriminated on ``mode``: each
variant declares exactly the fields its mode requires, so a simple plan
without a positive daily amount, or a daily plan carrying one, is rejected
before any plan exists.

Example
-------
>>> cfg = parse_plan_config({"name": "Rainy day", "start_date": "2024-01-01",
...                          "mode": "simple", "fixed_daily_amount": 10})
>>> type(cfg).__name__
'SimplePlanConfig'
>>> cfg.fixed_daily_amount
10.0
"""

from __future__ import annotations

import datetime
from pathlib import Path
from typing import Any, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Annotated

from .constants import DEFAULT_COLOR_THEME, DEFAULT_CURRENCY
from .exceptions import ValidationError

__all__ = [
    "DailyPlanConfig",
    "SimplePlanConfig",
    "WeeklyPlanConfig",
    "PlanConfig",
    "parse_plan_config",
    "AppSettings",
]


# ---------------------------------------------------------------------------
# Plan creation input
# ---------------------------------------------------------------------------

class _PlanConfigBase(BaseModel):
    """Fields shared by every plan variant."""

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    name: str = Field(
        min_length=1,
        max_length=100,
        description="Plan display name"
    )
    start_date: datetime.date = Field(
        description="Due date of the first entry"
    )
    color_theme: str = Field(
        default=DEFAULT_COLOR_THEME,
        min_length=1,
        description="Display colour (CSS colour string)"
    )

    @field_validator("start_date", mode="before")
    @classmethod
    def validate_start_date(cls, v):
        """Truncate datetimes to their date so that plans never carry a time component."""
        if isinstance(v, datetime.datetime):
            return v.date()
        return v


class DailyPlanConfig(_PlanConfigBase):
    """
    Arithmetic daily plan: entry i deposits i × multiplier.

    Attributes
    ----------
    mode : {"full", "half", "quarter"}
        Selects the multiplier (1.0, 0.5, 0.25).
    """

    mode: Literal["full", "half", "quarter"] = Field(
        description="Daily arithmetic mode"
    )


class SimplePlanConfig(_PlanConfigBase):
    """
    Flat daily plan: every entry deposits the same amount.

    Attributes
    ----------
    fixed_daily_amount : float
        Per-entry amount, > 0. Rounded to cents.
    """

    mode: Literal["simple"] = Field(
        description="Fixed-amount daily mode"
    )
    fixed_daily_amount: float = Field(
        gt=0,
        description="Constant amount per entry"
    )

    @field_validator("fixed_daily_amount")
    @classmethod
    def validate_cents(cls, v):
        """Require an amount that is still positive once rounded to cents."""
        from .utils import round_money

        rounded = round_money(v)
        if rounded <= 0:
            raise ValueError(f"fixed_daily_amount must be at least 0.01, got {v}")
        return rounded


class WeeklyPlanConfig(_PlanConfigBase):
    """Arithmetic weekly plan: 52 entries, entry i deposits i."""

    mode: Literal["weekly"] = Field(
        description="Weekly arithmetic mode"
    )


PlanConfig = Annotated[
    Union[DailyPlanConfig, SimplePlanConfig, WeeklyPlanConfig],
    Field(discriminator="mode"),
]

_PLAN_CONFIG_ADAPTER: TypeAdapter = TypeAdapter(PlanConfig)


def parse_plan_config(payload: Mapping[str, Any]) -> Union[DailyPlanConfig, SimplePlanConfig, WeeklyPlanConfig]:
    """
    Validate plan creation input.

    Missing ``mode`` defaults to "full". Keys whose value is None are
    ignored so that optional form fields can be passed through unchanged.

    Raises
    ------
    ValidationError
        If required fields are missing or amounts are not positive.
    """
    data = {key: value for key, value in dict(payload).items() if value is not None}
    data.setdefault("mode", "full")
    if data.get("mode") != "simple":
        data.pop("fixed_daily_amount", None)
    if not str(data.get("name", "")).strip() or not data.get("start_date"):
        raise ValidationError("Plan name and start date are required.")
    try:
        return _PLAN_CONFIG_ADAPTER.validate_python(data)
    except PydanticValidationError as e:
        fields = {str(err["loc"][-1]) for err in e.errors() if err.get("loc")}
        if "fixed_daily_amount" in fields:
            raise ValidationError(
                "Enter a daily amount greater than 0 for simple mode."
            ) from e
        raise ValidationError(f"Invalid plan: {e.errors()[0]['msg']}") from e


# ---------------------------------------------------------------------------
# Application Settings (Environment Variables)
# ---------------------------------------------------------------------------

class AppSettings(BaseSettings):
    """
    Global application settings loaded from environment variables.

    Environment variables are prefixed with STEPSAVE_ (e.g.
    STEPSAVE_DATA_PATH=/tmp/store.json). A .env file is read if present.

    Attributes
    ----------
    data_path : Path
        Location of the persisted store document.
    log_level : str
        Logging level: "DEBUG", "INFO", "WARNING", "ERROR".
    currency : str
        Currency prefix for formatted amounts.
    debug : bool
        Log at DEBUG level regardless of log_level.

    Examples
    --------
    >>> settings = AppSettings(data_path="/tmp/stepsave.json")
    >>> settings.data_path.name
    'stepsave.json'
    """

    model_config = SettingsConfigDict(
        env_prefix="STEPSAVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    data_path: Path = Field(
        default=Path.home() / ".local" / "share" / "stepsave" / "store.json",
        description="Persisted store document"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging level"
    )
    currency: str = Field(
        default=DEFAULT_CURRENCY,
        description="Currency prefix for display"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )
