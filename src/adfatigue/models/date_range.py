"""
Date Range Model and Cache Key Construction

Relative presets ("last_7d") are resolved to absolute since/until dates
before a key is built, so two logically identical ranges always map to
the same cache key no matter which day the label was written on.

Author: System Architect
Date: 2025-12-09
"""

import calendar
from datetime import date, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator

from adfatigue.core.config.settings import get_settings
from adfatigue.core.exceptions import InvalidDateRangeError, ValidationError

ACCOUNT_PREFIX = "act_"


class DatePreset(str, Enum):
    """Relative date range labels understood by the ad platform."""

    TODAY = "today"
    YESTERDAY = "yesterday"
    LAST_3D = "last_3d"
    LAST_7D = "last_7d"
    LAST_14D = "last_14d"
    LAST_28D = "last_28d"
    LAST_30D = "last_30d"
    LAST_60D = "last_60d"
    LAST_90D = "last_90d"
    THIS_MONTH = "this_month"
    LAST_MONTH = "last_month"


_LAST_N_DAYS = {
    DatePreset.LAST_3D: 3,
    DatePreset.LAST_7D: 7,
    DatePreset.LAST_14D: 14,
    DatePreset.LAST_28D: 28,
    DatePreset.LAST_30D: 30,
    DatePreset.LAST_60D: 60,
    DatePreset.LAST_90D: 90,
}


class DateRange(BaseModel):
    """
    Canonical, absolute date range (both ends inclusive).

    Usage:
        DateRange.from_preset("last_7d", today=date(2025, 12, 9))
        DateRange.parse("2025-12-01_2025-12-07")
    """

    model_config = ConfigDict(frozen=True)

    since: date
    until: date

    @model_validator(mode="after")
    def check_order(self):
        if self.since > self.until:
            raise InvalidDateRangeError(
                f"since ({self.since}) is after until ({self.until})",
                details={"since": self.since.isoformat(), "until": self.until.isoformat()},
            )
        return self

    @property
    def days(self) -> int:
        return (self.until - self.since).days + 1

    @property
    def descriptor(self) -> str:
        return f"{self.since.isoformat()}_{self.until.isoformat()}"

    @classmethod
    def from_preset(cls, preset: str | DatePreset, today: date | None = None) -> "DateRange":
        """
        Resolve a relative preset against today's date.

        last_Nd presets end yesterday, matching the ad platform's own
        interpretation of the labels.

        Raises:
            InvalidDateRangeError: If the preset name is unknown
        """
        try:
            preset = DatePreset(preset)
        except ValueError:
            raise InvalidDateRangeError(
                f"Unknown date preset: {preset}",
                details={"valid_presets": [p.value for p in DatePreset]},
            )

        today = today or date.today()

        if preset == DatePreset.TODAY:
            return cls(since=today, until=today)
        if preset == DatePreset.YESTERDAY:
            yesterday = today - timedelta(days=1)
            return cls(since=yesterday, until=yesterday)
        if preset == DatePreset.THIS_MONTH:
            return cls(since=today.replace(day=1), until=today)
        if preset == DatePreset.LAST_MONTH:
            end = today.replace(day=1) - timedelta(days=1)
            return cls(since=end.replace(day=1), until=end)

        days = _LAST_N_DAYS[preset]
        return cls(since=today - timedelta(days=days), until=today - timedelta(days=1))

    @classmethod
    def parse(cls, value: str, today: date | None = None) -> "DateRange":
        """
        Parse a preset name or an absolute "YYYY-MM-DD_YYYY-MM-DD" descriptor.

        A bare "YYYY-MM" resolves to that whole calendar month.
        """
        value = value.strip()
        if value in {preset.value for preset in DatePreset}:
            return cls.from_preset(value, today=today)

        try:
            if "_" in value:
                since_raw, until_raw = value.split("_", 1)
                return cls(since=date.fromisoformat(since_raw), until=date.fromisoformat(until_raw))
            if len(value) == 7:
                year, month = (int(part) for part in value.split("-"))
                last_day = calendar.monthrange(year, month)[1]
                return cls(since=date(year, month, 1), until=date(year, month, last_day))
            single = date.fromisoformat(value)
            return cls(since=single, until=single)
        except ValueError as e:
            raise InvalidDateRangeError(
                f"Malformed date range: {value!r}", details={"error": str(e)}
            )


def normalize_account_id(account_id: str) -> str:
    """Strip whitespace and the ad platform's "act_" prefix."""
    normalized = account_id.strip()
    if normalized.startswith(ACCOUNT_PREFIX):
        normalized = normalized[len(ACCOUNT_PREFIX):]
    if not normalized:
        raise ValidationError("account_id must not be empty")
    return normalized


def build_cache_key(account_id: str, date_range: DateRange, prefix: str | None = None) -> str:
    """
    Build the deterministic cache key for an account and date range.

    Format: "{prefix}:{account}:{since}_{until}"
    """
    prefix = prefix or get_settings().cache.CACHE_KEY_PREFIX
    return f"{prefix}:{normalize_account_id(account_id)}:{date_range.descriptor}"
