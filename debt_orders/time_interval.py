"""
time_interval.py - Durations expressed as an amount and a unit

A TimeInterval pairs an amount (e.g. 3) with a unit (e.g. "months") and can
project a UNIX timestamp forward by that duration. Month and year arithmetic
is calendar-aware: Jan 31 + 1 month is Feb 28 (or 29).

Used to turn decoded loan terms into concrete dates:

    params = decode_terms(word)
    maturity = maturity_timestamp(params, start=1735689600)
"""

from __future__ import annotations
import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from .core import AmortizationUnit
from .terms import DecodedTermsParameters


# Singular forms accepted alongside the plural unit names.
_DURATION_TO_AMORTIZATION_UNIT = {
    "hour": AmortizationUnit.HOURS,
    "day": AmortizationUnit.DAYS,
    "week": AmortizationUnit.WEEKS,
    "month": AmortizationUnit.MONTHS,
    "year": AmortizationUnit.YEARS,
}
_DURATION_TO_AMORTIZATION_UNIT.update({u.value: u for u in AmortizationUnit})


def _add_months(moment: datetime, months: int) -> datetime:
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    # Clamp day overflow (e.g., Jan 31 -> Feb 28)
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


@dataclass(frozen=True, slots=True)
class TimeInterval:
    """
    A duration of `amount` units.

    Attributes:
        amount: Number of units (may be negative to step backwards)
        unit: "hour(s)", "day(s)", "week(s)", "month(s)" or "year(s)",
              or an AmortizationUnit
    """
    amount: int
    unit: str

    def __post_init__(self):
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise TypeError(f"TimeInterval amount must be int, got {type(self.amount)}")
        if isinstance(self.unit, AmortizationUnit):
            object.__setattr__(self, 'unit', self.unit.value)
        if self.unit not in _DURATION_TO_AMORTIZATION_UNIT:
            raise ValueError(f"Unknown duration unit: {self.unit!r}")

    @classmethod
    def from_terms(cls, params: DecodedTermsParameters) -> 'TimeInterval':
        """The full loan term: term_length amortization units."""
        return cls(params.term_length, params.amortization_unit.value)

    @property
    def amortization_unit(self) -> AmortizationUnit:
        return _DURATION_TO_AMORTIZATION_UNIT[self.unit]

    def add_to(self, moment: datetime) -> datetime:
        """Return moment shifted forward by this interval."""
        unit = self.amortization_unit
        if unit is AmortizationUnit.HOURS:
            return moment + timedelta(hours=self.amount)
        if unit is AmortizationUnit.DAYS:
            return moment + timedelta(days=self.amount)
        if unit is AmortizationUnit.WEEKS:
            return moment + timedelta(weeks=self.amount)
        if unit is AmortizationUnit.MONTHS:
            return _add_months(moment, self.amount)
        return _add_months(moment, 12 * self.amount)

    def from_timestamp(self, timestamp: int) -> int:
        """
        Project a UNIX timestamp (seconds, UTC) forward by this interval.

        Example:
            TimeInterval(3, "months").from_timestamp(1528841218)
            => 1536790018
        """
        start = datetime.fromtimestamp(int(timestamp), tz=timezone.utc)
        return int(self.add_to(start).timestamp())

    def __repr__(self) -> str:
        return f"TimeInterval({self.amount} {self.unit})"


def maturity_timestamp(params: DecodedTermsParameters, start: int) -> int:
    """Return the UNIX timestamp at which a loan starting at `start` reaches term."""
    return TimeInterval.from_terms(params).from_timestamp(start)
