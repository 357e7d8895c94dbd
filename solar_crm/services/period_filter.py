"""Reporting period filter: financial years, quarters and months.

The filter is a value object updated through a pure reducer. Quarter and
month selections are anchored to a single financial year: selecting zero or
several years clears them, and months outside the selected quarters are
dropped. Precondition violations (e.g. picking a quarter with two years
selected) leave the state unchanged instead of raising.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import date

# Indian fiscal year: April to March.
QUARTER_MONTHS: dict[str, tuple[str, ...]] = {
    "Q1": ("04", "05", "06"),
    "Q2": ("07", "08", "09"),
    "Q3": ("10", "11", "12"),
    "Q4": ("01", "02", "03"),
}
FISCAL_MONTH_ORDER: tuple[str, ...] = ("04", "05", "06", "07", "08", "09", "10", "11", "12", "01", "02", "03")
VALID_MONTHS = frozenset(FISCAL_MONTH_ORDER)

_FY_SHORT = re.compile(r"^(\d{4})-(\d{2})$")
_FY_LONG = re.compile(r"^(\d{4})-(\d{4})$")


def _clean(values: Iterable[str] | None) -> frozenset[str]:
    if not values:
        return frozenset()
    return frozenset(value.strip() for value in values if value and value.strip())


def months_for_quarters(quarters: Iterable[str]) -> frozenset[str]:
    """Union of the month codes of the given quarters; unknown labels add nothing."""

    months: set[str] = set()
    for quarter in quarters:
        months.update(QUARTER_MONTHS.get(quarter, ()))
    return frozenset(months)


def financial_year_for(value: date) -> str:
    """Financial year label for a date, e.g. 2024-05-10 -> "2024-25"."""

    start = value.year if value.month >= 4 else value.year - 1
    return f"{start}-{(start + 1) % 100:02d}"


def previous_financial_year(fy: str) -> str | None:
    """e.g. "2024-25" -> "2023-24", "2024-2025" -> "2023-2024"."""

    text = str(fy).strip()
    short = _FY_SHORT.match(text)
    if short:
        start = int(short.group(1))
        end = int(short.group(2))
        return f"{start - 1}-{(end - 1) % 100:02d}"
    long = _FY_LONG.match(text)
    if long:
        return f"{int(long.group(1)) - 1}-{int(long.group(2)) - 1}"
    return None


@dataclass(frozen=True)
class PeriodFilter:
    financial_years: frozenset[str] = field(default_factory=frozenset)
    quarters: frozenset[str] = field(default_factory=frozenset)
    months: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_query(
        cls,
        fy: Iterable[str] | None = None,
        quarter: Iterable[str] | None = None,
        month: Iterable[str] | None = None,
    ) -> PeriodFilter:
        """Build a filter from repeated query parameters.

        Values are folded through the reducer in FY, quarter, month order so
        the server applies the same cascade as the dashboard controls.
        """

        state = cls()
        state = reduce_period_filter(state, SetFinancialYears(_clean(fy)))
        state = reduce_period_filter(state, SetQuarters(_clean(quarter)))
        state = reduce_period_filter(state, SetMonths(_clean(month)))
        return state

    @property
    def single_financial_year(self) -> str | None:
        if len(self.financial_years) == 1:
            return next(iter(self.financial_years))
        return None

    def month_numbers(self) -> frozenset[int] | None:
        """Booking months matched by this filter.

        ``None`` means no month restriction. An empty set matches nothing,
        which is how unknown quarter labels and out-of-range months behave.
        """

        if self.single_financial_year is None:
            return None

        selected: frozenset[str] | None = None
        if self.quarters:
            selected = months_for_quarters(self.quarters)
        if self.months:
            picked = frozenset(month for month in self.months if month in VALID_MONTHS)
            selected = picked if selected is None else selected & picked
        if selected is None:
            return None
        return frozenset(int(month) for month in selected)

    def previous_year(self) -> PeriodFilter | None:
        """Same quarters and months one financial year earlier."""

        current = self.single_financial_year
        if current is None:
            return None
        previous = previous_financial_year(current)
        if previous is None:
            return None
        return replace(self, financial_years=frozenset({previous}))

    def cache_key(self) -> tuple[tuple[str, ...], tuple[str, ...], tuple[str, ...]]:
        return (
            tuple(sorted(self.financial_years)),
            tuple(sorted(self.quarters)),
            tuple(sorted(self.months)),
        )

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "fy": sorted(self.financial_years),
            "quarter": sorted(self.quarters),
            "month": sorted(self.months),
        }


@dataclass(frozen=True)
class SetFinancialYears:
    values: frozenset[str]


@dataclass(frozen=True)
class SetQuarters:
    values: frozenset[str]


@dataclass(frozen=True)
class SetMonths:
    values: frozenset[str]


PeriodAction = SetFinancialYears | SetQuarters | SetMonths


def reduce_period_filter(state: PeriodFilter, action: PeriodAction) -> PeriodFilter:
    """Apply one filter change and return the resulting state."""

    if isinstance(action, SetFinancialYears):
        financial_years = frozenset(action.values)
        if len(financial_years) != 1:
            return PeriodFilter(financial_years=financial_years)
        return replace(state, financial_years=financial_years)

    if isinstance(action, SetQuarters):
        if state.single_financial_year is None:
            return state
        quarters = frozenset(action.values)
        months = state.months
        if quarters:
            allowed = months_for_quarters(quarters)
            months = frozenset(month for month in months if month in allowed)
        return replace(state, quarters=quarters, months=months)

    if isinstance(action, SetMonths):
        if state.single_financial_year is None:
            return state
        months = frozenset(action.values)
        if state.quarters:
            allowed = months_for_quarters(state.quarters)
            months = frozenset(month for month in months if month in allowed)
        return replace(state, months=months)

    raise TypeError(f"Unsupported period filter action: {action!r}")


def set_financial_years(state: PeriodFilter, values: Iterable[str]) -> PeriodFilter:
    return reduce_period_filter(state, SetFinancialYears(frozenset(values)))


def set_quarters(state: PeriodFilter, values: Iterable[str]) -> PeriodFilter:
    return reduce_period_filter(state, SetQuarters(frozenset(values)))


def set_months(state: PeriodFilter, values: Iterable[str]) -> PeriodFilter:
    return reduce_period_filter(state, SetMonths(frozenset(values)))
