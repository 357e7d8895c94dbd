from __future__ import annotations

import itertools
from datetime import date

import pytest

from solar_crm.services.period_filter import (
    QUARTER_MONTHS,
    PeriodFilter,
    SetFinancialYears,
    SetMonths,
    SetQuarters,
    financial_year_for,
    months_for_quarters,
    previous_financial_year,
    reduce_period_filter,
    set_financial_years,
    set_months,
    set_quarters,
)


def _single_year(fy: str = "2024-25") -> PeriodFilter:
    return set_financial_years(PeriodFilter(), [fy])


def test_adding_second_year_clears_quarters_and_months() -> None:
    state = _single_year("2024-25")
    state = set_quarters(state, ["Q1"])
    state = set_months(state, ["05"])
    assert state.quarters == {"Q1"}
    assert state.months == {"05"}

    state = set_financial_years(state, ["2024-25", "2023-24"])

    assert state.financial_years == {"2024-25", "2023-24"}
    assert state.quarters == frozenset()
    assert state.months == frozenset()


def test_clearing_years_clears_quarters_and_months() -> None:
    state = set_quarters(_single_year(), ["Q2"])

    state = set_financial_years(state, [])

    assert state == PeriodFilter()


def test_selecting_quarter_drops_months_outside_it() -> None:
    state = set_months(_single_year(), ["07"])
    assert state.months == {"07"}

    state = set_quarters(state, ["Q1"])

    assert state.quarters == {"Q1"}
    assert state.months == frozenset()


def test_selecting_quarter_keeps_months_inside_it() -> None:
    state = set_months(_single_year(), ["04", "07", "02"])

    state = set_quarters(state, ["Q1", "Q4"])

    assert state.months == {"04", "02"}
    for month in state.months:
        assert any(month in QUARTER_MONTHS[quarter] for quarter in state.quarters)


def test_empty_quarter_selection_keeps_months() -> None:
    state = set_months(_single_year(), ["07", "11"])

    state = set_quarters(state, [])

    assert state.quarters == frozenset()
    assert state.months == {"07", "11"}


def test_months_outside_selected_quarters_are_ignored() -> None:
    state = set_quarters(_single_year(), ["Q3"])

    state = set_months(state, ["10", "04"])

    assert state.months == {"10"}


@pytest.mark.parametrize("years", [[], ["2024-25", "2023-24"]])
def test_quarter_and_month_changes_are_noops_without_single_year(years: list[str]) -> None:
    state = set_financial_years(PeriodFilter(), years)

    assert set_quarters(state, ["Q1"]) == state
    assert set_months(state, ["04"]) == state


def test_reducer_rejects_unknown_action() -> None:
    with pytest.raises(TypeError):
        reduce_period_filter(PeriodFilter(), "Q1")  # type: ignore[arg-type]


def test_reducer_actions_match_mutators() -> None:
    state = reduce_period_filter(PeriodFilter(), SetFinancialYears(frozenset({"2024-25"})))
    state = reduce_period_filter(state, SetQuarters(frozenset({"Q2"})))
    state = reduce_period_filter(state, SetMonths(frozenset({"08"})))

    assert state == set_months(set_quarters(_single_year(), ["Q2"]), ["08"])


def test_from_query_applies_cascade() -> None:
    period = PeriodFilter.from_query(["2024-25", "2023-24"], ["Q1"], ["04"])
    assert period.financial_years == {"2024-25", "2023-24"}
    assert period.quarters == frozenset()
    assert period.months == frozenset()

    period = PeriodFilter.from_query(["2024-25"], ["Q1"], ["04", "09", " "])
    assert period.quarters == {"Q1"}
    assert period.months == {"04"}

    assert PeriodFilter.from_query(None, None, None) == PeriodFilter()


def test_month_numbers() -> None:
    assert PeriodFilter().month_numbers() is None
    assert _single_year().month_numbers() is None
    assert set_quarters(_single_year(), ["Q4"]).month_numbers() == {1, 2, 3}
    assert set_months(_single_year(), ["05", "06"]).month_numbers() == {5, 6}

    both = set_months(set_quarters(_single_year(), ["Q1", "Q2"]), ["06", "07"])
    assert both.month_numbers() == {6, 7}


def test_unknown_quarter_and_month_match_nothing() -> None:
    assert set_quarters(_single_year(), ["Q9"]).month_numbers() == frozenset()
    assert set_months(_single_year(), ["13"]).month_numbers() == frozenset()


def test_previous_year_keeps_sub_year_selection() -> None:
    state = set_months(set_quarters(_single_year("2024-25"), ["Q1"]), ["05"])

    previous = state.previous_year()

    assert previous is not None
    assert previous.financial_years == {"2023-24"}
    assert previous.quarters == {"Q1"}
    assert previous.months == {"05"}
    assert PeriodFilter().previous_year() is None
    assert set_financial_years(PeriodFilter(), ["2024-25", "2023-24"]).previous_year() is None


def test_financial_year_helpers() -> None:
    assert financial_year_for(date(2024, 5, 10)) == "2024-25"
    assert financial_year_for(date(2025, 3, 31)) == "2024-25"
    assert financial_year_for(date(2025, 4, 1)) == "2025-26"
    assert financial_year_for(date(1999, 12, 1)) == "1999-00"

    assert previous_financial_year("2024-25") == "2023-24"
    assert previous_financial_year("2000-01") == "1999-00"
    assert previous_financial_year("2024-2025") == "2023-2024"
    assert previous_financial_year("FY24") is None


def test_to_dict_is_sorted() -> None:
    state = set_months(_single_year(), ["06", "04"])

    assert state.to_dict() == {"fy": ["2024-25"], "quarter": [], "month": ["04", "06"]}


FY_CHOICES = [(), ("2024-25",), ("2024-25", "2023-24")]
QUARTER_CHOICES = [(), ("Q1",), ("Q1", "Q4"), ("Q9",)]
MONTH_CHOICES = [(), ("07",), ("04", "02")]
ACTIONS = [
    *(SetFinancialYears(frozenset(values)) for values in FY_CHOICES),
    *(SetQuarters(frozenset(values)) for values in QUARTER_CHOICES),
    *(SetMonths(frozenset(values)) for values in MONTH_CHOICES),
]


@pytest.mark.parametrize("steps", list(itertools.product(ACTIONS, repeat=3)))
def test_cascade_holds_after_every_step(steps) -> None:
    state = PeriodFilter()
    for action in steps:
        state = reduce_period_filter(state, action)
        if len(state.financial_years) != 1:
            assert state.quarters == frozenset()
            assert state.months == frozenset()
        if state.quarters:
            assert state.months <= months_for_quarters(state.quarters)
