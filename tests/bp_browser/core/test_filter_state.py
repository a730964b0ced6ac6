from __future__ import annotations

from bp_browser.core.filter_state import FilterState, resolve_date_range, resolve_filter_dimension
from bp_browser.core.models import DateRange, STAGES, Scenario, Stage


def test_resolve_filter_dimension_unrestricted_inputs():
    assert resolve_filter_dimension(None) is None
    assert resolve_filter_dimension([]) is None
    assert resolve_filter_dimension("") is None
    assert resolve_filter_dimension("all") is None
    assert resolve_filter_dimension(["Lab", "all"], STAGES) is None


def test_resolve_filter_dimension_selection():
    assert resolve_filter_dimension(["mAb-01", "mAb-02"]) == frozenset({"mAb-01", "mAb-02"})
    assert resolve_filter_dimension("baseline") == frozenset({"baseline"})
    assert resolve_filter_dimension([Stage.LAB], STAGES) == frozenset({"Lab"})
    assert resolve_filter_dimension(Scenario.OPTIMIZED) == frozenset({"optimized"})


def test_resolve_filter_dimension_drops_unknown_members():
    assert resolve_filter_dimension(["Lab", "Bogus"], STAGES) == frozenset({"Lab"})


def test_resolve_filter_dimension_fails_open_when_nothing_known():
    assert resolve_filter_dimension(["Bogus"], STAGES) is None
    assert resolve_filter_dimension(42, STAGES) is None


def test_resolve_date_range():
    assert resolve_date_range("3months") is DateRange.THREE_MONTHS
    assert resolve_date_range(DateRange.SIX_MONTHS) is DateRange.SIX_MONTHS
    assert resolve_date_range("forever") is DateRange.ALL
    assert resolve_date_range(None) is DateRange.ALL


def test_default_filter_state_is_unrestricted():
    assert FilterState().is_unrestricted()
    assert not FilterState(scenario="baseline").is_unrestricted()


def test_malformed_values_resolve_to_unrestricted():
    state = FilterState(stages=("Bogus",), date_range="yesterday", scenario="both")
    assert state.stage_filter is None
    assert state.scenario_filter is None
    assert state.date_filter is DateRange.ALL
    assert state.is_unrestricted()


def test_filter_state_to_from_dict_roundtrip():
    st = FilterState(
        products=("mAb-01",),
        stages=("Lab", "Pilot"),
        date_range="6months",
        scenario="optimized",
    )

    raw = st.to_dict()
    rebuilt = FilterState.from_dict(raw)

    assert rebuilt == st


def test_from_dict_accepts_camel_case_and_missing_fields():
    st = FilterState.from_dict({"dateRange": "3months", "products": "mAb-02"})
    assert st.date_range == "3months"
    assert st.products == ("mAb-02",)
    assert st.stages == ()
    assert st.scenario == "all"

    assert FilterState.from_dict(None) == FilterState()


def test_cache_key_is_order_insensitive():
    a = FilterState(products=("b", "a"), stages=("Pilot", "Lab"))
    b = FilterState(products=("a", "b"), stages=("Lab", "Pilot", "Bogus"))
    assert a.cache_key() == b.cache_key()


def test_coerce():
    st = FilterState(scenario="baseline")
    assert FilterState.coerce(st) is st
    assert FilterState.coerce({"scenario": "baseline"}) == st
    assert FilterState.coerce(None) == FilterState()
    assert FilterState.coerce("garbage") == FilterState()


def test_to_dict_keeps_bare_strings_whole():
    state = FilterState(products="mAb-01", stages="Lab")

    assert state.to_dict()["products"] == ["mAb-01"]
    assert state.to_dict()["stages"] == ["Lab"]
    assert FilterState.from_dict(state.to_dict()).cache_key() == state.cache_key()
