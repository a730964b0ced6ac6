from __future__ import annotations

import pandas as pd
import pytest

from bp_browser.core.dataset import Dataset
from bp_browser.core.filter_state import FilterState
from bp_browser.core.models import Batch, Bioreactor, CppPoint, CqaResult, MlOutput
from bp_browser.services import AnalyticsService

NOW = "2026-06-01T00:00:00Z"


def _make_dataset() -> Dataset:
    return Dataset.from_records(
        batches=[
            Batch("B1", "mAb-01", "Lab", "baseline", "2026-05-01T00:00:00Z", "BR-1", "Pass"),
            Batch("B2", "mAb-01", "Pilot", "baseline", "2026-05-10T00:00:00Z", "BR-1", "Fail"),
            Batch("B3", "mAb-02", "Lab", "optimized", "2026-05-15T00:00:00Z", "BR-2", "Pass"),
            Batch("B4", "mAb-02", "Pilot", "optimized", "2025-01-01T00:00:00Z", "BR-2", "Pass"),
        ],
        cqa_results=[
            CqaResult("B1", "Titer", 10.0),
            CqaResult("B2", "Titer", 12.0),
            CqaResult("B3", "Titer", 11.0),
            CqaResult("B4", "Titer", 11.0),
        ],
        ml_outputs=[
            MlOutput("B1", 0.7, "High"),
            MlOutput("B2", 0.1, "Low"),
            MlOutput("B3", 0.2, "Low"),
            MlOutput("B4", 0.5, "Medium"),
        ],
        cpp_points=[
            CppPoint("B1", 3, {"do": 30.0}),
            CppPoint("B3", 3, {"do": 40.0}),
        ],
        bioreactors=[Bioreactor("BR-1", "Running"), Bioreactor("BR-2", "Idle")],
    )


@pytest.fixture
def service() -> AnalyticsService:
    return AnalyticsService(_make_dataset(), now=NOW)


def test_results_are_memoised(service):
    state = FilterState(stages=("Lab",))

    first = service.filtered(state)
    assert service.filtered(state) is first
    assert first.batch_ids == {"B1", "B3"}


def test_equivalent_states_share_a_cache_entry(service):
    a = service.stage_cv(FilterState(products=("mAb-01", "mAb-02"), stages=("Pilot", "Lab")))
    b = service.stage_cv({"products": ["mAb-02", "mAb-01"], "stages": ["Lab", "Pilot", "bogus"]})

    assert b is a


def test_mapping_state_is_accepted(service):
    kpis = service.kpis({"scenario": "baseline", "dateRange": "all"})

    assert kpis.avg_titer == pytest.approx(11.0)
    assert kpis.pass_rate == pytest.approx(50.0)
    assert kpis.active_batches == 2
    assert kpis.high_risk_batches == 1
    assert kpis.variability_reduction == pytest.approx(0.0)


def test_scenario_comparison_ignores_scenario_filter(service):
    result = service.scenario_comparison(FilterState(scenario="optimized"))

    assert result.baseline.n_batches == 2
    assert result.optimized.n_batches == 2
    assert result.baseline.cv > 0
    assert result.optimized.cv == 0.0


def test_pinned_clock_drives_date_filter(service):
    state = FilterState(date_range="3months")
    assert service.filtered(state).batch_ids == {"B1", "B2", "B3"}

    service.refresh_clock("2026-12-01T00:00:00Z")
    assert service.cache_len == 0
    assert service.now == pd.Timestamp("2026-12-01T00:00:00Z")
    assert service.filtered(state).batch_ids == set()


def test_cache_is_cleared_when_full():
    service = AnalyticsService(_make_dataset(), now=NOW, cache_size=2)

    service.filtered(FilterState(stages=("Lab",)))
    service.filtered(FilterState(stages=("Pilot",)))
    assert service.cache_len == 2

    service.filtered(FilterState(scenario="baseline"))
    assert service.cache_len == 0


def test_replace_dataset_drops_cache(service):
    before = service.risk_clusters(FilterState())
    assert (before.stable, before.variable) == (2, 2)

    service.replace_dataset(_make_dataset().subset_for_batches(["B2"]))
    assert service.cache_len == 0

    after = service.risk_clusters(FilterState())
    assert (after.stable, after.variable) == (1, 0)


def test_scatter_and_phase_profile(service):
    points = service.scatter(FilterState())
    by_batch = {p.batch_id: p for p in points}
    assert by_batch["B1"].x == pytest.approx(30.0)
    assert by_batch["B1"].y == pytest.approx(10.0)

    profile = service.phase_profile(FilterState())
    assert [(p.phase, p.count) for p in profile] == [(3, 2)]
    assert profile[0].mean == pytest.approx(35.0)
