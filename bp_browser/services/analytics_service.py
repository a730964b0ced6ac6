from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple

import pandas as pd

from bp_browser.core import statistics
from bp_browser.core.dataset import Dataset
from bp_browser.core.filter_engine import apply_filters, utc_now
from bp_browser.core.filter_state import ALL, FilterState
from bp_browser.core.models import TITER

logger = logging.getLogger(__name__)


class AnalyticsService:
    """
    Caller-side facade over the filter and statistics engines.

    Purpose:
    - Threads an explicit FilterState into every call; the service holds no filter state of its own
    - Memoises results keyed by (operation, resolved filters, arguments), since the engines are pure
    - Pins "now" for the session so relative date ranges (and therefore cache keys) stay stable;
      call refresh_clock() to move it forward

    The raw corpus is never mutated. `replace_dataset` swaps it wholesale and drops the cache.
    """

    def __init__(self, dataset: Dataset, *, now: Optional[Any] = None, cache_size: int = 128):
        self.dataset = dataset
        self.cache_size = cache_size
        self.now = pd.Timestamp(now) if now is not None else utc_now()
        self._cache: Dict[Hashable, Any] = {}

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------
    def _memo(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        if key in self._cache:
            return self._cache[key]

        value = compute()
        self._cache[key] = value

        # Prevent unbounded growth
        if len(self._cache) > self.cache_size:
            self._cache.clear()

        return value

    def clear_cache(self) -> None:
        self._cache.clear()

    def refresh_clock(self, now: Optional[Any] = None) -> None:
        self.now = pd.Timestamp(now) if now is not None else utc_now()
        self.clear_cache()

    def replace_dataset(self, dataset: Dataset) -> None:
        logger.info(
            "Replacing dataset",
            extra={"old": self.dataset.name, "new": dataset.name, "n_batches": dataset.n_batches},
        )
        self.dataset = dataset
        self.clear_cache()

    @property
    def cache_len(self) -> int:
        return len(self._cache)

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------
    @staticmethod
    def _key(op: str, state: FilterState, *args: Hashable) -> Tuple[Hashable, ...]:
        return (op, state.cache_key()) + args

    def filtered(self, state: Any) -> Dataset:
        state = FilterState.coerce(state)
        return self._memo(
            self._key("filtered", state),
            lambda: apply_filters(self.dataset, state, now=self.now),
        )

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------
    def kpis(self, state: Any, cqa_name: str = TITER) -> statistics.KpiSummary:
        state = FilterState.coerce(state)
        return self._memo(
            self._key("kpis", state, cqa_name),
            lambda: statistics.kpi_rollup(self.filtered(state), self.dataset, cqa_name),
        )

    def stage_cv(self, state: Any, cqa_name: str = TITER) -> List[statistics.StageCv]:
        state = FilterState.coerce(state)
        return self._memo(
            self._key("stage_cv", state, cqa_name),
            lambda: statistics.titer_cv_by_stage(self.filtered(state), cqa_name),
        )

    def scenario_comparison(self, state: Any, cqa_name: str = TITER) -> statistics.ScenarioComparison:
        """
        Baseline vs optimized under the current filters, with the scenario
        dimension lifted so both sides of the comparison are populated.
        """
        state = dataclasses.replace(FilterState.coerce(state), scenario=ALL)
        return self._memo(
            self._key("scenario_comparison", state, cqa_name),
            lambda: statistics.scenario_comparison(self.filtered(state), cqa_name),
        )

    def distribution(self, state: Any, cqa_name: str = TITER) -> List[statistics.StageDistribution]:
        state = FilterState.coerce(state)
        return self._memo(
            self._key("distribution", state, cqa_name),
            lambda: statistics.titer_distribution_by_stage(self.filtered(state), cqa_name),
        )

    def scatter(
        self,
        state: Any,
        phase: int = 3,
        parameter: str = "do",
        cqa_name: str = TITER,
    ) -> List[statistics.ScatterPoint]:
        state = FilterState.coerce(state)
        return self._memo(
            self._key("scatter", state, phase, parameter, cqa_name),
            lambda: statistics.parameter_outcome_scatter(self.filtered(state), phase, parameter, cqa_name),
        )

    def risk_clusters(self, state: Any) -> statistics.RiskClusters:
        state = FilterState.coerce(state)
        return self._memo(
            self._key("risk_clusters", state),
            lambda: statistics.risk_clusters(self.filtered(state)),
        )

    def phase_profile(self, state: Any, parameter: str = "do") -> List[statistics.PhaseProfilePoint]:
        state = FilterState.coerce(state)
        return self._memo(
            self._key("phase_profile", state, parameter),
            lambda: statistics.phase_parameter_profile(self.filtered(state), parameter),
        )
