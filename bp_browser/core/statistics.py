from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import pandas as pd

from bp_browser.core import numeric
from bp_browser.core.dataset import Dataset
from bp_browser.core.models import RUNNING, STAGES, TITER, ResultStatus, RiskLevel, Scenario
from bp_browser.core.numeric import FiveNumberSummary

logger = logging.getLogger(__name__)

RISK_THRESHOLD = 0.3


# -------------------------------------------------------------------------
# Result types
# -------------------------------------------------------------------------
@dataclass(frozen=True)
class StageCv:
    stage: str
    mean: float = 0.0
    cv: float = 0.0
    count: int = 0


@dataclass(frozen=True)
class ScenarioStats:
    scenario: str
    cv: float = 0.0
    pass_rate: float = 0.0
    n_batches: int = 0
    n_samples: int = 0


@dataclass(frozen=True)
class ScenarioComparison:
    baseline: ScenarioStats
    optimized: ScenarioStats
    variability_reduction: float = 0.0

    def rows(self) -> List[ScenarioStats]:
        return [self.baseline, self.optimized]


@dataclass(frozen=True)
class StageDistribution:
    stage: str
    summary: FiveNumberSummary
    count: int = 0


@dataclass(frozen=True)
class ScatterPoint:
    batch_id: str
    x: float
    y: float
    stage: Optional[str] = None
    scenario: Optional[str] = None


@dataclass(frozen=True)
class RiskClusters:
    stable: int = 0
    variable: int = 0
    threshold: float = RISK_THRESHOLD

    @property
    def total(self) -> int:
        return self.stable + self.variable


@dataclass(frozen=True)
class KpiSummary:
    avg_titer: float = 0.0
    pass_rate: float = 0.0
    titer_cv: float = 0.0
    baseline_cv: float = 0.0
    variability_reduction: float = 0.0
    active_batches: int = 0
    high_risk_batches: int = 0


@dataclass(frozen=True)
class PhaseProfilePoint:
    phase: int
    mean: float = 0.0
    count: int = 0


# -------------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------------
def _cqa_values(dataset: Dataset, cqa_name: str = TITER) -> pd.DataFrame:
    """
    CQA rows of one attribute joined to their batch (stage, scenario).

    The inner join drops orphans; duplicate results for the same batch stay
    as independent samples.
    """
    cqa = dataset.cqa_results
    cqa = cqa[cqa["cqa_name"].astype(str) == cqa_name]
    batches = dataset.batches[["id", "stage", "scenario"]]
    return cqa[["batch_id", "value"]].merge(batches, left_on="batch_id", right_on="id", how="inner")


def _pass_rate(batches: pd.DataFrame) -> float:
    passed = int((batches["result_status"].astype(str) == ResultStatus.PASS.value).sum())
    return numeric.ratio_percent(passed, len(batches))


# -------------------------------------------------------------------------
# Derivations
# -------------------------------------------------------------------------
def titer_cv_by_stage(dataset: Dataset, cqa_name: str = TITER) -> List[StageCv]:
    """
    Mean and CV% (population stddev) of titer per stage.

    Always returns one row per stage in Stage order; stages without samples
    report zeros.
    """
    values = _cqa_values(dataset, cqa_name)
    rows = []
    for stage in STAGES:
        samples = numeric.finite_values(values.loc[values["stage"] == stage, "value"].to_numpy())
        rows.append(
            StageCv(
                stage=stage,
                mean=numeric.mean(samples),
                cv=numeric.cv_percent(samples, ddof=numeric.POPULATION),
                count=int(samples.size),
            )
        )
    return rows


def scenario_stats(dataset: Dataset, scenario: str, cqa_name: str = TITER) -> ScenarioStats:
    """CV% (sample stddev) of titer and pass rate for one scenario."""
    batches = dataset.batches[dataset.batches["scenario"].astype(str) == scenario]
    values = _cqa_values(dataset, cqa_name)
    samples = numeric.finite_values(values.loc[values["scenario"] == scenario, "value"].to_numpy())
    return ScenarioStats(
        scenario=scenario,
        cv=numeric.cv_percent(samples, ddof=numeric.SAMPLE),
        pass_rate=_pass_rate(batches),
        n_batches=len(batches),
        n_samples=int(samples.size),
    )


def scenario_comparison(dataset: Dataset, cqa_name: str = TITER) -> ScenarioComparison:
    """
    Baseline vs optimized: CV%, pass rate, and the optimized scenario's
    variability reduction relative to baseline.
    """
    baseline = scenario_stats(dataset, Scenario.BASELINE.value, cqa_name)
    optimized = scenario_stats(dataset, Scenario.OPTIMIZED.value, cqa_name)
    return ScenarioComparison(
        baseline=baseline,
        optimized=optimized,
        variability_reduction=numeric.variability_reduction(baseline.cv, optimized.cv),
    )


def variability_reduction(baseline_cv: float, candidate_cv: float) -> float:
    return numeric.variability_reduction(baseline_cv, candidate_cv)


def titer_distribution_by_stage(dataset: Dataset, cqa_name: str = TITER) -> List[StageDistribution]:
    """Nearest-rank five-number summary of titer per stage, one row per stage."""
    values = _cqa_values(dataset, cqa_name)
    rows = []
    for stage in STAGES:
        samples = numeric.finite_values(values.loc[values["stage"] == stage, "value"].to_numpy())
        rows.append(
            StageDistribution(
                stage=stage,
                summary=numeric.nearest_rank_summary(samples),
                count=int(samples.size),
            )
        )
    return rows


def parameter_outcome_scatter(
    dataset: Dataset,
    phase: int = 3,
    parameter: str = "do",
    cqa_name: str = TITER,
) -> List[ScatterPoint]:
    """
    One point per batch: x is the mean of `parameter` over all CPP points of
    `phase`, y is the batch's first finite `cqa_name` result.

    Batches with no matching CPP points or no result still appear, with 0
    on the missing axis.
    """
    batches = dataset.batches
    if batches.empty:
        return []

    cpp = dataset.cpp_points
    if parameter in cpp.columns:
        at_phase = cpp[cpp["phase"] == phase]
        readings = at_phase[parameter].replace([np.inf, -np.inf], np.nan)
        x_by_batch = readings.groupby(at_phase["batch_id"]).mean()
    else:
        logger.debug("CPP parameter '%s' not present; scatter x defaults to 0", parameter)
        x_by_batch = pd.Series(dtype=float)

    cqa = dataset.cqa_results
    cqa = cqa[(cqa["cqa_name"].astype(str) == cqa_name) & np.isfinite(cqa["value"].astype(float))]
    y_by_batch = cqa.drop_duplicates("batch_id", keep="first").set_index("batch_id")["value"]

    x = batches["id"].map(x_by_batch).fillna(0.0)
    y = batches["id"].map(y_by_batch).fillna(0.0)

    return [
        ScatterPoint(batch_id=bid, x=float(xv), y=float(yv), stage=stage, scenario=scenario)
        for bid, xv, yv, stage, scenario in zip(
            batches["id"], x, y, batches["stage"], batches["scenario"]
        )
    ]


def risk_clusters(dataset: Dataset, threshold: float = RISK_THRESHOLD) -> RiskClusters:
    """
    Fixed-threshold split of risk scores: score < threshold is "stable",
    score >= threshold is "variable". Non-finite scores land in neither bucket.
    """
    scores = numeric.finite_values(dataset.linked("ml_outputs")["risk_score"].to_numpy())
    stable = int((scores < threshold).sum())
    return RiskClusters(stable=stable, variable=int(scores.size) - stable, threshold=threshold)


def phase_parameter_profile(dataset: Dataset, parameter: str = "do") -> List[PhaseProfilePoint]:
    """Mean of a CPP parameter per phase across all linked CPP points, in phase order."""
    cpp = dataset.linked("cpp_points")
    if parameter not in cpp.columns or cpp.empty:
        return []

    rows = []
    for phase, group in cpp.groupby("phase", sort=True):
        samples = numeric.finite_values(group[parameter].to_numpy())
        rows.append(PhaseProfilePoint(phase=int(phase), mean=numeric.mean(samples), count=int(samples.size)))
    return rows


def kpi_rollup(dataset: Dataset, reference: Dataset, cqa_name: str = TITER) -> KpiSummary:
    """
    Headline KPIs for the filtered `dataset`.

    The baseline CV behind variability_reduction always comes from the
    baseline batches of the unfiltered `reference` corpus, so it does not
    move with the active filters.
    """
    samples = numeric.finite_values(_cqa_values(dataset, cqa_name)["value"].to_numpy())
    titer_cv = numeric.cv_percent(samples, ddof=numeric.SAMPLE)

    baseline_cv = scenario_stats(reference, Scenario.BASELINE.value, cqa_name).cv

    status = reference.bioreactor_status()
    batch_status = dataset.batches["bioreactor_id"].map(status)
    active = int((batch_status == RUNNING).sum())

    ml = dataset.linked("ml_outputs")
    high_risk = int((ml["risk_level"].astype(str) == RiskLevel.HIGH.value).sum())

    return KpiSummary(
        avg_titer=numeric.mean(samples),
        pass_rate=_pass_rate(dataset.batches),
        titer_cv=titer_cv,
        baseline_cv=baseline_cv,
        variability_reduction=numeric.variability_reduction(baseline_cv, titer_cv),
        active_batches=active,
        high_risk_batches=high_risk,
    )


__all__ = [
    "KpiSummary",
    "PhaseProfilePoint",
    "RISK_THRESHOLD",
    "RiskClusters",
    "ScatterPoint",
    "ScenarioComparison",
    "ScenarioStats",
    "StageCv",
    "StageDistribution",
    "kpi_rollup",
    "parameter_outcome_scatter",
    "phase_parameter_profile",
    "risk_clusters",
    "scenario_comparison",
    "scenario_stats",
    "titer_cv_by_stage",
    "titer_distribution_by_stage",
    "variability_reduction",
]
