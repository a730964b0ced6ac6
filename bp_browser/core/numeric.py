"""
Descriptive statistics building blocks.

Every function here is total: empty input and zero denominators give 0.0,
never NaN or infinity. Non-finite samples (NaN, +/-inf) are dropped before
anything is computed; negative finite values are ordinary samples.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable

import numpy as np

# ddof values, named after the call sites that use them
SAMPLE = 1
POPULATION = 0


def finite_values(values: Any) -> np.ndarray:
    """Float array of the finite entries of `values` (None counts as missing)."""
    if isinstance(values, np.ndarray):
        arr = values.astype(float, copy=False).ravel()
    else:
        arr = np.asarray([np.nan if v is None else v for v in values], dtype=float)
    return arr[np.isfinite(arr)]


def mean(values: Iterable[float]) -> float:
    arr = finite_values(values)
    if arr.size == 0:
        return 0.0
    return float(arr.mean())


def std(values: Iterable[float], ddof: int = SAMPLE) -> float:
    """
    Standard deviation with `ddof` delta degrees of freedom.

    Groups too small for the requested denominator (n <= ddof) report 0.0.
    """
    arr = finite_values(values)
    if arr.size == 0 or arr.size <= ddof:
        return 0.0
    return float(arr.std(ddof=ddof))


def cv_percent(values: Iterable[float], ddof: int = SAMPLE) -> float:
    """Coefficient of variation, stddev / mean * 100; 0.0 when the mean is 0."""
    arr = finite_values(values)
    m = mean(arr)
    if m == 0:
        return 0.0
    return std(arr, ddof=ddof) / m * 100


def ratio_percent(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return 0.0
    return numerator / denominator * 100


def variability_reduction(baseline_cv: float, candidate_cv: float) -> float:
    """
    Relative CV reduction of `candidate_cv` against `baseline_cv`, in percent.

    Negative when the candidate is more variable than the baseline. 0.0 when
    the baseline CV is 0 (or not a finite number).
    """
    if not math.isfinite(baseline_cv) or baseline_cv == 0:
        return 0.0
    return (baseline_cv - candidate_cv) / baseline_cv * 100


@dataclass(frozen=True)
class FiveNumberSummary:
    min: float = 0.0
    q1: float = 0.0
    median: float = 0.0
    q3: float = 0.0
    max: float = 0.0


def nearest_rank_summary(values: Iterable[float]) -> FiveNumberSummary:
    """
    Five-number summary using nearest-rank quartiles, no interpolation.

    With the values sorted ascending, q1/median/q3 are the elements at
    floor(n * 0.25), floor(n * 0.5) and floor(n * 0.75).
    """
    arr = np.sort(finite_values(values))
    n = arr.size
    if n == 0:
        return FiveNumberSummary()

    def at(fraction: float) -> float:
        return float(arr[int(math.floor(n * fraction))])

    return FiveNumberSummary(
        min=float(arr[0]),
        q1=at(0.25),
        median=at(0.5),
        q3=at(0.75),
        max=float(arr[-1]),
    )
