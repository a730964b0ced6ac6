import math

import numpy as np
import pytest

from bp_browser.core import numeric
from bp_browser.core.numeric import FiveNumberSummary


def test_mean_of_empty_is_zero():
    assert numeric.mean([]) == 0.0


def test_single_sample_cv_is_zero_for_both_denominators():
    assert numeric.cv_percent([4.2], ddof=numeric.SAMPLE) == 0.0
    assert numeric.cv_percent([4.2], ddof=numeric.POPULATION) == 0.0


def test_sample_and_population_std_differ():
    values = [2.0, 4.0]
    assert numeric.std(values, ddof=numeric.POPULATION) == pytest.approx(1.0)
    assert numeric.std(values, ddof=numeric.SAMPLE) == pytest.approx(math.sqrt(2))


def test_cv_is_zero_when_mean_is_zero():
    assert numeric.cv_percent([-1.0, 1.0]) == 0.0
    assert numeric.cv_percent([]) == 0.0


def test_cv_percent_value():
    # mean 3, population std 1
    assert numeric.cv_percent([2.0, 4.0], ddof=numeric.POPULATION) == pytest.approx(100 / 3)


def test_ratio_percent_guards_zero_denominator():
    assert numeric.ratio_percent(3, 0) == 0.0
    assert numeric.ratio_percent(1, 4) == pytest.approx(25.0)


def test_variability_reduction_zero_baseline():
    assert numeric.variability_reduction(0.0, 12.5) == 0.0
    assert numeric.variability_reduction(0.0, 0.0) == 0.0
    assert numeric.variability_reduction(float("nan"), 3.0) == 0.0


def test_variability_reduction_can_be_negative():
    assert numeric.variability_reduction(10.0, 5.0) == pytest.approx(50.0)
    assert numeric.variability_reduction(10.0, 15.0) == pytest.approx(-50.0)


def test_non_finite_values_are_excluded():
    values = [1.0, float("nan"), 3.0, float("inf"), None, -float("inf")]
    assert list(numeric.finite_values(values)) == [1.0, 3.0]
    assert numeric.mean(values) == pytest.approx(2.0)
    assert numeric.std(values, ddof=numeric.SAMPLE) == pytest.approx(math.sqrt(2))


def test_all_non_finite_behaves_like_empty():
    values = np.array([np.nan, np.inf])
    assert numeric.mean(values) == 0.0
    assert numeric.cv_percent(values) == 0.0
    assert numeric.nearest_rank_summary(values) == FiveNumberSummary()


def test_negative_values_are_kept():
    assert numeric.mean([-2.0, 4.0]) == pytest.approx(1.0)


def test_nearest_rank_summary_four_values():
    summary = numeric.nearest_rank_summary([40, 10, 30, 20])
    assert summary == FiveNumberSummary(min=10, q1=20, median=30, q3=40, max=40)


def test_nearest_rank_summary_five_values():
    summary = numeric.nearest_rank_summary([5, 4, 3, 2, 1])
    assert (summary.min, summary.q1, summary.median, summary.q3, summary.max) == (1, 2, 3, 4, 5)


def test_nearest_rank_summary_single_and_empty():
    assert numeric.nearest_rank_summary([7.5]) == FiveNumberSummary(7.5, 7.5, 7.5, 7.5, 7.5)
    assert numeric.nearest_rank_summary([]) == FiveNumberSummary()
