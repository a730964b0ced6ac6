from __future__ import annotations

import pandas as pd
import pytest

from bp_browser.core.dataset import Dataset
from bp_browser.core.models import Batch, CppPoint, MlOutput
from bp_browser.ml import risk_model


def _cpp_frame(points) -> pd.DataFrame:
    return Dataset.from_records(cpp_points=points).cpp_points


def _point(phase, do=50.0, temp=37.0, feed_rate=5.0, bid="B1"):
    return CppPoint(bid, phase, {"do": do, "temp": temp, "feed_rate": feed_rate})


def _batch(stage="Lab", scenario="baseline", product="mAb-03"):
    return Batch("B1", product, stage, scenario, "2026-05-01T00:00:00Z", "BR-1", "Pass")


def test_extract_features_counts_two_hour_samples():
    cpp = _cpp_frame(
        [
            _point(1),
            _point(2, temp=37.5, feed_rate=0.0),
            _point(2, temp=37.4, feed_rate=0.0),
            _point(2, temp=36.9, feed_rate=5.0),
            _point(3, do=25.0),
            _point(3, do=28.0),
            _point(3, do=35.0),
        ]
    )
    features = risk_model.extract_cpp_features("B1", cpp)

    assert features.hours_low_do_phase3 == 4.0
    assert features.hours_high_temp_phase2 == 4.0
    assert features.late_feed_start_hours == 4.0


def test_extract_features_ignores_other_batches():
    cpp = _cpp_frame([_point(3, do=10.0, bid="B2"), _point(3, do=50.0)])
    assert risk_model.extract_cpp_features("B1", cpp) == risk_model.CppFeatures()


def test_feed_on_time_is_not_late():
    cpp = _cpp_frame([_point(2, feed_rate=5.0), _point(2, feed_rate=0.0)])
    assert risk_model.extract_cpp_features("B1", cpp).late_feed_start_hours == 0.0


def test_risk_level_boundaries():
    assert risk_model.risk_level_for(0.29) == "Low"
    assert risk_model.risk_level_for(0.3) == "Medium"
    assert risk_model.risk_level_for(0.59) == "Medium"
    assert risk_model.risk_level_for(0.6) == "High"


def test_risk_score_weights_and_clamp():
    features = risk_model.CppFeatures(hours_low_do_phase3=6, hours_high_temp_phase2=0, late_feed_start_hours=0)
    assert risk_model.risk_score(features) == pytest.approx(0.4)

    worst = risk_model.CppFeatures(hours_low_do_phase3=60, hours_high_temp_phase2=40, late_feed_start_hours=40)
    assert risk_model.risk_score(worst) == pytest.approx(1.0)


def test_compute_ml_output_for_clean_batch():
    cpp = _cpp_frame([_point(1), _point(2), _point(3)])
    out = risk_model.compute_ml_output(_batch("Pilot", "optimized", "mAb-01"), cpp)

    assert out.risk_score == 0.0
    assert out.risk_level == "Low"
    assert out.predicted_titer == pytest.approx(4.5 + 0.2)
    assert out.predicted_glycan_score == pytest.approx(88.0)
    assert [d.impact for d in out.top_drivers] == ["Positive", "Positive"]


def test_compute_ml_output_flags_low_do():
    cpp = _cpp_frame([_point(3, do=20.0) for _ in range(3)])
    out = risk_model.compute_ml_output(_batch(), cpp)

    assert out.risk_score == pytest.approx(0.4)
    assert out.risk_level == "Medium"
    assert out.predicted_titer == pytest.approx(4.2 - 0.3 * 6)
    assert out.top_drivers[0].parameter == "DO below 30% in Phase 3"
    assert out.top_drivers[0].contribution == 40


def test_recommended_profile_adjusts_setpoints():
    cpp = _cpp_frame([_point(3, do=20.0) for _ in range(2)])
    profile = risk_model.generate_recommended_profile(_batch(), cpp)

    assert profile.target_do == 38.0
    assert profile.target_temp == 36.8
    assert profile.phase == 3
    assert "DO" in profile.rationale


def test_recompute_ml_outputs_replaces_tables_without_mutating():
    ds = Dataset.from_records(
        batches=[_batch()],
        ml_outputs=[MlOutput("B1", 0.99, "High")],
        cpp_points=[_point(1), _point(3)],
    )

    fresh = risk_model.recompute_ml_outputs(ds)

    assert list(fresh.ml_outputs["risk_level"]) == ["Low"]
    assert list(fresh.recommendations["batch_id"]) == ["B1"]
    assert list(ds.ml_outputs["risk_level"]) == ["High"]
    assert ds.recommendations.empty
