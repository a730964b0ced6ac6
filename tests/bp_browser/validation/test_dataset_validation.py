from __future__ import annotations

import logging

import pytest

from bp_browser.core.dataset import Dataset
from bp_browser.core.models import Batch, Bioreactor, CqaResult, MlOutput
from bp_browser.validation import ValidationError, collect_issues, validate_dataset
from bp_browser.validation.errors import ERROR, WARNING

START = "2026-05-01T00:00:00Z"


def _clean_dataset() -> Dataset:
    return Dataset.from_records(
        batches=[
            Batch("B1", "mAb-01", "Lab", "baseline", START, "BR-1", "Pass"),
            Batch("B2", "mAb-01", "Pilot", "optimized", START, "BR-1", "At Risk"),
        ],
        cqa_results=[CqaResult("B1", "Titer", 4.0), CqaResult("B2", "Titer", 4.5)],
        ml_outputs=[MlOutput("B1", 0.1, "Low")],
        bioreactors=[Bioreactor("BR-1", "Running")],
    )


def _codes(issues):
    return {i.code for i in issues}


def test_clean_dataset_has_no_issues():
    assert collect_issues(_clean_dataset()) == []
    assert validate_dataset(_clean_dataset()) == []


def test_missing_batch_id_is_an_error():
    ds = Dataset.from_records(
        batches=[Batch("", "mAb-01", "Lab", "baseline", START, "BR-1", "Pass")],
        bioreactors=[Bioreactor("BR-1", "Running")],
    )

    issues = collect_issues(ds)
    assert [i.severity for i in issues if i.code == "BATCH_ID_MISSING"] == [ERROR]

    with pytest.raises(ValidationError) as exc:
        validate_dataset(ds)
    assert "BATCH_ID_MISSING" in str(exc.value)
    assert exc.value.codes == ["BATCH_ID_MISSING"]


def test_tolerated_problems_are_warnings():
    ds = Dataset.from_records(
        batches=[
            Batch("B1", "mAb-01", "Commercial", "baseline", START, "BR-1", "Pass"),
            Batch("B2", "mAb-01", "Lab", "best-case", "not-a-date", "BR-9", "Unknown"),
        ],
        cqa_results=[
            CqaResult("B1", "Titer", float("nan")),
            CqaResult("B404", "Titer", 3.0),
        ],
        ml_outputs=[MlOutput("B404", 0.9, "High")],
        bioreactors=[Bioreactor("BR-1", "Running")],
    )

    issues = collect_issues(ds)

    assert _codes(issues) == {
        "BATCH_STAGE_UNKNOWN",
        "BATCH_SCENARIO_UNKNOWN",
        "BATCH_STATUS_UNKNOWN",
        "BATCH_START_TIME",
        "BATCH_BIOREACTOR_UNKNOWN",
        "ORPHAN_CQA_RESULTS",
        "ORPHAN_ML_OUTPUTS",
        "CQA_NON_FINITE",
    }
    assert all(i.severity == WARNING for i in issues)


def test_validate_dataset_logs_warnings(caplog):
    ds = Dataset.from_records(
        batches=[Batch("B1", "mAb-01", "Lab", "baseline", START, "BR-1", "Pass")],
        cqa_results=[CqaResult("B2", "Titer", 3.0)],
        bioreactors=[Bioreactor("BR-1", "Running")],
    )

    with caplog.at_level(logging.WARNING, logger="bp_browser.validation.dataset_validation"):
        issues = validate_dataset(ds)

    assert _codes(issues) == {"ORPHAN_CQA_RESULTS"}
    assert any("reference a missing batch" in r.getMessage() for r in caplog.records)
