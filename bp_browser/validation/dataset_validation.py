from __future__ import annotations

import logging

import numpy as np

from bp_browser.core.dataset import DEPENDENT_TABLES, Dataset
from bp_browser.core.models import SCENARIOS, STAGES, ResultStatus
from bp_browser.validation.errors import ERROR, WARNING, ValidationError, ValidationIssue

logger = logging.getLogger(__name__)

_MISSING_IDS = {"", "nan", "None", "NaN"}


def collect_issues(ds: Dataset) -> list[ValidationIssue]:
    """
    Inspect a corpus without changing it.

    Errors are structural problems (batches without an id). Everything the
    engine tolerates by policy (orphans, unknown labels, bad timestamps,
    non-finite values) is reported as a warning.
    """
    issues: list[ValidationIssue] = []
    batches = ds.batches

    missing_ids = int(batches["id"].isin(_MISSING_IDS).sum())
    if missing_ids:
        issues.append(ValidationIssue("BATCH_ID_MISSING", f"{missing_ids} batch(es) have no id.", ERROR))

    unknown_stages = sorted(set(batches["stage"].astype(str)) - set(STAGES))
    if unknown_stages:
        issues.append(
            ValidationIssue("BATCH_STAGE_UNKNOWN", f"Unknown stage labels: {unknown_stages}.", WARNING)
        )

    unknown_scenarios = sorted(set(batches["scenario"].astype(str)) - set(SCENARIOS))
    if unknown_scenarios:
        issues.append(
            ValidationIssue("BATCH_SCENARIO_UNKNOWN", f"Unknown scenarios: {unknown_scenarios}.", WARNING)
        )

    unknown_status = sorted(set(batches["result_status"].astype(str)) - {s.value for s in ResultStatus})
    if unknown_status:
        issues.append(
            ValidationIssue("BATCH_STATUS_UNKNOWN", f"Unknown result statuses: {unknown_status}.", WARNING)
        )

    bad_times = int(batches["start_time"].isna().sum())
    if bad_times:
        issues.append(
            ValidationIssue(
                "BATCH_START_TIME",
                f"{bad_times} batch(es) have an unreadable start time; only the 'all' date range keeps them.",
                WARNING,
            )
        )

    known_reactors = set(ds.bioreactors["id"])
    dangling = sorted(set(batches["bioreactor_id"]) - known_reactors)
    if dangling:
        issues.append(
            ValidationIssue("BATCH_BIOREACTOR_UNKNOWN", f"Batches reference unknown bioreactors: {dangling}.", WARNING)
        )

    batch_ids = ds.batch_ids
    for table in DEPENDENT_TABLES:
        df = ds.table(table)
        orphans = int((~df["batch_id"].isin(batch_ids)).sum())
        if orphans:
            issues.append(
                ValidationIssue(
                    f"ORPHAN_{table.upper()}",
                    f"{orphans} row(s) in '{table}' reference a missing batch and are excluded from aggregates.",
                    WARNING,
                )
            )

    values = ds.cqa_results["value"].to_numpy(dtype=float)
    non_finite = int((~np.isfinite(values)).sum())
    if non_finite:
        issues.append(
            ValidationIssue(
                "CQA_NON_FINITE",
                f"{non_finite} CQA value(s) are not finite numbers and are skipped by statistics.",
                WARNING,
            )
        )

    return issues


def validate_dataset(ds: Dataset) -> list[ValidationIssue]:
    """
    Raise on errors, log and return warnings.

    :raises ValidationError: if any error-severity issue is found
    """
    issues = collect_issues(ds)
    errors = [i for i in issues if i.severity == ERROR]
    if errors:
        raise ValidationError(errors)

    for issue in issues:
        logger.warning(issue.message, extra={"dataset": ds.name, "code": issue.code})
    return issues
