from __future__ import annotations

import pandas as pd
import pytest

from bp_browser.core.exceptions import DatasetSchemaError
from bp_browser.data.demo import generate_demo_dataset
from bp_browser.data.io import read_dataset_dir, write_dataset_dir

NOW = pd.Timestamp("2026-06-01T00:00:00Z")


def test_write_then_read_preserves_tables(tmp_path):
    ds = generate_demo_dataset(now=NOW)
    written = write_dataset_dir(ds, tmp_path / "corpus")

    assert set(written) == {"batches", "cqa_results", "ml_outputs", "cpp_points", "bioreactors", "recommendations"}

    loaded = read_dataset_dir(tmp_path / "corpus")

    assert loaded.name == "corpus"
    assert loaded.batch_ids == ds.batch_ids
    assert len(loaded.cpp_points) == len(ds.cpp_points)
    assert loaded.parameter_names() == ds.parameter_names()
    assert loaded.cqa_results["value"].to_numpy() == pytest.approx(ds.cqa_results["value"].to_numpy())
    assert loaded.ml_outputs.loc[0, "top_drivers"] == ds.ml_outputs.loc[0, "top_drivers"]


def test_missing_batches_table_raises(tmp_path):
    with pytest.raises(DatasetSchemaError):
        read_dataset_dir(tmp_path)


def test_optional_tables_may_be_absent(tmp_path):
    pd.DataFrame(
        {
            "id": ["B1"],
            "product": ["mAb-01"],
            "stage": ["Lab"],
            "scenario": ["baseline"],
            "start_time": ["2026-05-01T00:00:00Z"],
            "bioreactor_id": ["BR-1"],
            "result_status": ["Pass"],
        }
    ).to_csv(tmp_path / "batches.csv", index=False)

    ds = read_dataset_dir(tmp_path, name="minimal")

    assert ds.name == "minimal"
    assert ds.batch_ids == {"B1"}
    assert ds.cqa_results.empty


def test_table_missing_columns_raises(tmp_path):
    pd.DataFrame({"id": ["B1"]}).to_csv(tmp_path / "batches.csv", index=False)
    with pytest.raises(DatasetSchemaError):
        read_dataset_dir(tmp_path)
