from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional

import pandas as pd

from bp_browser.core.dataset import TABLES, Dataset
from bp_browser.core.exceptions import DatasetSchemaError

logger = logging.getLogger(__name__)


def table_path(root: Path, table: str) -> Path:
    return root / f"{table}.csv"


def write_dataset_dir(dataset: Dataset, root: Path) -> Dict[str, Path]:
    """
    Write every table of `dataset` as `<root>/<table>.csv`.

    ML output drivers are stored as a JSON string column.
    """
    root = Path(root)
    root.mkdir(parents=True, exist_ok=True)

    written: Dict[str, Path] = {}
    for table, df in dataset.tables().items():
        out = df.copy()
        if table == "ml_outputs":
            out["top_drivers"] = out["top_drivers"].map(
                lambda d: json.dumps(d) if isinstance(d, (list, tuple)) else None
            )
        path = table_path(root, table)
        out.to_csv(path, index=False)
        written[table] = path

    logger.info(
        "Wrote dataset tables",
        extra={"dataset": dataset.name, "root": str(root), "tables": sorted(written)},
    )
    return written


def _parse_drivers(raw: object) -> Optional[list]:
    if not isinstance(raw, str) or not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Unreadable top_drivers value; dropping it", extra={"value": raw})
        return None


def read_dataset_dir(root: Path, name: Optional[str] = None) -> Dataset:
    """
    Load a Dataset from a directory of CSV tables.

    :param root: directory holding `batches.csv` and, optionally, the dependent tables
    :param name: dataset name; defaults to the directory name
    :raises DatasetSchemaError: if `batches.csv` is missing or a table lacks required columns
    """
    root = Path(root)
    batches_path = table_path(root, "batches")
    if not batches_path.is_file():
        raise DatasetSchemaError(f"No batches table at {batches_path}")

    frames: Dict[str, pd.DataFrame] = {}
    for table, schema in TABLES.items():
        path = table_path(root, table)
        if not path.is_file():
            logger.debug("Table file absent; using empty table", extra={"table": table, "path": str(path)})
            continue

        try:
            df = pd.read_csv(path, dtype={key: str for key in schema.keys})
        except pd.errors.EmptyDataError as e:
            raise DatasetSchemaError(f"Table '{table}' at {path} is empty") from e

        if table == "ml_outputs" and "top_drivers" in df.columns:
            df["top_drivers"] = df["top_drivers"].map(_parse_drivers)
        frames[table] = df

    dataset = Dataset(name=name or root.name, **frames)

    logger.info(
        "Loaded dataset from CSV tables",
        extra={"dataset": dataset.name, "root": str(root), "n_batches": dataset.n_batches},
    )
    return dataset
