from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from bp_browser.core.exceptions import DatasetSchemaError
from bp_browser.core.models import (
    Batch,
    Bioreactor,
    CppPoint,
    CqaResult,
    MlOutput,
    RecommendedProfile,
    drivers_to_list,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableSchema:
    """
    Column contract for one corpus table.

    - required: columns that must be present in any provided frame
    - optional: columns added as empty when missing
    - numeric / datetimes: columns coerced on load (bad values become NaN / NaT)
    - keys: identifier columns normalised to str
    """
    required: Tuple[str, ...]
    optional: Tuple[str, ...] = ()
    numeric: Tuple[str, ...] = ()
    datetimes: Tuple[str, ...] = ()
    keys: Tuple[str, ...] = ()

    @property
    def columns(self) -> Tuple[str, ...]:
        return self.required + self.optional


TABLES: Dict[str, TableSchema] = {
    "batches": TableSchema(
        required=("id", "product", "stage", "scenario", "start_time", "bioreactor_id", "result_status"),
        optional=("end_time", "site", "cell_line", "media", "recipe_version"),
        datetimes=("start_time", "end_time"),
        keys=("id", "bioreactor_id"),
    ),
    "cqa_results": TableSchema(
        required=("batch_id", "cqa_name", "value"),
        optional=("spec_low", "spec_high", "in_spec"),
        numeric=("value", "spec_low", "spec_high"),
        keys=("batch_id",),
    ),
    "ml_outputs": TableSchema(
        required=("batch_id", "risk_score", "risk_level"),
        optional=("predicted_titer", "predicted_glycan_score", "top_drivers"),
        numeric=("risk_score", "predicted_titer", "predicted_glycan_score"),
        keys=("batch_id",),
    ),
    "cpp_points": TableSchema(
        required=("batch_id", "phase"),
        optional=("timestamp",),
        numeric=("phase",),
        datetimes=("timestamp",),
        keys=("batch_id",),
    ),
    "bioreactors": TableSchema(
        required=("id", "status"),
        optional=("name", "site", "stage", "scale_l"),
        numeric=("scale_l",),
        keys=("id",),
    ),
    "recommendations": TableSchema(
        required=("batch_id", "stage", "phase", "target_do", "target_temp", "target_feed_rate", "rationale"),
        numeric=("phase", "target_do", "target_temp", "target_feed_rate"),
        keys=("batch_id",),
    ),
}

# Tables whose rows reference a batch and follow it through filtering
DEPENDENT_TABLES: Tuple[str, ...] = ("cqa_results", "ml_outputs", "cpp_points", "recommendations")


def _normalise_table(table: str, frame: Optional[pd.DataFrame]) -> pd.DataFrame:
    """
    Return a fresh, type-normalised copy of `frame` that satisfies TABLES[table].

    None becomes an empty frame with the schema columns. Any extra columns are
    kept; for cpp_points those are the process parameters and are coerced to numbers.
    """
    schema = TABLES[table]

    if frame is None:
        frame = pd.DataFrame({col: pd.Series(dtype=object) for col in schema.columns})

    missing = [col for col in schema.required if col not in frame.columns]
    if missing:
        raise DatasetSchemaError(f"Table '{table}' is missing required columns: {missing}")

    df = frame.copy().reset_index(drop=True)

    for col in schema.optional:
        if col not in df.columns:
            df[col] = None

    for col in schema.keys:
        df[col] = df[col].astype(str)

    numeric = list(schema.numeric)
    if table == "cpp_points":
        numeric += [col for col in df.columns if col not in schema.columns]

    for col in numeric:
        df[col] = pd.to_numeric(df[col], errors="coerce")

    for col in schema.datetimes:
        df[col] = pd.to_datetime(df[col], utc=True, errors="coerce", format="ISO8601")

    return df


def _records_frame(records: Optional[Sequence[Any]], table: str) -> Optional[pd.DataFrame]:
    if not records:
        return None

    if table == "cpp_points":
        rows = [r.to_row() for r in records]
    elif table == "ml_outputs":
        rows = []
        for r in records:
            row = asdict(r)
            row["top_drivers"] = drivers_to_list(r.top_drivers)
            rows.append(row)
    else:
        rows = [asdict(r) for r in records]

    return pd.DataFrame(rows)


class Dataset:
    """
    Read-only, pandas-backed corpus of batches and their related measurements.

    Includes:
    - one DataFrame per entity type (see TABLES)
    - referentially consistent projection onto a set of batch ids
    - whole-table replacement that returns a new Dataset

    The frames handed out by the properties belong to the Dataset and
    must be treated as read-only by callers.
    """

    # -------------------------------------------------------------------------
    # Constructor
    # -------------------------------------------------------------------------
    def __init__(
        self,
        batches: Optional[pd.DataFrame] = None,
        cqa_results: Optional[pd.DataFrame] = None,
        ml_outputs: Optional[pd.DataFrame] = None,
        cpp_points: Optional[pd.DataFrame] = None,
        bioreactors: Optional[pd.DataFrame] = None,
        recommendations: Optional[pd.DataFrame] = None,
        name: str = "dataset",
    ) -> None:
        self.name = name

        batches_df = _normalise_table("batches", batches)
        if not batches_df["id"].is_unique:
            dupes = sorted(set(batches_df.loc[batches_df["id"].duplicated(), "id"]))
            logger.warning(
                "Duplicate batch ids in dataset '%s'; keeping first occurrence",
                name,
                extra={"dataset": name, "duplicate_ids": dupes},
            )
            batches_df = batches_df.drop_duplicates("id", keep="first").reset_index(drop=True)

        self._batches = batches_df
        self._cqa_results = _normalise_table("cqa_results", cqa_results)
        self._ml_outputs = _normalise_table("ml_outputs", ml_outputs)
        self._cpp_points = _normalise_table("cpp_points", cpp_points)
        self._bioreactors = _normalise_table("bioreactors", bioreactors)
        self._recommendations = _normalise_table("recommendations", recommendations)

    @classmethod
    def from_records(
        cls,
        batches: Sequence[Batch] = (),
        cqa_results: Sequence[CqaResult] = (),
        ml_outputs: Sequence[MlOutput] = (),
        cpp_points: Sequence[CppPoint] = (),
        bioreactors: Sequence[Bioreactor] = (),
        recommendations: Sequence[RecommendedProfile] = (),
        name: str = "dataset",
    ) -> Dataset:
        """Build a Dataset from record dataclasses."""
        return cls(
            batches=_records_frame(batches, "batches"),
            cqa_results=_records_frame(cqa_results, "cqa_results"),
            ml_outputs=_records_frame(ml_outputs, "ml_outputs"),
            cpp_points=_records_frame(cpp_points, "cpp_points"),
            bioreactors=_records_frame(bioreactors, "bioreactors"),
            recommendations=_records_frame(recommendations, "recommendations"),
            name=name,
        )

    def __repr__(self) -> str:
        return (
            f"Dataset(name={self.name!r}, batches={len(self._batches)}, "
            f"cqa_results={len(self._cqa_results)}, ml_outputs={len(self._ml_outputs)}, "
            f"cpp_points={len(self._cpp_points)})"
        )

    # -------------------------------------------------------------------------
    # Tables
    # -------------------------------------------------------------------------
    @property
    def batches(self) -> pd.DataFrame:
        return self._batches

    @property
    def cqa_results(self) -> pd.DataFrame:
        return self._cqa_results

    @property
    def ml_outputs(self) -> pd.DataFrame:
        return self._ml_outputs

    @property
    def cpp_points(self) -> pd.DataFrame:
        return self._cpp_points

    @property
    def bioreactors(self) -> pd.DataFrame:
        return self._bioreactors

    @property
    def recommendations(self) -> pd.DataFrame:
        return self._recommendations

    def table(self, name: str) -> pd.DataFrame:
        if name not in TABLES:
            raise KeyError(f"Unknown table '{name}'")
        return getattr(self, f"_{name}")

    def tables(self) -> Dict[str, pd.DataFrame]:
        return {name: self.table(name) for name in TABLES}

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------
    @property
    def batch_ids(self) -> set[str]:
        return set(self._batches["id"])

    @property
    def n_batches(self) -> int:
        return len(self._batches)

    def is_empty(self) -> bool:
        return self._batches.empty

    def cqa_names(self) -> List[str]:
        return sorted(self._cqa_results["cqa_name"].dropna().astype(str).unique())

    def parameter_names(self) -> List[str]:
        """Names of the CPP parameter columns (everything that isn't a key column)."""
        known = set(TABLES["cpp_points"].columns)
        return [col for col in self._cpp_points.columns if col not in known]

    def products(self) -> List[str]:
        return sorted(self._batches["product"].dropna().astype(str).unique())

    def bioreactor_status(self) -> pd.Series:
        """Bioreactor id -> status, first record wins for duplicated ids."""
        br = self._bioreactors.drop_duplicates("id", keep="first")
        return pd.Series(br["status"].to_numpy(), index=br["id"].to_numpy(), dtype=object)

    def batch_records(self) -> List[Batch]:
        return [Batch.from_row(row) for row in self._batches.to_dict("records")]

    def linked(self, table: str) -> pd.DataFrame:
        """
        Rows of a dependent table whose batch exists in this Dataset.

        Orphans (rows referencing an unknown batch) are dropped here; every
        batch-joined aggregate goes through this.
        """
        if table not in DEPENDENT_TABLES:
            raise KeyError(f"Table '{table}' does not reference batches")
        df = self.table(table)
        return df[df["batch_id"].isin(self.batch_ids)]

    # -------------------------------------------------------------------------
    # Projection / replacement
    # -------------------------------------------------------------------------
    def subset_for_batches(self, batch_ids: Iterable[str]) -> Dataset:
        """
        Return a new Dataset restricted to `batch_ids`.

        Every dependent table keeps exactly the rows whose batch_id is in the
        surviving batch id set; bioreactors are not batch-scoped and are kept whole.
        """
        ids = {str(b) for b in batch_ids}
        batch_mask = self._batches["id"].isin(ids).to_numpy()
        kept_ids = set(self._batches.loc[batch_mask, "id"])

        frames: Dict[str, pd.DataFrame] = {"batches": self._batches[batch_mask]}
        for table in DEPENDENT_TABLES:
            df = self.table(table)
            frames[table] = df[df["batch_id"].isin(kept_ids)]

        return Dataset(
            bioreactors=self._bioreactors,
            name=self.name,
            **frames,
        )

    def replace(self, **frames: pd.DataFrame) -> Dataset:
        """Return a new Dataset with whole tables swapped out; this one is left untouched."""
        unknown = set(frames) - set(TABLES)
        if unknown:
            raise KeyError(f"Unknown tables: {sorted(unknown)}")

        current = self.tables()
        current.update(frames)
        return Dataset(name=self.name, **current)
