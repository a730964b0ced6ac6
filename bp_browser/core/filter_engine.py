from __future__ import annotations

import logging
from typing import Any, Optional

import numpy as np
import pandas as pd

from bp_browser.core.dataset import Dataset
from bp_browser.core.filter_state import FilterState, resolve_date_range, resolve_filter_dimension

logger = logging.getLogger(__name__)


def utc_now() -> pd.Timestamp:
    return pd.Timestamp.now(tz="UTC")


def _as_utc(ts: Any) -> pd.Timestamp:
    ts = pd.Timestamp(ts)
    if ts.tzinfo is None:
        return ts.tz_localize("UTC")
    return ts.tz_convert("UTC")


def resolve_date_threshold(date_range: Any, now: Optional[Any] = None) -> Optional[pd.Timestamp]:
    """
    Resolve a date range to the instant a batch must start strictly after.

    "3months" / "6months" subtract calendar months from `now`; "all" (and any
    unknown value) has no threshold, so it never excludes a batch, including
    ones with unparseable or zero-epoch start times.
    """
    months = resolve_date_range(date_range).months
    if months is None:
        return None
    reference = _as_utc(now) if now is not None else utc_now()
    return reference - pd.DateOffset(months=months)


def batch_mask(batches: pd.DataFrame, state: FilterState, now: Optional[Any] = None) -> np.ndarray:
    """
    Boolean mask over `batches`: True where every active predicate holds.

    Inactive dimensions (see FilterState resolvers) contribute nothing.
    """
    mask = np.ones(len(batches), dtype=bool)
    if batches.empty:
        return mask

    threshold = resolve_date_threshold(state.date_filter, now)
    if threshold is not None:
        # NaT compares False, so unparseable timestamps fail a bounded window
        mask &= (batches["start_time"] > threshold).to_numpy(dtype=bool)

    # Product codes have no fixed vocabulary; the corpus itself is the known set
    known_products = batches["product"].dropna().astype(str).unique()
    products = resolve_filter_dimension(state.products, known_products)
    if products is not None:
        mask &= batches["product"].astype(str).isin(products).to_numpy()

    stages = state.stage_filter
    if stages is not None:
        mask &= batches["stage"].astype(str).isin(stages).to_numpy()

    scenarios = state.scenario_filter
    if scenarios is not None:
        mask &= batches["scenario"].astype(str).isin(scenarios).to_numpy()

    return mask


def apply_filters(dataset: Dataset, state: Any, now: Optional[Any] = None) -> Dataset:
    """
    Apply a filter selection to the raw corpus.

    :param dataset: the raw corpus
    :param state: a FilterState (mappings are parsed leniently, anything else is unrestricted)
    :param now: reference instant for relative date ranges; defaults to the current UTC time
    :return: a new Dataset whose dependent tables only reference surviving batches
    """
    state = FilterState.coerce(state)

    batches = dataset.batches
    mask = batch_mask(batches, state, now)
    kept = batches.loc[mask, "id"]

    filtered = dataset.subset_for_batches(kept)

    logger.debug(
        "Applied filters",
        extra={
            "dataset": dataset.name,
            "filters": state.to_dict(),
            "n_batches_in": len(batches),
            "n_batches_out": filtered.n_batches,
        },
    )
    return filtered


__all__ = [
    "apply_filters",
    "batch_mask",
    "resolve_date_threshold",
    "utc_now",
]
