from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

from bp_browser.core.models import DateRange, SCENARIOS, STAGES

logger = logging.getLogger(__name__)

ALL = "all"


def _label(value: Any) -> str:
    return str(value.value) if isinstance(value, Enum) else str(value)


def _as_tuple(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, (str, Enum)):
        return (_label(value),)
    try:
        return tuple(_label(v) for v in value if v is not None)
    except TypeError:
        return (_label(value),)


def resolve_filter_dimension(
    value: Any,
    allowed: Optional[Iterable[str]] = None,
) -> Optional[FrozenSet[str]]:
    """
    Fail-open policy for one filter dimension.

    Returns the set of accepted labels, or None when the dimension is unrestricted.

    - None, "", "all" and empty collections are unrestricted
    - a single string is a one-member selection
    - with `allowed`, unknown members are dropped; if nothing known is left
      the dimension is unrestricted rather than matching nothing
    """
    values = _as_tuple(value)
    if ALL in values:
        return None

    members = [m for m in values if m]
    if allowed is not None:
        allowed_set = set(allowed)
        unknown = [m for m in members if m not in allowed_set]
        if unknown:
            logger.debug("Ignoring unknown filter values", extra={"unknown": unknown})
        members = [m for m in members if m in allowed_set]

    if not members:
        return None
    return frozenset(members)


def resolve_date_range(value: Any) -> DateRange:
    """Unknown or missing date ranges resolve to DateRange.ALL."""
    if isinstance(value, DateRange):
        return value
    try:
        return DateRange(_label(value))
    except ValueError:
        return DateRange.ALL


@dataclass(frozen=True)
class FilterState:
    """
    The user's filter bar selection, passed explicitly into every engine call.

    Fields:

    - products: product codes to keep; empty means all products
    - stages: stage labels to keep; empty means all stages
    - date_range: "3months", "6months" or "all"
    - scenario: "baseline", "optimized" or "all"

    Values are stored as given; interpretation (including fail-open handling of
    unknown values) happens in the resolver properties.
    """
    products: Tuple[str, ...] = ()
    stages: Tuple[str, ...] = ()
    date_range: str = ALL
    scenario: str = ALL

    @property
    def product_filter(self) -> Optional[FrozenSet[str]]:
        """Selected product codes; unknown codes are dropped by the filter engine against the corpus."""
        return resolve_filter_dimension(self.products)

    @property
    def stage_filter(self) -> Optional[FrozenSet[str]]:
        return resolve_filter_dimension(self.stages, STAGES)

    @property
    def scenario_filter(self) -> Optional[FrozenSet[str]]:
        return resolve_filter_dimension(self.scenario, SCENARIOS)

    @property
    def date_filter(self) -> DateRange:
        return resolve_date_range(self.date_range)

    def is_unrestricted(self) -> bool:
        return (
            self.product_filter is None
            and self.stage_filter is None
            and self.scenario_filter is None
            and self.date_filter is DateRange.ALL
        )

    def cache_key(self) -> Tuple[Tuple[str, ...], Tuple[str, ...], str, str]:
        """Order-insensitive key of the resolved selection."""

        def norm(values: Optional[FrozenSet[str]]) -> Tuple[str, ...]:
            return tuple(sorted(values)) if values else ()

        return (
            norm(self.product_filter),
            norm(self.stage_filter),
            self.date_filter.value,
            ",".join(norm(self.scenario_filter)) or ALL,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "products": list(_as_tuple(self.products)),
            "stages": list(_as_tuple(self.stages)),
            "date_range": self.date_range,
            "scenario": self.scenario,
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> FilterState:
        """
        Build a FilterState from loosely shaped UI state.

        Accepts camelCase `dateRange` as well as `date_range`. Anything
        missing falls back to the unrestricted default.
        """
        data = data or {}
        date_range = data.get("date_range", data.get("dateRange", ALL))
        scenario = data.get("scenario", ALL)
        return cls(
            products=_as_tuple(data.get("products")),
            stages=_as_tuple(data.get("stages")),
            date_range=_label(date_range) if date_range is not None else ALL,
            scenario=_label(scenario) if scenario is not None else ALL,
        )

    @classmethod
    def coerce(cls, state: Any) -> FilterState:
        """Return `state` as a FilterState; mappings are parsed, anything else is unrestricted."""
        if isinstance(state, FilterState):
            return state
        if isinstance(state, Mapping):
            return cls.from_dict(state)
        logger.debug("Unrecognised filter state %r; treating as unrestricted", type(state).__name__)
        return cls()
