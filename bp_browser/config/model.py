from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from bp_browser.core.filter_state import FilterState
from bp_browser.data.demo import DEFAULT_SEED

# Filter bar defaults of the dashboard: last three months, optimized runs
DEFAULT_FILTERS: Dict[str, Any] = {
    "products": [],
    "stages": [],
    "date_range": "3months",
    "scenario": "optimized",
}


@dataclass
class AppConfig:
    """
    Parsed config.json for the analytics core.

    - ui_title: title shown by the presentation layer
    - data_root: directory of CSV tables; None means the seeded demo corpus
    - demo_seed: seed for the demo corpus
    - default_filters: initial FilterState of a new session
    - scatter_phase / scatter_parameter / scatter_cqa: axes of the CPP vs CQA scatter
    - cache_size: max memoised results per AnalyticsService before it is cleared
    - log_format: "json" or "plain"
    """
    ui_title: str = "Bioprocess Analytics"
    data_root: Optional[Path] = None
    demo_seed: int = DEFAULT_SEED
    default_filters: FilterState = field(default_factory=lambda: FilterState.from_dict(DEFAULT_FILTERS))
    scatter_phase: int = 3
    scatter_parameter: str = "do"
    scatter_cqa: str = "Titer"
    cache_size: int = 128
    log_format: str = "json"
    source_path: Optional[Path] = None
