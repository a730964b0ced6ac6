import json
import sys
from dataclasses import asdict
from pathlib import Path

from bp_browser.config import AppConfig, load_config, load_dataset_from_config
from bp_browser.logging_config import configure_logging
from bp_browser.services import AnalyticsService

cfg = load_config(Path(sys.argv[1])) if len(sys.argv) > 1 else AppConfig()
configure_logging(force_format=cfg.log_format)

service = AnalyticsService(load_dataset_from_config(cfg), cache_size=cfg.cache_size)
state = cfg.default_filters

print(json.dumps(
    {
        "filters": state.to_dict(),
        "kpis": asdict(service.kpis(state)),
        "scenario_comparison": asdict(service.scenario_comparison(state)),
        "risk_clusters": asdict(service.risk_clusters(state)),
    },
    indent=2,
))
