from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from bp_browser.config.model import AppConfig
from bp_browser.core.dataset import Dataset
from bp_browser.core.exceptions import ConfigError
from bp_browser.core.filter_state import FilterState
from bp_browser.data.demo import generate_demo_dataset
from bp_browser.data.io import read_dataset_dir
from bp_browser.validation.dataset_validation import validate_dataset

logger = logging.getLogger(__name__)

DATA_ROOT_ENV = "BP_BROWSER_DATA_ROOT"
LOG_FORMATS = ("json", "plain")


def _typed(raw: Dict[str, Any], key: str, expected: type, default: Any) -> Any:
    value = raw.get(key)
    if value is None:
        return default
    # bool is an int subclass; don't let `true` through as a number
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        raise ConfigError(f"Config field '{key}' must be {expected.__name__}, got {type(value).__name__}")
    return value


def _resolve_data_root(raw_value: Optional[str], config_dir: Path) -> Optional[Path]:
    """
    Resolve data_root:
    - absolute paths are used as-is
    - relative paths are resolved against $BP_BROWSER_DATA_ROOT if set, else the config directory
    - with no data_root configured, $BP_BROWSER_DATA_ROOT itself is used if set
    """
    env_root = os.environ.get(DATA_ROOT_ENV)

    if raw_value is None:
        return Path(env_root) if env_root else None

    path = Path(raw_value)
    if path.is_absolute():
        return path

    base = Path(env_root) if env_root else config_dir
    return (base / path).resolve()


def parse_config(raw: Dict[str, Any], config_dir: Path, source_path: Optional[Path] = None) -> AppConfig:
    if not isinstance(raw, dict):
        raise ConfigError("Config root must be a JSON object")

    log_format = _typed(raw, "log_format", str, "json").lower()
    if log_format not in LOG_FORMATS:
        raise ConfigError(f"Config field 'log_format' must be one of {LOG_FORMATS}, got '{log_format}'")

    defaults = AppConfig()
    default_filters = raw.get("default_filters")
    if default_filters is not None and not isinstance(default_filters, dict):
        raise ConfigError("Config field 'default_filters' must be an object")

    return AppConfig(
        ui_title=_typed(raw, "ui_title", str, defaults.ui_title),
        data_root=_resolve_data_root(_typed(raw, "data_root", str, None), config_dir),
        demo_seed=_typed(raw, "demo_seed", int, defaults.demo_seed),
        default_filters=(
            FilterState.from_dict(default_filters) if default_filters is not None else defaults.default_filters
        ),
        scatter_phase=_typed(raw, "scatter_phase", int, defaults.scatter_phase),
        scatter_parameter=_typed(raw, "scatter_parameter", str, defaults.scatter_parameter),
        scatter_cqa=_typed(raw, "scatter_cqa", str, defaults.scatter_cqa),
        cache_size=_typed(raw, "cache_size", int, defaults.cache_size),
        log_format=log_format,
        source_path=source_path,
    )


def load_config(path: Path) -> AppConfig:
    """
    Load an AppConfig from a JSON file.

    :param path: path to config.json
    :return: the parsed AppConfig; fields absent from the file keep their defaults
    :raises FileNotFoundError: if the file does not exist
    :raises ConfigError: if the file is not valid JSON or a field has the wrong type
    """
    path = Path(path)
    logger.info("Loading config", extra={"config_path": str(path)})

    if not path.is_file():
        raise FileNotFoundError(f"File not found at {path}")

    try:
        with path.open() as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config at {path} is not valid JSON: {e}") from e

    return parse_config(raw, config_dir=path.parent, source_path=path)


def load_dataset_from_config(cfg: AppConfig, now: Optional[Any] = None) -> Dataset:
    """
    Materialise the corpus a config points at.

    CSV tables under data_root when configured, otherwise the seeded demo corpus.
    The corpus is validated; warnings are logged, errors raise ValidationError.
    """
    if cfg.data_root is not None:
        dataset = read_dataset_dir(cfg.data_root)
    else:
        dataset = generate_demo_dataset(seed=cfg.demo_seed, now=now)

    validate_dataset(dataset)

    logger.info(
        "Dataset ready",
        extra={
            "dataset": dataset.name,
            "source": str(cfg.data_root) if cfg.data_root else "demo",
            "n_batches": dataset.n_batches,
        },
    )
    return dataset
