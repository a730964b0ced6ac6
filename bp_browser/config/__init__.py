from .loader import load_config, load_dataset_from_config, parse_config
from .model import AppConfig

__all__ = ["AppConfig", "load_config", "load_dataset_from_config", "parse_config"]
