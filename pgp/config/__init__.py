from .loader import ConfigLoader, load_config_file
from .models import DataConfig, OutputConfig, RunConfig, SearchConfig

__all__ = [
    "ConfigLoader",
    "load_config_file",
    "DataConfig",
    "OutputConfig",
    "RunConfig",
    "SearchConfig",
]
