from .run_config import (
    get_default_run_config,
    get_nested_config,
    merge_run_config,
    validate_run_config,
    load_run_config,
    RUN_CONFIG_SECTIONS,
    OUTPUT_FORMATS,
)

__all__ = [
    "get_default_run_config",
    "get_nested_config",
    "merge_run_config",
    "validate_run_config",
    "load_run_config",
    "RUN_CONFIG_SECTIONS",
    "OUTPUT_FORMATS",
]
