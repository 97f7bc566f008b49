from .analysis_config import (
    DEFAULT_CONFIG,
    PRESET_CONFIGS,
    get_config,
    get_preset_config,
)

__all__ = ["DEFAULT_CONFIG", "PRESET_CONFIGS", "get_config", "get_preset_config"]
