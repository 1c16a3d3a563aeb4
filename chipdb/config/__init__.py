from .config import Config, LocatorSettings, apply_saved_config, config_bool


__all__ = [
    "Config",
    "LocatorSettings",
    "apply_saved_config",
    "config_bool",
]
