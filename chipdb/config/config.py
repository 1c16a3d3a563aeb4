import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any


_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class LocatorSettings:
    install_prefix: str
    resource_subdir: str


class Config:
    """Configuration Manager for the chipdb locator."""

    # Install layout
    chipdb_prefix = "/usr/local"
    chipdb_subdir = "icebox"

    # Diagnostics
    chipdb_verbose = "false"

    # Executable lookup strategy (defaults to sys.platform)
    chipdb_platform = None

    # Config file override (set via --config CLI arg)
    _config_file_override: Path | None = None
    _ENV_SECTION_KEY = "env"

    @classmethod
    def _tracked_names(cls) -> list[str]:
        return [
            k
            for k, v in vars(cls).items()
            if not k.startswith("_") and k[0].islower() and (v is None or isinstance(v, str))
        ]

    @classmethod
    def tracked_vars(cls) -> list[str]:
        return [name.upper() for name in cls._tracked_names()]

    @classmethod
    def get(cls, name: str) -> str | None:
        env_name = name.upper()
        default = getattr(cls, name, None)
        return os.getenv(env_name, default)

    @classmethod
    def config_dir(cls) -> Path:
        return Path.home() / ".chipdb"

    @classmethod
    def config_file(cls) -> Path:
        if cls._config_file_override is not None:
            return cls._config_file_override
        return cls.config_dir() / "cli-config.json"

    @classmethod
    def set_config_file(cls, path: Path | str | None) -> None:
        cls._config_file_override = Path(path).expanduser() if path else None

    @classmethod
    def load(cls) -> dict[str, Any]:
        path = cls.config_file()
        if not path.exists():
            return {}
        try:
            with path.open("r", encoding="utf-8") as f:
                data: dict[str, Any] = json.load(f)
                return data
        except (json.JSONDecodeError, OSError):
            return {}

    @classmethod
    def apply_saved(cls, force: bool = False) -> dict[str, str]:
        saved = cls.load()
        if not isinstance(saved, dict):
            saved = {}
        env_vars = saved.get(cls._ENV_SECTION_KEY, {})
        if not isinstance(env_vars, dict):
            env_vars = {}

        applied = {}
        tracked = cls.tracked_vars()
        for var_name, var_value in env_vars.items():
            if not isinstance(var_value, str):
                continue
            if var_name in tracked and (force or var_name not in os.environ):
                os.environ[var_name] = var_value
                applied[var_name] = var_value

        return applied

    @classmethod
    def locator_settings(
        cls,
        install_prefix: str | None = None,
        resource_subdir: str | None = None,
    ) -> LocatorSettings:
        return LocatorSettings(
            install_prefix=install_prefix or cls.get("chipdb_prefix") or cls.chipdb_prefix,
            resource_subdir=resource_subdir or cls.get("chipdb_subdir") or cls.chipdb_subdir,
        )


def config_bool(name: str) -> bool:
    return (Config.get(name) or "").strip().lower() in _TRUE_VALUES


def apply_saved_config(force: bool = False) -> dict[str, str]:
    return Config.apply_saved(force=force)
