"""Configuration loading: optional TOML file, environment, explicit overrides.

Precedence (lowest to highest):
    1. ``appwrite-clone.toml`` (or an explicit ``config_path``)
    2. Environment variables and ``.env`` (read via pydantic-settings)
    3. ``overrides`` passed by the caller (CLI flags)

Usage:
    >>> from appwrite_clone.config.loader import load_clone_config
    >>> config = load_clone_config(env_prefix="STAGING_")
"""

import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from appwrite_clone.config.models import CloneConfig, CloneMode

DEFAULT_CONFIG_FILE = "appwrite-clone.toml"

# CloneConfig field -> environment variable (before prefixing)
REQUIRED_ENV_VARS = {
    "endpoint": "APPWRITE_ENDPOINT",
    "project_id": "APPWRITE_PROJECT_ID",
    "api_key": "APPWRITE_API_KEY",
    "source_database_id": "SOURCE_DATABASE_ID",
    "dest_database_id": "DEST_DATABASE_ID",
}


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing = missing or []


class EnvSettings(BaseSettings):
    """Raw values read from the environment and ``.env``.

    Everything is optional here; required-ness is checked after merging
    with the TOML file so a value may come from either place.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    appwrite_endpoint: str | None = None
    appwrite_project_id: str | None = None
    appwrite_api_key: str | None = None
    source_database_id: str | None = None
    dest_database_id: str | None = None
    batch_size: str | None = None
    clone_mode: str | None = None
    snapshot_path: str | None = None


def _read_toml(config_path: Path | None) -> dict[str, Any]:
    """Flatten the TOML sections into CloneConfig field names."""
    explicit = config_path is not None
    path = config_path if explicit else Path.cwd() / DEFAULT_CONFIG_FILE

    if not path.exists():
        if explicit:
            raise ConfigurationError(f"Config file not found: {path}")
        return {}

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e

    values: dict[str, Any] = {}
    values.update(data.get("appwrite", {}))
    values.update(data.get("clone", {}))
    if "poll" in data:
        values["poll"] = data["poll"]
    if "identifiers" in data:
        values["identifier_fields"] = data["identifiers"]
    return values


def _read_env(env_prefix: str, env_file: Path | None) -> dict[str, Any]:
    settings = EnvSettings(_env_prefix=env_prefix, _env_file=env_file)
    mapping = {
        "endpoint": settings.appwrite_endpoint,
        "project_id": settings.appwrite_project_id,
        "api_key": settings.appwrite_api_key,
        "source_database_id": settings.source_database_id,
        "dest_database_id": settings.dest_database_id,
        "batch_size": settings.batch_size,
        "mode": settings.clone_mode,
        "snapshot_path": settings.snapshot_path,
    }
    # Empty strings count as unset
    return {k: v for k, v in mapping.items() if v not in (None, "")}


def load_clone_config(
    config_path: Path | None = None,
    env_prefix: str = "",
    overrides: dict[str, Any] | None = None,
    env_file: Path | None = Path(".env"),
) -> CloneConfig:
    """Build the immutable clone configuration.

    Args:
        config_path: Explicit TOML file.  When ``None``, ``appwrite-clone.toml``
            in the working directory is used if it exists.
        env_prefix: Prefix for environment variable lookup
            (e.g. ``"STAGING_"`` reads ``STAGING_APPWRITE_ENDPOINT``).
        overrides: Values that win over file and environment.  ``None``
            entries are ignored.
        env_file: ``.env`` file to read (``None`` disables it).

    Returns:
        Validated ``CloneConfig``.

    Raises:
        ConfigurationError: If required values are missing, the explicit
            config file does not exist, or a value is invalid.

    Example:
        config = load_clone_config(overrides={"mode": "missing-only"})
    """
    values = _read_toml(config_path)
    values.update(_read_env(env_prefix, env_file))
    values.update({k: v for k, v in (overrides or {}).items() if v is not None})

    missing = [
        f"{env_prefix}{env_var}"
        for field_name, env_var in REQUIRED_ENV_VARS.items()
        if not values.get(field_name)
    ]
    if missing:
        raise ConfigurationError(
            "Missing required configuration:\n"
            + "\n".join(f"  - {name}" for name in missing)
            + "\n\nSet them in the environment, a .env file, or "
            + DEFAULT_CONFIG_FILE
            + ".",
            missing=missing,
        )

    if "mode" in values and not isinstance(values["mode"], CloneMode):
        try:
            values["mode"] = CloneMode(values["mode"])
        except ValueError:
            choices = ", ".join(m.value for m in CloneMode)
            raise ConfigurationError(
                f"Invalid clone mode '{values['mode']}'. Choose one of: {choices}"
            ) from None

    try:
        return CloneConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
