from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

CONFIG_PATH_ENV = "MOVIE_FINDER_CONFIG"
DOTENV_FILES = (".env.local", ".env")

DEFAULT_CATALOG_BASE_URL = "https://api.themoviedb.org/3"
DEFAULT_IMAGE_BASE_URL = "https://image.tmdb.org/t/p/w500"


class Settings(BaseModel):
    """Application configuration resolved from env vars and optional TOML files."""

    movie_api_key: str | None = Field(default=None, alias="MOVIE_API_KEY")
    catalog_base_url: str = Field(default=DEFAULT_CATALOG_BASE_URL, alias="MOVIE_API_BASE_URL")
    image_base_url: str = Field(default=DEFAULT_IMAGE_BASE_URL, alias="MOVIE_IMAGE_BASE_URL")
    request_timeout: float = Field(default=10.0, gt=0, alias="MOVIE_REQUEST_TIMEOUT")

    debounce_seconds: float = Field(default=1.0, ge=0, alias="SEARCH_DEBOUNCE_SECONDS")
    trending_limit: int = Field(default=5, ge=1, alias="TRENDING_LIMIT")
    record_empty_results: bool = Field(default=False, alias="RECORD_EMPTY_RESULTS")

    appwrite_endpoint: str | None = Field(default=None, alias="APPWRITE_ENDPOINT")
    appwrite_project_id: str | None = Field(default=None, alias="APPWRITE_PROJECT_ID")
    appwrite_api_key: str | None = Field(default=None, alias="APPWRITE_API_KEY")
    appwrite_database_id: str | None = Field(default=None, alias="APPWRITE_DATABASE_ID")
    appwrite_collection_id: str | None = Field(default=None, alias="APPWRITE_COLLECTION_ID")

    # SPA host
    host: str = Field(default="127.0.0.1", alias="HOST")
    port: int = Field(default=3000, alias="PORT")
    static_dir: Path = Field(default=Path("dist"), alias="STATIC_DIR")

    model_config = {
        "populate_by_name": True,
        "str_strip_whitespace": True,
        "extra": "ignore",
    }

    def require_catalog(self) -> None:
        """Ensure the catalog API key is available."""
        if not self.movie_api_key:
            raise SettingsError(
                "Missing MOVIE_API_KEY. Configure environment or TOML file.",
            )

    @property
    def appwrite_configured(self) -> bool:
        return all(
            (
                self.appwrite_endpoint,
                self.appwrite_project_id,
                self.appwrite_database_id,
                self.appwrite_collection_id,
            )
        )


class SettingsError(RuntimeError):
    """Raised when configuration cannot be resolved."""


@dataclass(frozen=True)
class SettingsLoadResult:
    settings: Settings
    source_path: Path | None


def load_settings(config_path: Path | None = None, *, load_env: bool = True) -> SettingsLoadResult:
    """Load settings from .env files, environment variables, and optional TOML configuration."""

    if load_env:
        # Earlier files win: load_dotenv never overrides variables already set
        for dotenv_file in DOTENV_FILES:
            load_dotenv(dotenv_file)

    resolved_path = _determine_config_path(config_path)
    config_data: dict[str, Any] = {}

    if resolved_path and resolved_path.exists():
        with resolved_path.open("rb") as handle:
            toml_payload = tomllib.load(handle)
        config_data = _flatten_toml(toml_payload)

    try:
        env_data = _collect_env_overrides()
    except ValueError as exc:
        raise SettingsError(f"Invalid environment value: {exc}") from exc
    merged = {**config_data, **env_data}

    try:
        settings = Settings.model_validate(merged)
    except ValidationError as exc:  # pragma: no cover - surfaced via CLI messaging
        raise SettingsError(str(exc)) from exc

    return SettingsLoadResult(settings=settings, source_path=resolved_path)


def _determine_config_path(config_path: Path | None) -> Path | None:
    if config_path:
        return config_path

    env_override = os.getenv(CONFIG_PATH_ENV)
    if env_override:
        return Path(env_override).expanduser().resolve()

    default_path = Path.home() / ".config" / "movie-finder" / "config.toml"
    return default_path if default_path.exists() else None


_TOML_SECTIONS: dict[str, dict[str, str]] = {
    "catalog": {
        "api_key": "movie_api_key",
        "base_url": "catalog_base_url",
        "image_base_url": "image_base_url",
        "timeout": "request_timeout",
    },
    "search": {
        "debounce_seconds": "debounce_seconds",
        "trending_limit": "trending_limit",
        "record_empty_results": "record_empty_results",
    },
    "appwrite": {
        "endpoint": "appwrite_endpoint",
        "project_id": "appwrite_project_id",
        "api_key": "appwrite_api_key",
        "database_id": "appwrite_database_id",
        "collection_id": "appwrite_collection_id",
    },
    "server": {
        "host": "host",
        "port": "port",
        "static_dir": "static_dir",
    },
}


def _flatten_toml(payload: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}

    for section, keys in _TOML_SECTIONS.items():
        section_cfg = payload.get(section, {})
        if not isinstance(section_cfg, dict):
            continue
        for key, field in keys.items():
            if key in section_cfg:
                result[field] = section_cfg.get(key)

    if "record_empty_results" in result:
        result["record_empty_results"] = bool(result["record_empty_results"])

    return result


_ENV_MAPPING: dict[str, str] = {
    "MOVIE_API_KEY": "movie_api_key",
    "MOVIE_API_BASE_URL": "catalog_base_url",
    "MOVIE_IMAGE_BASE_URL": "image_base_url",
    "MOVIE_REQUEST_TIMEOUT": "request_timeout",
    "SEARCH_DEBOUNCE_SECONDS": "debounce_seconds",
    "TRENDING_LIMIT": "trending_limit",
    "RECORD_EMPTY_RESULTS": "record_empty_results",
    "APPWRITE_ENDPOINT": "appwrite_endpoint",
    "APPWRITE_PROJECT_ID": "appwrite_project_id",
    "APPWRITE_API_KEY": "appwrite_api_key",
    "APPWRITE_DATABASE_ID": "appwrite_database_id",
    "APPWRITE_COLLECTION_ID": "appwrite_collection_id",
    "HOST": "host",
    "PORT": "port",
    "STATIC_DIR": "static_dir",
}


def _collect_env_overrides() -> dict[str, Any]:
    result: dict[str, Any] = {}
    for env_name, field in _ENV_MAPPING.items():
        if env_name not in os.environ:
            continue
        value = os.environ[env_name]
        if field in {"trending_limit", "port"}:
            result[field] = int(value)
        elif field in {"request_timeout", "debounce_seconds"}:
            result[field] = float(value)
        elif field == "record_empty_results":
            result[field] = value.lower() in {"true", "1", "yes"}
        elif field == "static_dir":
            result[field] = Path(value).expanduser()
        else:
            result[field] = value
    return result


__all__ = ["Settings", "SettingsError", "SettingsLoadResult", "load_settings"]
