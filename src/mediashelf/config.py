"""Configuration handling for mediashelf."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

import tomllib

from .constants import PANE_DOWNLOADS, PANE_MEDIA

DEFAULT_WEB_HOST = "0.0.0.0"
DEFAULT_WEB_PORT = 8080
DEFAULT_LOG_LEVEL = "INFO"
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ConfigurationError(RuntimeError):
    """Raised when configuration values are missing or invalid."""


@dataclass(frozen=True)
class Ownership:
    """Numeric owner applied to every created file and directory."""

    uid: int
    gid: int

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Ownership | None":
        """Read ``PUID``/``PGID``; both must be present and numeric."""
        env = os.environ if environ is None else environ
        puid = env.get("PUID")
        pgid = env.get("PGID")
        if not puid or not pgid:
            return None
        try:
            return cls(uid=int(puid), gid=int(pgid))
        except ValueError:
            return None


@dataclass(frozen=True)
class Paths:
    """The two pane roots jobs operate on."""

    download_root: Path | None = None
    media_root: Path | None = None

    def root_for(self, pane: str) -> Path:
        """Return the resolved root of ``pane``.

        Raises:
            ConfigurationError: If the pane is unknown, not configured or not
                an existing directory.
        """
        if pane == PANE_DOWNLOADS:
            root, variable = self.download_root, "DOWNLOAD_PATH"
        elif pane == PANE_MEDIA:
            root, variable = self.media_root, "MEDIA_PATH"
        else:
            raise ConfigurationError(f"Unknown pane '{pane}'")

        if root is None:
            raise ConfigurationError(f"Root for pane '{pane}' is not set ({variable})")
        if not root.is_dir():
            raise ConfigurationError(f"Root for pane '{pane}' is not a directory: {root}")
        return root.resolve()


@dataclass(frozen=True)
class Settings:
    """High level settings for the web server and the transfer engine."""

    paths: Paths = field(default_factory=Paths)
    ownership: Ownership | None = None
    web_host: str = DEFAULT_WEB_HOST
    web_port: int = DEFAULT_WEB_PORT
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_mapping(cls, data: dict[str, Any], *, base_path: Path | None = None) -> "Settings":
        base_path = base_path or Path.cwd()

        raw_paths = data.get("paths", {})
        if not isinstance(raw_paths, dict):
            raise ConfigurationError("'paths' section must be a mapping")

        def resolve_path(value: Any, *, field: str) -> Path | None:
            if value is None:
                return None
            if not isinstance(value, (str, Path)):
                raise ConfigurationError(f"Path '{field}' must be a string-like value")
            path = Path(value)
            if not path.is_absolute():
                path = (base_path / path).resolve()
            return path

        paths = Paths(
            download_root=resolve_path(raw_paths.get("download_root"), field="download_root"),
            media_root=resolve_path(raw_paths.get("media_root"), field="media_root"),
        )

        ownership: Ownership | None = None
        ownership_data = data.get("ownership")
        if ownership_data is not None:
            if not isinstance(ownership_data, dict):
                raise ConfigurationError("'ownership' section must be a mapping")
            if "puid" in ownership_data or "pgid" in ownership_data:
                ownership = Ownership(
                    uid=_read_int(ownership_data, "puid", default=0, minimum=0),
                    gid=_read_int(ownership_data, "pgid", default=0, minimum=0),
                )

        web = data.get("web", {})
        if not isinstance(web, dict):
            raise ConfigurationError("'web' section must be a mapping")
        host = str(web.get("host", DEFAULT_WEB_HOST))
        port = _read_int(web, "port", default=DEFAULT_WEB_PORT, minimum=1)

        options = data.get("options", {})
        log_level = _read_log_level(options.get("log_level", DEFAULT_LOG_LEVEL))

        return cls(
            paths=paths,
            ownership=ownership,
            web_host=host,
            web_port=port,
            log_level=log_level,
        )

    def with_env(self, environ: Mapping[str, str] | None = None) -> "Settings":
        """Return a copy with environment variable overrides applied."""
        env = os.environ if environ is None else environ

        paths = self.paths
        if env.get("DOWNLOAD_PATH"):
            paths = replace(paths, download_root=Path(env["DOWNLOAD_PATH"]))
        if env.get("MEDIA_PATH"):
            paths = replace(paths, media_root=Path(env["MEDIA_PATH"]))

        ownership = Ownership.from_env(env) or self.ownership

        web_host = env.get("MEDIASHELF_HOST") or self.web_host
        web_port = self.web_port
        if env.get("MEDIASHELF_PORT"):
            web_port = _read_int(env, "MEDIASHELF_PORT", default=self.web_port, minimum=1)

        log_level = self.log_level
        if env.get("MEDIASHELF_LOG_LEVEL"):
            log_level = _read_log_level(env["MEDIASHELF_LOG_LEVEL"])

        return Settings(
            paths=paths,
            ownership=ownership,
            web_host=web_host,
            web_port=web_port,
            log_level=log_level,
        )


def _read_int(data: Mapping[str, Any], key: str, *, default: int, minimum: int | None = None) -> int:
    value = data.get(key, default)
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Configuration value '{key}' must be an integer") from exc
    if minimum is not None and number < minimum:
        raise ConfigurationError(f"Configuration value '{key}' must be >= {minimum}")
    return number


def _read_log_level(value: Any) -> str:
    level = str(value).strip().upper()
    if level not in _LOG_LEVELS:
        raise ConfigurationError(f"Unknown log level '{value}'")
    return level


def load_settings(
    config_file: Path | None,
    *,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Load configuration from a TOML file and apply environment overrides.

    Without a config file the settings come from the environment alone.
    """

    if config_file is None:
        return Settings().with_env(environ)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file '{config_file}' does not exist")

    with config_file.open("rb") as fh:
        try:
            data = tomllib.load(fh)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigurationError(f"Invalid configuration file: {exc}") from exc

    return Settings.from_mapping(data, base_path=config_file.parent).with_env(environ)


def settings_from_env(environ: Mapping[str, str] | None = None) -> Settings:
    """Build settings purely from environment variables."""
    return Settings().with_env(environ)


__all__ = [
    "ConfigurationError",
    "Ownership",
    "Paths",
    "Settings",
    "load_settings",
    "settings_from_env",
]
