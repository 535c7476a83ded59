import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CACHE_FILE = "cache.json"
SNAPSHOT_DIR_NAME = "apis"
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class Settings:
    cache_path: Path
    cache_dir: Path
    cache_ttl: int = 0  # seconds, 0 disables expiry
    org_id: Optional[str] = None
    log_level: str = "INFO"
    log_dir: Optional[Path] = None

    @property
    def snapshot_dir(self) -> Path:
        """Per-vendor snapshot files read by the index builder."""
        return self.cache_dir / SNAPSHOT_DIR_NAME


def default_cache_dir() -> Path:
    xdg = os.getenv("XDG_CACHE_HOME")
    base = Path(xdg) if xdg and xdg.strip() else Path.home() / ".cache"
    return base / "mist-cache"


def _env_int(name: str, default: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise RuntimeError(f"Invalid integer value for {name}={raw!r}") from exc


def _parse_ttl(raw: Any, name: str) -> int:
    if raw is None:
        return 0
    if isinstance(raw, bool):
        raise RuntimeError(f"{name} must be an integer (seconds)")
    try:
        ttl = int(raw)
    except (TypeError, ValueError) as exc:
        raise RuntimeError(f"{name} must be an integer (seconds)") from exc
    if ttl < 0:
        raise RuntimeError(f"{name} must not be negative")
    return ttl


def _parse_log_level(raw: Any, name: str) -> str:
    level = str(raw).strip().upper()
    if level not in LOG_LEVELS:
        raise RuntimeError(f"Invalid {name}={raw!r} (expected one of {', '.join(sorted(LOG_LEVELS))})")
    return level


def _optional_str(raw: Any, name: str) -> Optional[str]:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise RuntimeError(f"{name} must be a string or null")
    return raw.strip() or None


def _resolve_cache_path(cache_dir: Path, cache_file: Optional[str]) -> Path:
    if not cache_file:
        return cache_dir / DEFAULT_CACHE_FILE
    p = Path(cache_file).expanduser()
    return p if p.is_absolute() else cache_dir / p


def _load_settings_from_yaml(path: str) -> Settings:
    """Load settings from a single YAML config file."""
    p = Path(path)
    if not p.is_file():
        raise RuntimeError(f"CACHE_CONFIG_FILE not found: {path}")

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise RuntimeError(f"Failed to read YAML config: {path}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise RuntimeError("YAML config root must be a mapping/object")

    cache = raw.get("cache") or {}
    if not isinstance(cache, dict):
        raise RuntimeError("cache must be a mapping/object")

    cache_dir_raw = _optional_str(cache.get("dir"), "cache.dir")
    cache_dir = Path(cache_dir_raw).expanduser() if cache_dir_raw else default_cache_dir()
    cache_path = _resolve_cache_path(cache_dir, _optional_str(cache.get("file"), "cache.file"))
    cache_ttl = _parse_ttl(cache.get("ttl", 0), "cache.ttl")

    org_id = _optional_str(raw.get("org_id"), "org_id")

    runtime = raw.get("runtime") or {}
    if not isinstance(runtime, dict):
        raise RuntimeError("runtime must be a mapping/object")

    log_level = _parse_log_level(runtime.get("log_level", "INFO"), "runtime.log_level")
    log_dir_raw = _optional_str(runtime.get("log_dir"), "runtime.log_dir")

    return Settings(
        cache_path=cache_path,
        cache_dir=cache_dir,
        cache_ttl=cache_ttl,
        org_id=org_id,
        log_level=log_level,
        log_dir=Path(log_dir_raw).expanduser() if log_dir_raw else None,
    )


def load_settings() -> Settings:
    """Load settings from a YAML file (CACHE_CONFIG_FILE) or from environment variables."""
    config_file = os.getenv("CACHE_CONFIG_FILE")
    if config_file:
        return _load_settings_from_yaml(config_file)

    cache_dir_env = os.getenv("CACHE_DIR")
    cache_dir = Path(cache_dir_env).expanduser() if cache_dir_env and cache_dir_env.strip() else default_cache_dir()
    cache_path = _resolve_cache_path(cache_dir, (os.getenv("CACHE_FILE") or "").strip() or None)

    cache_ttl = _env_int("CACHE_TTL", 0)
    if cache_ttl < 0:
        raise RuntimeError(f"CACHE_TTL must not be negative (got {cache_ttl})")

    log_dir_env = (os.getenv("LOG_DIR") or "").strip()

    settings = Settings(
        cache_path=cache_path,
        cache_dir=cache_dir,
        cache_ttl=cache_ttl,
        org_id=(os.getenv("ORG_ID") or "").strip() or None,
        log_level=_parse_log_level(os.getenv("LOG_LEVEL", "INFO"), "LOG_LEVEL"),
        log_dir=Path(log_dir_env).expanduser() if log_dir_env else None,
    )
    logger.debug("Loaded settings from environment: cache_path=%s ttl=%s", settings.cache_path, settings.cache_ttl)
    return settings
