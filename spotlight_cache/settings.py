from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from spotlight_cache.errors import ConfigError


DEFAULT_CONFIG_PATH = "config/spotlight.yaml"

# env var -> (settings key, converter)
_ENV_OVERRIDES = {
    "SPOTLIGHT_API_URL": ("api_url", str),
    "SPOTLIGHT_CACHE_BASE_PATH": ("cache_base_path", str),
    "SPOTLIGHT_COMPRESSION_QUALITY": ("compression_quality", int),
    "SPOTLIGHT_UPDATE_INTERVAL_HOURS": ("update_interval_hours", float),
}


@dataclass
class Settings:
    """Process-wide configuration. Build it with `load_settings()`."""
    api_url: str
    cache_base_path: str = "cache"
    compression_quality: int = 75
    update_interval_hours: float = 24.0
    startup_delay_s: float = 5.0
    request_timeout_s: float = 30.0
    cache_file_name: str = "spotlight_cache.json"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    def __post_init__(self) -> None:
        if not self.api_url or not str(self.api_url).strip():
            raise ConfigError("spotlight.api_url not configured (set it in the config file or SPOTLIGHT_API_URL)")
        try:
            self.compression_quality = int(self.compression_quality)
            self.update_interval_hours = float(self.update_interval_hours)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid numeric setting: {e}") from e
        if not 0 <= self.compression_quality <= 100:
            raise ConfigError(f"compression_quality must be within 0..100, got {self.compression_quality}")
        if self.update_interval_hours <= 0:
            raise ConfigError(f"update_interval_hours must be positive, got {self.update_interval_hours}")

    # -------- derived paths --------

    @property
    def cache_base_dir(self) -> Path:
        # relative paths are taken against the working directory (the container's /app)
        return Path(self.cache_base_path).resolve()

    @property
    def image_dir(self) -> Path:
        return self.cache_base_dir / "images"

    @property
    def data_dir(self) -> Path:
        return self.cache_base_dir / "data"

    @property
    def metadata_path(self) -> Path:
        return self.data_dir / self.cache_file_name

    @property
    def update_interval_s(self) -> float:
        return self.update_interval_hours * 3600.0

    def ensure_dirs(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.image_dir.mkdir(parents=True, exist_ok=True)


def _read_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        doc = yaml.safe_load(f) or {}
    if not isinstance(doc, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    section = doc.get("spotlight", {}) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"{path}: 'spotlight' must be a mapping")
    return dict(section)


def load_settings(path: Optional[str] = None, env: Optional[Dict[str, str]] = None) -> Settings:
    """
    Build Settings from YAML + environment.

    Precedence (highest first):
      - SPOTLIGHT_* environment variables
      - the YAML file (`path`, else env SPOTLIGHT_CONFIG, else config/spotlight.yaml)
      - dataclass defaults

    A missing YAML file is fine; a missing api_url is not.
    """
    env = os.environ if env is None else env
    cfg_path = Path(path or env.get("SPOTLIGHT_CONFIG") or DEFAULT_CONFIG_PATH)

    values: Dict[str, Any] = {}
    if cfg_path.exists():
        values.update(_read_yaml(cfg_path))

    for var, (key, conv) in _ENV_OVERRIDES.items():
        raw = env.get(var)
        if raw is None or raw == "":
            continue
        try:
            values[key] = conv(raw)
        except ValueError as e:
            raise ConfigError(f"{var}={raw!r}: {e}") from e

    known = set(Settings.__dataclass_fields__)
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"unknown spotlight settings: {', '.join(unknown)}")

    values.setdefault("api_url", "")
    return Settings(**values)
