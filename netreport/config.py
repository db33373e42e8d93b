from __future__ import annotations

import logging
import os
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml

PROJECT_DIR = Path(__file__).resolve().parents[1]
"""Root of the source tree (holds ``config.example.yaml``)."""

LOGGER = logging.getLogger(__name__)

CONFIG_ENV_VAR = "NETREPORT_CONFIG"
VALID_LOG_LEVELS: frozenset[str] = frozenset({"critical", "error", "warning", "info", "debug"})

DEFAULT_CONFIG: dict[str, Any] = {
    "server": {"host": "0.0.0.0", "port": 8000, "log_level": "info"},
    "collaborators": {
        "alerts_url": "http://localhost:8000/api/alerts",
        "interventions_url": "http://localhost:8000/api/interventions",
        "maintenance_url": "http://localhost:8000/api/maintenances",
        "timeout_s": 15.0,
    },
    "storage": {
        "reports_db_path": "data/reports.db",
    },
    "reports": {
        "output_dir": "reports",
        "supplementary_image_dir": "temp",
        "supplementary_images": ["image1.jpg", "image2.png"],
        "chart_workers": 3,
    },
}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _resolve_config_path(path_text: str, config_path: Path) -> Path:
    path = Path(path_text)
    if path.is_absolute():
        return path
    return config_path.resolve().parent / path


def _validate_base_url(name: str, value: str) -> str:
    parts = urlsplit(value)
    if parts.scheme not in {"http", "https"} or not parts.netloc:
        raise ValueError(f"collaborators.{name} must be an http(s) URL, got {value!r}")
    return value.rstrip("/")


@dataclass(slots=True)
class ServerConfig:
    host: str
    port: int
    log_level: str

    def __post_init__(self) -> None:
        if not isinstance(self.port, int) or not (1 <= self.port <= 65535):
            raise ValueError(f"server.port must be 1-65535, got {self.port!r}")
        level = str(self.log_level).strip().lower()
        if level not in VALID_LOG_LEVELS:
            LOGGER.warning("server.log_level=%r is not recognised; using 'info'", self.log_level)
            level = "info"
        object.__setattr__(self, "log_level", level)


@dataclass(slots=True)
class CollaboratorsConfig:
    alerts_url: str
    interventions_url: str
    maintenance_url: str
    timeout_s: float

    def __post_init__(self) -> None:
        for name in ("alerts_url", "interventions_url", "maintenance_url"):
            object.__setattr__(self, name, _validate_base_url(name, str(getattr(self, name))))
        if not isinstance(self.timeout_s, (int, float)) or self.timeout_s <= 0:
            LOGGER.warning(
                "collaborators.timeout_s=%s is not positive; using default %s",
                self.timeout_s,
                DEFAULT_CONFIG["collaborators"]["timeout_s"],
            )
            object.__setattr__(self, "timeout_s", DEFAULT_CONFIG["collaborators"]["timeout_s"])


@dataclass(slots=True)
class StorageConfig:
    reports_db_path: Path


@dataclass(slots=True)
class ReportsConfig:
    output_dir: Path
    supplementary_image_dir: Path
    supplementary_images: tuple[str, ...]
    chart_workers: int

    def __post_init__(self) -> None:
        if not isinstance(self.chart_workers, int) or self.chart_workers < 1:
            LOGGER.warning(
                "reports.chart_workers=%s is below minimum 1; clamped to 1", self.chart_workers
            )
            object.__setattr__(self, "chart_workers", 1)
        for name in self.supplementary_images:
            if Path(name).name != name:
                raise ValueError(
                    f"reports.supplementary_images entries must be bare file names, got {name!r}"
                )


@dataclass(slots=True)
class AppConfig:
    server: ServerConfig
    collaborators: CollaboratorsConfig
    storage: StorageConfig
    reports: ReportsConfig
    config_path: Path


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a YAML object at the top level.")
        return data


def default_config_path() -> Path:
    env_path = os.getenv(CONFIG_ENV_VAR, "").strip()
    if env_path:
        return Path(env_path)
    return PROJECT_DIR / "config.yaml"


def documented_default_config() -> dict[str, Any]:
    """Return runtime defaults in the shape documented by config.example.yaml."""
    return deepcopy(DEFAULT_CONFIG)


def load_config(config_path: Path | None = None) -> AppConfig:
    path = (config_path or default_config_path()).resolve()
    override = _read_config_file(path)
    merged = _deep_merge(DEFAULT_CONFIG, override)

    server_cfg = merged["server"]
    collab_cfg = merged["collaborators"]
    reports_cfg = merged["reports"]
    images_raw = reports_cfg.get("supplementary_images") or []
    if not isinstance(images_raw, list):
        raise ValueError("reports.supplementary_images must be a list of file names.")

    app_config = AppConfig(
        server=ServerConfig(
            host=str(server_cfg["host"]),
            port=int(server_cfg["port"]),
            log_level=str(server_cfg.get("log_level", "info")),
        ),
        collaborators=CollaboratorsConfig(
            alerts_url=str(collab_cfg["alerts_url"]),
            interventions_url=str(collab_cfg["interventions_url"]),
            maintenance_url=str(collab_cfg["maintenance_url"]),
            timeout_s=float(collab_cfg.get("timeout_s", 15.0)),
        ),
        storage=StorageConfig(
            reports_db_path=_resolve_config_path(
                str(merged["storage"]["reports_db_path"]),
                path,
            ),
        ),
        reports=ReportsConfig(
            output_dir=_resolve_config_path(str(reports_cfg["output_dir"]), path),
            supplementary_image_dir=_resolve_config_path(
                str(reports_cfg["supplementary_image_dir"]), path
            ),
            supplementary_images=tuple(str(name) for name in images_raw),
            chart_workers=int(reports_cfg.get("chart_workers", 3)),
        ),
        config_path=path,
    )
    LOGGER.info(
        "Loaded config=%s reports_db_path=%s output_dir=%s",
        app_config.config_path,
        app_config.storage.reports_db_path,
        app_config.reports.output_dir,
    )
    return app_config
