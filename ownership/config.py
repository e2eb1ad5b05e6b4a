from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os
import yaml

from ownership.domain.constants import DEFAULT_CACHE_TTL_SECONDS, DEFAULT_INTEGRATION_ANNOTATIONS
from ownership.loggingSetup import mapLogLevel

VIEW_MODES = ("owned", "all")


@dataclass(frozen=True)
class Settings:
    # Catalog
    catalog_url: str | None = None
    catalog_token: str | None = None
    timeout_seconds: float = 5.0
    retries: int = 1
    retry_backoff_seconds: float = 0.2

    # Resolver
    enrich_budget_seconds: float | None = 10.0
    cache_enabled: bool = True
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    integration_annotations: tuple[str, ...] = DEFAULT_INTEGRATION_ANNOTATIONS
    default_view: str = "owned"

    # Logging
    log_dir: str = "./logs"
    log_level: str = "INFO"


@dataclass(frozen=True)
class LoadedSettings:
    settings: Settings
    sources_used: list[str]


def _read_yaml_config(path: Path) -> dict:
    if not path.exists():
        return {}
    if not path.is_file():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            return {}
        return data


def _env_get(name: str) -> str | None:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


def _parse_bool(v) -> bool:
    if isinstance(v, bool):
        return v
    vv = str(v).strip().lower()
    if vv in ("1", "true", "yes", "y"):
        return True
    if vv in ("0", "false", "no", "n"):
        return False
    raise ValueError(f"Invalid boolean value: {v}")


def _parse_float(v) -> float:
    try:
        return float(v)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid number value: {v}") from exc


def _parse_int(v) -> int:
    try:
        return int(v)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid integer value: {v}") from exc


def _parse_list(v) -> tuple[str, ...]:
    if isinstance(v, str):
        items = v.split(",")
    elif isinstance(v, (list, tuple)):
        items = [str(item) for item in v]
    else:
        raise ValueError(f"Invalid list value: {v}")
    return tuple(item.strip() for item in items if item.strip())


_ENV_NAMES = {
    "catalog_url": "OWNERSHIP_CATALOG_URL",
    "catalog_token": "OWNERSHIP_CATALOG_TOKEN",
    "timeout_seconds": "OWNERSHIP_TIMEOUT_SECONDS",
    "retries": "OWNERSHIP_RETRIES",
    "retry_backoff_seconds": "OWNERSHIP_RETRY_BACKOFF_SECONDS",
    "enrich_budget_seconds": "OWNERSHIP_ENRICH_BUDGET_SECONDS",
    "cache_enabled": "OWNERSHIP_CACHE_ENABLED",
    "cache_ttl_seconds": "OWNERSHIP_CACHE_TTL_SECONDS",
    "integration_annotations": "OWNERSHIP_INTEGRATION_ANNOTATIONS",
    "default_view": "OWNERSHIP_DEFAULT_VIEW",
    "log_dir": "OWNERSHIP_LOG_DIR",
    "log_level": "OWNERSHIP_LOG_LEVEL",
}

_PARSERS = {
    "timeout_seconds": _parse_float,
    "retries": _parse_int,
    "retry_backoff_seconds": _parse_float,
    "enrich_budget_seconds": _parse_float,
    "cache_enabled": _parse_bool,
    "cache_ttl_seconds": _parse_float,
    "integration_annotations": _parse_list,
}


def load_settings(
    config_path: str | None,
    cli_overrides: dict,
) -> LoadedSettings:
    """
    Priority: CLI > ENV > config > defaults
    """
    sources: list[str] = []
    defaults = Settings()

    # 1) config file
    cfg: dict = {}
    if config_path:
        cfg = _read_yaml_config(Path(config_path))
        if cfg:
            sources.append("config")

    # 2) env
    env = {key: _env_get(name) for key, name in _ENV_NAMES.items()}
    if any(v is not None for v in env.values()):
        sources.append("env")

    merged = {key: cfg.get(key, getattr(defaults, key)) for key in _ENV_NAMES}

    for key, value in env.items():
        if value is not None:
            merged[key] = value

    # 3) apply CLI overrides (only those explicitly passed)
    if any(v is not None for v in cli_overrides.values()):
        sources.append("cli")

    for k, v in cli_overrides.items():
        if v is None:
            continue
        merged[k] = v

    for key, parser in _PARSERS.items():
        if merged.get(key) is not None:
            merged[key] = parser(merged[key])

    default_view = str(merged["default_view"]).strip().lower()
    if default_view not in VIEW_MODES:
        raise ValueError(f"Invalid default_view: {merged['default_view']} (expected owned|all)")
    if merged["cache_ttl_seconds"] < 0:
        raise ValueError("cache_ttl_seconds must be >= 0")
    mapLogLevel(merged["log_level"])

    settings = Settings(
        catalog_url=merged["catalog_url"],
        catalog_token=merged["catalog_token"],
        timeout_seconds=merged["timeout_seconds"],
        retries=merged["retries"],
        retry_backoff_seconds=merged["retry_backoff_seconds"],
        enrich_budget_seconds=merged["enrich_budget_seconds"],
        cache_enabled=bool(merged["cache_enabled"]),
        cache_ttl_seconds=merged["cache_ttl_seconds"],
        integration_annotations=merged["integration_annotations"],
        default_view=default_view,
        log_dir=merged["log_dir"],
        log_level=merged["log_level"],
    )

    return LoadedSettings(settings=settings, sources_used=sources)
