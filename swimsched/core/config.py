"""Configuration loading and persistence."""

from __future__ import annotations

import copy
import json
import os
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # Python 3.9-3.10
    import tomli as tomllib  # type: ignore[no-redef]


class ConfigError(RuntimeError):
    """Raised when config file parsing fails."""


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def expand_path(path_str: str) -> Path:
    """Expand user/env vars and return absolute path."""
    return Path(os.path.expandvars(path_str)).expanduser().resolve()


def default_data_dir() -> Path:
    """Resolve XDG-style data directory with env override."""
    raw = os.getenv("SWIMSCHED_DATA_DIR", "~/.local/share/swimsched")
    return expand_path(raw)


def default_config_path() -> Path:
    """Get default config file path."""
    raw = os.getenv("SWIMSCHED_CONFIG_FILE", "~/.config/swimsched/config.toml")
    return expand_path(raw)


def _default_config() -> Dict[str, Any]:
    data_dir = default_data_dir()
    return {
        "source": {
            "kind": "files",
            "templates": str(data_dir / "templates.json"),
            "exceptions": str(data_dir / "exceptions.json"),
            "workouts": str(data_dir / "workouts.json"),
        },
        "api": {
            "base_url": "",
            "api_key_env": "SWIMSCHED_API_KEY",
            "access_token_env": "SWIMSCHED_ACCESS_TOKEN",
            "coach_id": "",
            "rate_limit_delay": 0.0,
            "max_retries": 3,
            "timeout_seconds": 30,
        },
        "season": {
            "start": "",
            "end": "",
        },
        "defaults": {
            "output_format": "pretty",
            "swimmer_groups": [],
        },
    }


def _read_config(path: Path) -> Dict[str, Any]:
    suffix = path.suffix.lower()
    text = path.read_text()
    try:
        if suffix in {".toml", ""}:
            loaded = tomllib.loads(text)
        else:
            loaded = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in config file {path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in config file {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigError(f"Config file {path} must contain an object/table at the root")
    return loaded


def _check_config(cfg: Dict[str, Any], path: Path) -> None:
    kind = cfg.get("source", {}).get("kind")
    if kind not in {"files", "api"}:
        raise ConfigError(f"source.kind in {path} must be 'files' or 'api', got {kind!r}")
    for key in ("start", "end"):
        raw = cfg.get("season", {}).get(key)
        if not raw:
            continue
        try:
            date.fromisoformat(str(raw))
        except ValueError as exc:
            raise ConfigError(f"season.{key} in {path} is not a YYYY-MM-DD date: {raw!r}") from exc


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load configuration from disk, merged with defaults."""
    cfg_path = path or default_config_path()
    cfg = _default_config()

    if cfg_path.exists():
        cfg = _deep_merge(cfg, _read_config(cfg_path))

    _check_config(cfg, cfg_path)
    return cfg


def _toml_literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(value, list):
        items = ", ".join(_toml_literal(item) for item in value if item is not None)
        return f"[{items}]"
    raise TypeError(f"Unsupported TOML value type: {type(value)!r}")


def _dict_to_toml(data: Dict[str, Any], prefix: Optional[str] = None) -> str:
    lines = []
    plain_keys = []
    nested_keys = []

    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, dict):
            nested_keys.append((key, value))
        else:
            plain_keys.append((key, value))

    if prefix is not None:
        lines.append(f"[{prefix}]")

    for key, value in plain_keys:
        lines.append(f"{key} = {_toml_literal(value)}")

    if plain_keys and nested_keys:
        lines.append("")

    for index, (key, value) in enumerate(nested_keys):
        table_name = key if prefix is None else f"{prefix}.{key}"
        lines.append(_dict_to_toml(value, prefix=table_name))
        if index != len(nested_keys) - 1:
            lines.append("")

    return "\n".join(lines)


def save_config(config: Dict[str, Any], path: Optional[Path] = None) -> Path:
    """Save configuration to disk as TOML (default) or JSON."""
    cfg_path = path or default_config_path()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)

    if cfg_path.suffix.lower() == ".json":
        cfg_path.write_text(json.dumps(config, indent=2) + "\n")
        return cfg_path

    cfg_path.write_text(_dict_to_toml(config).strip() + "\n")
    return cfg_path


def resolve_source_path(config: Dict[str, Any], key: str, explicit: Optional[Path] = None) -> Path:
    """Resolve a templates/exceptions/workouts file with CLI override first."""
    if explicit is not None:
        return explicit.expanduser().resolve()
    env_name = f"SWIMSCHED_{key.upper()}_FILE"
    raw = os.getenv(env_name) or config.get("source", {}).get(key)
    if not raw:
        raw = str(default_data_dir() / f"{key}.json")
    return expand_path(raw)


def resolve_api_settings(config: Dict[str, Any]) -> Dict[str, Any]:
    """Collect API connection settings, reading secrets from the environment."""
    api_cfg = config.get("api", {})
    base_url = os.getenv("SWIMSCHED_API_URL") or api_cfg.get("base_url") or ""
    api_key = os.getenv(str(api_cfg.get("api_key_env") or "SWIMSCHED_API_KEY")) or ""
    if not base_url or not api_key:
        raise ConfigError(
            "API source needs api.base_url (or SWIMSCHED_API_URL) and an API key in "
            f"${api_cfg.get('api_key_env') or 'SWIMSCHED_API_KEY'}"
        )
    return {
        "base_url": base_url,
        "api_key": api_key,
        "access_token": os.getenv(str(api_cfg.get("access_token_env") or "SWIMSCHED_ACCESS_TOKEN")) or None,
        "rate_limit_delay": float(api_cfg.get("rate_limit_delay", 0.0)),
        "max_retries": int(api_cfg.get("max_retries", 3)),
        "timeout_seconds": int(api_cfg.get("timeout_seconds", 30)),
    }
