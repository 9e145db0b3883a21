from __future__ import annotations

import hashlib
import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple

import yaml

from .models import GameSettings, WinType

ENV_PREFIX = "BINGO_ROOM_"

PATH_KEYS = ("out_cards", "out_report", "out_room", "log_file")


def _read_config_file(config_path: Path | None) -> Dict[str, Any]:
    if not config_path:
        return {}
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    suffix = config_path.suffix.lower()
    text = config_path.read_text(encoding="utf-8")
    if suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
        if not isinstance(data, dict):
            raise ValueError("Top-level YAML config must be a mapping")
        return data
    if suffix == ".json":
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("Top-level JSON config must be a mapping")
        return data
    raise ValueError(f"Unsupported config extension: {suffix}")


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _collect_env_vars(env: Mapping[str, str]) -> Dict[str, Any]:
    """Map ENV variables with BINGO_ROOM_ prefix to config keys.

    We use an explicit map to avoid ambiguity. Keys not present are ignored.
    """
    mapping: Dict[str, str] = {
        # Game
        f"{ENV_PREFIX}FORMAT": "format",
        f"{ENV_PREFIX}MAX_CARDS_PER_PLAYER": "max_cards_per_player",
        f"{ENV_PREFIX}WIN_CONDITIONS": "win_conditions",
        f"{ENV_PREFIX}AUTO_MARK": "auto_mark",
        f"{ENV_PREFIX}BALL_INTERVAL": "ball_interval",
        # Simulation
        f"{ENV_PREFIX}PLAYERS": "players",
        f"{ENV_PREFIX}CARDS_PER_PLAYER": "cards_per_player",
        f"{ENV_PREFIX}COUNT": "count",
        # Seed
        f"{ENV_PREFIX}SEED_VALUE": "seed.value",
        f"{ENV_PREFIX}SEED_ENGINE": "seed.engine",
        # Output & UX
        f"{ENV_PREFIX}LOG_LEVEL": "log_level",
        f"{ENV_PREFIX}LOG_FORMAT": "log_format",
        f"{ENV_PREFIX}LOG_FILE": "log_file",
        f"{ENV_PREFIX}OUT_CARDS": "out_cards",
        f"{ENV_PREFIX}OUT_REPORT": "out_report",
        f"{ENV_PREFIX}OUT_ROOM": "out_room",
    }

    result: Dict[str, Any] = {}
    for env_key, cfg_key in mapping.items():
        if env_key not in env:
            continue
        raw = env[env_key]
        if cfg_key in {
            "max_cards_per_player",
            "ball_interval",
            "players",
            "cards_per_player",
            "count",
            "seed.value",
        }:
            try:
                result[cfg_key] = int(raw)
            except ValueError:
                result[cfg_key] = raw
        elif cfg_key == "auto_mark":
            result[cfg_key] = _parse_bool(raw)
        elif cfg_key == "win_conditions":
            result[cfg_key] = _parse_list(raw)
        else:
            result[cfg_key] = raw

    return result


def _set_nested(config: Dict[str, Any], dotted_key: str, value: Any) -> None:
    parts = dotted_key.split(".")
    cursor = config
    for part in parts[:-1]:
        if part not in cursor or not isinstance(cursor[part], dict):
            cursor[part] = {}
        cursor = cursor[part]
    cursor[parts[-1]] = value


def _apply_overrides(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = json.loads(json.dumps(base))  # deep copy via JSON
    for key, value in overrides.items():
        if "." in key:
            _set_nested(merged, key, value)
        else:
            merged[key] = value
    return merged


def canonical_json_dumps(data: Any) -> str:
    return json.dumps(data, ensure_ascii=True, sort_keys=True, separators=(",", ":"))


def compute_params_hash(resolved: Mapping[str, Any]) -> str:
    include = {
        "format",
        "max_cards_per_player",
        "win_conditions",
        "auto_mark",
        "players",
        "cards_per_player",
        "count",
        "seed.engine",
        "seed.value",
    }

    def extract(path: str, source: Mapping[str, Any]) -> Any:
        cur: Any = source
        for part in path.split("."):
            if not isinstance(cur, Mapping) or part not in cur:
                return None
            cur = cur[part]
        return cur

    contract: Dict[str, Any] = {}
    for item in include:
        value = extract(item, resolved)
        if value is not None:
            contract[item] = value

    # win condition order is irrelevant
    if isinstance(contract.get("win_conditions"), list):
        contract["win_conditions"] = sorted(set(str(x) for x in contract["win_conditions"]))

    digest = hashlib.sha256(canonical_json_dumps(contract).encode("utf-8")).hexdigest()
    return f"sha256:{digest}"


def resolve_paths(
    resolved: Dict[str, Any],
    config_file: Path | None,
    cli_overrides: Dict[str, Any],
) -> Dict[str, Any]:
    """Normalize paths per policy.

    - Paths from config file: resolve relative to config directory
    - Paths from CLI: resolve relative to CWD
    """
    cwd = Path.cwd()
    cfg_dir = config_file.parent if config_file else None

    def normalize(path_value: str | None, is_cli: bool) -> str | None:
        if path_value is None or path_value == "":
            return None
        p = Path(path_value)
        if p.is_absolute():
            return str(p)
        base = cwd if is_cli else (cfg_dir or cwd)
        return str((base / p).resolve())

    result = dict(resolved)
    cli_keys = {k for k in cli_overrides if k in PATH_KEYS}
    for key in PATH_KEYS:
        value = resolved.get(key)
        if value is None:
            continue
        result[key] = normalize(str(value), key in cli_keys)

    return result


def resolve_parameters(
    *,
    config_path_str: str | None,
    cli_overrides: Dict[str, Any],
    env: Mapping[str, str] | None = None,
) -> Tuple[Dict[str, Any], str, Path | None]:
    """Resolve parameters with precedence CLI > ENV > config > defaults.

    Returns (resolved_params, params_hash, config_path)
    """
    config_path = Path(config_path_str).resolve() if config_path_str else None
    file_cfg = _read_config_file(config_path) if config_path else {}
    env_map = _collect_env_vars(os.environ if env is None else env)

    defaults: Dict[str, Any] = {
        "format": "75",
        "max_cards_per_player": 4,
        "win_conditions": ["line", "full_house"],
        "auto_mark": True,
        "ball_interval": 0,
        "players": 4,
        "cards_per_player": 1,
        "count": 10,
        "seed": {"engine": "py_random"},
        "log_level": "INFO",
        "log_format": "text",
    }

    # Merge: config > defaults, then ENV, then CLI
    merged = _apply_overrides(defaults, file_cfg)
    merged = _apply_overrides(merged, env_map)
    merged = _apply_overrides(merged, cli_overrides)

    merged = resolve_paths(merged, config_path, cli_overrides)

    params_hash = compute_params_hash(merged)
    return merged, params_hash, config_path


def settings_from_config(resolved: Mapping[str, Any]) -> GameSettings:
    conditions = resolved.get("win_conditions") or []
    if isinstance(conditions, str):
        conditions = _parse_list(conditions)
    return GameSettings(
        format=str(resolved.get("format", "75")),
        max_cards_per_player=int(resolved.get("max_cards_per_player", 4)),
        win_conditions=frozenset(WinType(str(w).lower()) for w in conditions),
        auto_mark=bool(resolved.get("auto_mark", True)),
        ball_interval=int(resolved.get("ball_interval", 0)),
    )
