from __future__ import annotations

import os
from pathlib import Path

import pytest

from bingo_room.config import resolve_parameters, settings_from_config
from bingo_room.models import CardFormat, WinType


def test_env_precedence_over_config(tmp_path: Path, monkeypatch):
    cfg = tmp_path / "config.yaml"
    cfg.write_text("format: '75'\nmax_cards_per_player: 2\n", encoding="utf-8")
    monkeypatch.setenv("BINGO_ROOM_MAX_CARDS_PER_PLAYER", "6")

    resolved, params_hash, _ = resolve_parameters(
        config_path_str=str(cfg), cli_overrides={}, env=os.environ
    )
    assert resolved["max_cards_per_player"] == 6
    assert params_hash.startswith("sha256:")


def test_cli_precedence_over_env(tmp_path: Path, monkeypatch):
    cfg = tmp_path / "config.json"
    cfg.write_text('{"format": "75"}', encoding="utf-8")
    monkeypatch.setenv("BINGO_ROOM_FORMAT", "75")

    resolved, _hash, _ = resolve_parameters(
        config_path_str=str(cfg), cli_overrides={"format": "90"}, env=os.environ
    )
    assert resolved["format"] == "90"


def test_env_lists_and_nested_seed():
    env = {
        "BINGO_ROOM_WIN_CONDITIONS": "line, corners",
        "BINGO_ROOM_SEED_VALUE": "77",
        "BINGO_ROOM_AUTO_MARK": "no",
    }
    resolved, _hash, _ = resolve_parameters(config_path_str=None, cli_overrides={}, env=env)
    assert resolved["win_conditions"] == ["line", "corners"]
    assert resolved["seed"] == {"engine": "py_random", "value": 77}
    assert resolved["auto_mark"] is False


def test_path_normalization_cli_vs_config(tmp_path: Path, monkeypatch):
    cfg_dir = tmp_path / "cfg"
    cfg_dir.mkdir()
    cfg = cfg_dir / "conf.yaml"
    cfg.write_text("out_cards: cards.json\n", encoding="utf-8")

    monkeypatch.chdir(tmp_path)
    resolved, _hash, _ = resolve_parameters(
        config_path_str=str(cfg),
        cli_overrides={"out_report": "rep.json"},
        env={},
    )
    assert Path(resolved["out_cards"]).parent == cfg_dir.resolve()
    assert Path(resolved["out_report"]).parent == tmp_path.resolve()


def test_params_hash_ignores_logging_and_condition_order():
    base = {"format": "75", "win_conditions": ["line", "full_house"], "log_level": "INFO"}
    _, h1, _ = resolve_parameters(config_path_str=None, cli_overrides=base, env={})
    altered = dict(base, log_level="DEBUG", win_conditions=["full_house", "line"])
    _, h2, _ = resolve_parameters(config_path_str=None, cli_overrides=altered, env={})
    assert h1 == h2
    _, h3, _ = resolve_parameters(
        config_path_str=None, cli_overrides=dict(base, format="90"), env={}
    )
    assert h3 != h1


def test_settings_from_config_defaults():
    resolved, _hash, _ = resolve_parameters(config_path_str=None, cli_overrides={}, env={})
    settings = settings_from_config(resolved)
    assert settings.format is CardFormat.F75
    assert settings.win_conditions == {WinType.LINE, WinType.FULL_HOUSE}
    assert settings.max_cards_per_player == 4


def test_settings_from_config_rejects_unknown_condition():
    with pytest.raises(ValueError):
        settings_from_config({"win_conditions": ["bingo"]})


def test_missing_config_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        resolve_parameters(config_path_str=str(tmp_path / "nope.yaml"), cli_overrides={}, env={})
