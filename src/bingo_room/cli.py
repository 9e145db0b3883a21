from __future__ import annotations

import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from .config import resolve_parameters, settings_from_config
from .coordinator import Coordinator
from .errors import BingoError, ExhaustedError
from .generator import generate_many
from .logging_setup import setup_logging
from .models import WIN_TYPE_LABELS, CardFormat, Player, WinType
from .rng import create_rng
from .serialize import (
    build_run_meta,
    emit_cards_json,
    emit_report_json,
    emit_room_json,
    read_json,
)
from .store import InMemoryRoomStore
from .verify import validate_records
from .verify import verify as verify_cards
from .version import __version__

app = typer.Typer(help="Multiplayer bingo room engine CLI")
logger = logging.getLogger("bingo_room.cli")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(0)


@app.callback()
def common_options(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show application version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    pass


def _resolve(config: Optional[str], overrides: Dict[str, Any]):
    resolved, params_hash, _cfg = resolve_parameters(
        config_path_str=config,
        cli_overrides={k: v for k, v in overrides.items() if v is not None},
    )
    setup_logging(
        level=str(resolved.get("log_level", "INFO")),
        log_file=resolved.get("log_file"),
        json_format=(str(resolved.get("log_format", "text")) == "json"),
    )
    return resolved, params_hash


def _seed(resolved: Dict[str, Any]) -> Optional[int]:
    value = resolved.get("seed", {}).get("value")
    return None if value is None else int(value)


@app.command()
def cards(
    config: str = typer.Option(None, "--config", help="Path to config file (YAML/JSON)"),
    fmt: str = typer.Option(None, "--format", help="75|90"),
    count: int = typer.Option(None, "--count", help="Number of cards to generate"),
    seed: int = typer.Option(None, "--seed", help="Seed for reproducible output"),
    out_cards: str = typer.Option(None, "--out-cards", help="cards.json output path"),
    out_report: str = typer.Option(None, "--out-report", help="report.json output path"),
    log_file: str = typer.Option(None, "--log-file", help="Log file path"),
    log_level: str = typer.Option(None, "--log-level", help="DEBUG|INFO|WARN|ERROR"),
    force: bool = typer.Option(False, "--force", help="Overwrite outputs if they exist"),
    no_mkdirs: bool = typer.Option(False, "--no-mkdirs", help="Do not create parent directories"),
) -> None:
    """Generate a batch of cards and a verification report."""
    resolved, params_hash = _resolve(
        config,
        {
            "format": fmt,
            "count": count,
            "seed.value": seed,
            "out_cards": out_cards,
            "out_report": out_report,
            "log_file": log_file,
            "log_level": log_level,
        },
    )
    try:
        card_format = CardFormat(str(resolved["format"]))
    except ValueError:
        typer.echo(f"Unknown format: {resolved['format']}", err=True)
        raise typer.Exit(2)
    seed_value = _seed(resolved)
    rng_engine = str(resolved.get("seed", {}).get("engine", "py_random"))

    start = time.time()
    batch = generate_many(card_format, int(resolved["count"]), create_rng(rng_engine, seed_value))
    elapsed = time.time() - start
    typer.echo(f"Generated {len(batch)} {card_format.value}-ball cards in {elapsed:.2f}s")

    report = verify_cards(batch, fmt=card_format)
    run_meta = build_run_meta(
        app_version=__version__, params_hash=params_hash, seed=seed_value, rng_engine=rng_engine
    )
    out_cards_path = Path(resolved.get("out_cards") or "cards.json")
    out_report_path = Path(resolved.get("out_report") or "report.json")
    emit_cards_json(
        out_cards_path, cards=batch, run_meta=run_meta, mkdirs=not no_mkdirs, overwrite=force
    )
    emit_report_json(out_report_path, report=report, mkdirs=not no_mkdirs, overwrite=force)
    typer.echo(f"Output files: {out_cards_path}, {out_report_path}")


@app.command()
def play(
    config: str = typer.Option(None, "--config", help="Path to config file (YAML/JSON)"),
    fmt: str = typer.Option(None, "--format", help="75|90"),
    players: int = typer.Option(None, "--players", help="Number of players"),
    cards_per_player: int = typer.Option(None, "--cards", help="Cards per player"),
    win: str = typer.Option(
        None, "--win", help="Comma-separated win conditions, e.g. line,full_house"
    ),
    seed: int = typer.Option(None, "--seed", help="Seed for reproducible draws"),
    out_room: str = typer.Option(None, "--out-room", help="Write the final room snapshot here"),
    log_level: str = typer.Option(None, "--log-level", help="DEBUG|INFO|WARN|ERROR"),
    force: bool = typer.Option(False, "--force", help="Overwrite outputs if they exist"),
) -> None:
    """Simulate a room until someone completes a full house or numbers run out."""
    resolved, _hash = _resolve(
        config,
        {
            "format": fmt,
            "players": players,
            "cards_per_player": cards_per_player,
            "win_conditions": [w.strip() for w in win.split(",") if w.strip()] if win else None,
            "seed.value": seed,
            "out_room": out_room,
            "log_level": log_level,
        },
    )
    try:
        settings = settings_from_config(resolved)
    except ValueError as exc:
        typer.echo(f"Invalid settings: {exc}", err=True)
        raise typer.Exit(2)

    rng = create_rng(str(resolved.get("seed", {}).get("engine", "py_random")), _seed(resolved))
    coordinator = Coordinator(InMemoryRoomStore(), rng)
    n_players = int(resolved["players"])
    n_cards = int(resolved["cards_per_player"])

    try:
        host = Player(id="p1", username="Player 1")
        room = coordinator.create(host, settings)
        for i in range(2, n_players + 1):
            coordinator.join(room.code, Player(id=f"p{i}", username=f"Player {i}"))
        for i in range(1, n_players + 1):
            for _ in range(n_cards):
                coordinator.add_card(room.code, f"p{i}")
        room = coordinator.start(room.code, host.id)
        typer.echo(f"Room {room.code}: {n_players} players, {n_cards} card(s) each")

        stop_on_full_house = WinType.FULL_HOUSE in settings.win_conditions
        while True:
            try:
                result = coordinator.draw(room.code, host.id)
            except ExhaustedError:
                typer.echo("All numbers drawn.")
                break
            room = result.room
            for entry in result.new_winners:
                typer.echo(
                    f"Ball {len(room.drawn_numbers):>2} ({result.number:>2}): "
                    f"{entry.username} - {WIN_TYPE_LABELS[entry.win_type]} on card {entry.card_id}"
                )
            if stop_on_full_house and any(
                w.win_type is WinType.FULL_HOUSE for w in result.new_winners
            ):
                break
        room = coordinator.finish(room.code, host.id)
    except BingoError as exc:
        logger.error("Simulation failed: %s", exc)
        raise typer.Exit(1)

    typer.echo(f"Finished after {len(room.drawn_numbers)} balls, {len(room.winners)} ledger entries")
    if resolved.get("out_room"):
        path = Path(resolved["out_room"])
        emit_room_json(path, room=room, mkdirs=True, overwrite=force)
        typer.echo(f"Room snapshot: {path}")


@app.command()
def verify(
    cards_path: str = typer.Option(..., "--cards", help="Path to cards.json"),
    strict: bool = typer.Option(False, "--strict", help="Fail on any deviation"),
) -> None:
    """Re-validate every card in a cards.json and print the report summary."""
    setup_logging(level="INFO")
    data = read_json(Path(cards_path))
    records = data.get("cards", [])
    batch, violations = validate_records(records)
    for v in violations:
        typer.echo(f"Card #{v['index']} ({v['id']}): {v['reason']}", err=True)

    formats = {c.format for c in batch}
    if len(formats) > 1:
        typer.echo("Mixed card formats in one file", err=True)
        raise typer.Exit(1)
    fmt = formats.pop() if formats else CardFormat.F75
    report = verify_cards(batch, fmt=fmt)
    typer.echo(
        f"{len(batch)} valid / {len(violations)} invalid {fmt.value}-ball cards; "
        f"identical layouts: {len(report['identical_cards'])}; "  # type: ignore[arg-type]
        f"min column p-value: {report['min_p_value']}"
    )
    failed = bool(violations) or not report["ok_no_identical_cards"]
    if strict:
        failed = failed or not report["ok_uniformity"]
    raise typer.Exit(code=1 if failed else 0)


def main(_argv: list[str] | None = None) -> int:
    try:
        app(standalone_mode=True)
        return 0
    except SystemExit as e:
        return int(e.code) if e.code is not None else 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
