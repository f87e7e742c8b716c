from __future__ import annotations

"""Headless entry point: load a day and print the rolling window of rows.

Environment:
 - ``ROUTINE_PLANNER_CONFIG``: path to a JSON planner config (default: built-in household).
 - ``ROUTINE_PLANNER_TZ``: IANA timezone overriding the configured one.
 - ``ROUTINE_PLANNER_DATA``: directory for logs (default: ``data/`` next to ``src/``).
"""

import argparse
import logging
import os
import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import List, Optional, Sequence

from PyQt6.QtCore import QCoreApplication

from .config import PlannerConfig, load_config, validate_config
from .household import default_config
from .logging_setup import configure_logging
from .models import AnyEvent
from .rows import Row, current_row_index, source_event_for_cell
from .session import PlannerSession
from .sim_clock import SIMULATED, SYSTEM, SimClock
from .timeutil import hhmm_of, local_date

APP_NAME = "Routine Planner"
CONFIG_ENV = "ROUTINE_PLANNER_CONFIG"
TZ_ENV = "ROUTINE_PLANNER_TZ"
DATA_ENV = "ROUTINE_PLANNER_DATA"

_log = logging.getLogger(__name__)


@dataclass(slots=True)
class AppState:
    data_dir: Path
    config: PlannerConfig
    session: PlannerSession
    clock: SimClock


def resolve_config(environ: Optional[dict] = None) -> PlannerConfig:
    env = os.environ if environ is None else environ
    path = env.get(CONFIG_ENV)
    tz_name = env.get(TZ_ENV)
    if path:
        config = load_config(Path(path))
        if tz_name:
            config = validate_config(replace(config, timezone=tz_name))
        return config
    return validate_config(default_config(timezone=tz_name) if tz_name else default_config())


def get_app_state(data_dir: Optional[Path] = None, clock: Optional[SimClock] = None) -> AppState:
    if data_dir is None:
        data_dir = Path(os.environ.get(DATA_ENV) or Path(__file__).resolve().parent.parent.parent / "data")
    data_dir.mkdir(parents=True, exist_ok=True)
    configure_logging(data_dir)
    config = resolve_config()
    session = PlannerSession(config)
    clock = clock or SimClock()
    _log.info(
        "app state ready",
        extra={"_json_data_dir": str(data_dir), "_json_timezone": config.timezone},
    )
    return AppState(data_dir=data_dir, config=config, session=session, clock=clock)


# --- Text rendering ---------------------------------------------------------

def _cell_text(person_id: str, row: Row, events: Sequence[AnyEvent], session: PlannerSession, now_ms: int) -> str:
    direct = row.cell(person_id)
    ev = direct or source_event_for_cell(person_id, row, events)
    if ev is None:
        return ""
    text = ev.title if direct is not None else f"| {ev.title}"
    if not ev.synthetic:
        if ev.completed_at_ms is not None and ev.completed_at_ms <= now_ms:
            text += " [done]"
        elif direct is not None and ev.start_ms <= now_ms < ev.end_ms:
            hint = session.why_blocked(ev.id, now_ms)
            if hint:
                text += f" ({hint})"
    return text


def format_window(session: PlannerSession, now_ms: int, rows: Optional[List[Row]] = None, width: int = 28) -> str:
    """Plain-text grid of ``rows`` (default: the visible window) with the current row marked."""
    tz = session.config.tz
    all_rows = session.rows(now_ms)
    shown = rows if rows is not None else session.visible_rows(now_ms)
    events = session.effective_events(now_ms)
    current = all_rows[current_row_index(all_rows, now_ms)] if all_rows else None
    people = session.people

    header = "        " + "".join(f"{(p.emoji + ' ' + p.name).strip():<{width}}" for p in people)
    lines = [f"{APP_NAME} {local_date(now_ms, tz).isoformat()} {hhmm_of(now_ms, tz)}", header]
    for row in shown:
        marker = ">" if current is not None and row.time_ms == current.time_ms else " "
        cells = "".join(
            f"{_cell_text(p.id, row, events, session, now_ms)[:width - 1]:<{width}}" for p in people
        )
        lines.append(f"{marker} {hhmm_of(row.time_ms, tz)}  {cells}".rstrip())
    return "\n".join(lines)


# --- Entry point ------------------------------------------------------------

def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="routine-planner", description=APP_NAME)
    parser.add_argument("--at", help="start at this instant (ISO timestamp); implies simulated time")
    parser.add_argument("--speed", type=float, default=60.0, help="real seconds per simulated hour")
    parser.add_argument("--data-dir", type=Path, default=None)
    parser.add_argument("--once", action="store_true", help="print the window once and exit")
    return parser.parse_args(list(argv))


def run(argv: Optional[list[str]] = None) -> int:  # pragma: no cover
    if argv is None:
        argv = sys.argv
    args = _parse_args(argv[1:])
    app = QCoreApplication.instance() or QCoreApplication(argv)
    state = get_app_state(args.data_dir, SimClock(SIMULATED if args.at else SYSTEM, seconds_per_hour=args.speed))
    clock = state.clock
    if args.at:
        clock.jump_to(args.at)
    now = clock.now_ms()
    state.session.load_day(local_date(now, state.config.tz))
    print(format_window(state.session, now))
    if args.once:
        return 0

    last_minute = {"value": now // 60_000}

    def _on_tick(now_ms: int) -> None:
        day = local_date(now_ms, state.config.tz)
        if day != state.session.day:
            state.session.load_day(day)
        minute = now_ms // 60_000
        if minute != last_minute["value"]:
            last_minute["value"] = minute
            print()
            print(format_window(state.session, now_ms))

    clock.tick.connect(_on_tick)
    if clock.mode == SIMULATED:
        clock.play()
    else:
        clock.start()
    try:
        return app.exec()
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(run())
