"""Plain-text statistics report."""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

from lib.utils.helpers import _utcnow_iso

from .stats import DispatcherState

TEAM_HEADERS = ("ID", "Speed", "Processed Requests", "Total Busy Time", "Load (%)")
REQUEST_HEADERS = (
    "ID",
    "Generator ID",
    "Team ID",
    "Priority",
    "Time in Cleaner",
    "Time in Buffer",
)
DROPPED_HEADERS = ("ID", "Generator ID", "Priority", "Tried Teams")


def _seconds(value: float) -> str:
    return f"{value:.2f}sec"


def _table(headers: Sequence[str], rows: List[Sequence[str]]) -> List[str]:
    widths = [len(h) for h in headers]
    for row in rows:
        widths = [max(w, len(cell)) for w, cell in zip(widths, row)]

    def line(cells: Sequence[str]) -> str:
        return "| " + " | ".join(c.center(w) for c, w in zip(cells, widths)) + " |"

    sep = "+" + "+".join("-" * (w + 2) for w in widths) + "+"
    return [sep, line(headers), sep, *(line(r) for r in rows), sep]


def render_report(state: DispatcherState) -> str:
    """Render the team and request tables for a finished run."""

    elapsed = state.elapsed()
    team_rows = [
        (
            str(t.id),
            str(t.speed),
            str(t.processed_requests),
            _seconds(t.total_busy_time),
            f"{t.load(elapsed):.2f}",
        )
        for t in state.teams
    ]
    request_rows = [
        (
            str(r.id),
            str(r.generator_id),
            str(r.team_id),
            str(r.priority),
            _seconds(r.time_in_cleaner),
            _seconds(r.time_in_buffer),
        )
        for r in state.requests
    ]

    lines = [
        "Statistics Report",
        f"Generated: {_utcnow_iso()}",
        f"Total time: {_seconds(elapsed)}",
        "",
        "Team Statistics",
        *_table(TEAM_HEADERS, team_rows),
        "",
        "Request Statistics",
        *_table(REQUEST_HEADERS, request_rows),
    ]
    if state.dropped:
        dropped_rows = [
            (str(d.id), str(d.generator_id), str(d.priority), ", ".join(map(str, d.tried_teams)))
            for d in state.dropped
        ]
        lines += ["", "Dropped Requests", *_table(DROPPED_HEADERS, dropped_rows)]
    return "\n".join(lines) + "\n"


def write_report(state: DispatcherState, path: str) -> Path:
    target = Path(path)
    if target.parent != Path("."):
        target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(render_report(state), encoding="utf-8")
    return target
