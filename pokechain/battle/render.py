"""Rich renderables for battles: HP/EXP bars, creature cards, move list, event log.

Pure functions returning rich objects or markup strings; printing and pacing
belong to the CLI.
"""
from __future__ import annotations
from typing import Iterable, List, Optional

from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.box import ROUNDED

from .core import BattleEvent
from .models import Creature, STATUS_NAMES, STATUS_NONE
from .experience import required_exp
from pokechain.core.types import format_types, type_markup

GREEN = (46, 204, 113)
YELLOW = (241, 196, 15)
RED = (231, 76, 60)

EVENT_STYLES = {
    "critical": "bold yellow",
    "effectiveness": "bold",
    "no_effect": "dim",
    "miss": "dim",
    "fainted": "bold red",
    "status_inflicted": "magenta",
    "status_damage": "magenta",
    "status_skip": "magenta",
    "status_cleared": "cyan",
    "level_up": "bold green",
    "evolved": "bold green",
    "move_learned": "green",
    "exp_gained": "blue",
    "victory": "bold green",
    "defeat": "bold red",
    "aborted": "bold red",
    "fled": "cyan",
    "recovered": "cyan",
    "opponent_appeared": "bold",
}


def _mix(c1, c2, t: float):
    return tuple(int(a + (b - a) * t) for a, b in zip(c1, c2))


def hp_color(cur: int, max_hp: int) -> str:
    ratio = max(0.0, min(1.0, cur / max(1, max_hp)))
    if ratio >= 0.5:
        col = _mix(YELLOW, GREEN, (ratio - 0.5) / 0.5)
    else:
        col = _mix(RED, YELLOW, ratio / 0.5)
    return "#{:02x}{:02x}{:02x}".format(*col)


def hp_bar(cur: int, max_hp: int, width: int = 24) -> str:
    cur = max(0, min(cur, max_hp))
    filled = max(0, min(width, int(round(cur / max(1, max_hp) * width))))
    color = hp_color(cur, max_hp)
    return f"[{color}]{'█' * filled}[/{color}]{'░' * (width - filled)} {cur}/{max_hp}"


def exp_bar(creature: Creature, width: int = 24) -> str:
    need = required_exp(creature.level)
    filled = max(0, min(width, int(creature.exp / max(1, need) * width)))
    return f"[#50a0ff]{'━' * filled}[/#50a0ff]{'-' * (width - filled)} {creature.exp}/{need}"


def status_badge(status: str) -> str:
    if status == STATUS_NONE:
        return ""
    return f"[bold magenta]{status.upper()}[/bold magenta]"


def creature_card(creature: Creature, *, title: Optional[str] = None, show_exp: bool = False) -> Panel:
    lines = [
        f"[bold]{creature.name}[/bold]  Lv.{creature.level}  {format_types(creature.types)} {status_badge(creature.status)}",
        "HP " + hp_bar(creature.current_hp, creature.max_hp),
    ]
    if show_exp:
        lines.append("XP " + exp_bar(creature))
    return Panel("\n".join(lines), title=title, box=ROUNDED, expand=False)


def move_table(creature: Creature) -> Table:
    table = Table(box=ROUNDED, show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Move")
    table.add_column("Type")
    table.add_column("Pow", justify="right")
    table.add_column("Acc", justify="right")
    table.add_column("PP", justify="right")
    for i, m in enumerate(creature.moves, start=1):
        name = f"[dim]{m.name}[/dim]" if m.placeholder else m.name
        pp = f"[red]{m.pp}/{m.max_pp}[/red]" if m.pp == 0 else f"{m.pp}/{m.max_pp}"
        table.add_row(str(i), name, type_markup(m.type), str(m.power or "-"),
                      str(m.accuracy if m.accuracy is not None else "-"), pp)
    return table


def team_table(team: Iterable[Creature], active_index: int = -1) -> Table:
    table = Table(box=ROUNDED, show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Name")
    table.add_column("Lv", justify="right")
    table.add_column("Types")
    table.add_column("HP")
    table.add_column("Status")
    for i, c in enumerate(team):
        marker = "*" if i == active_index else ""
        status = STATUS_NAMES.get(c.status, "") if not c.is_fainted() else "[red]fainted[/red]"
        table.add_row(f"{i + 1}{marker}", c.name, str(c.level), format_types(c.types),
                      hp_bar(c.current_hp, c.max_hp, width=12), status)
    return table


def event_text(event: BattleEvent) -> Text:
    style = EVENT_STYLES.get(event.kind, "")
    return Text(event.text, style=style)


def event_lines(events: Iterable[BattleEvent]) -> List[Text]:
    return [event_text(e) for e in events]


__all__ = [
    "hp_bar", "hp_color", "exp_bar", "status_badge", "creature_card", "move_table", "team_table",
    "event_text", "event_lines",
]
