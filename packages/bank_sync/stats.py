"""Per-backend save statistics and their terminal rendering.

Each backend returns one :class:`SaveStats` from ``save_transactions``. Stats
are never merged across backends; every backend's result is rendered on its
own (see :func:`stats_string`).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from .hashing import format_amount
from .models import TransactionRow
from .timer import Timer

# Rows listed per highlighted group before collapsing into "and N more".
MAX_HIGHLIGHTED_ROWS = 10


@dataclass(slots=True)
class SaveStats:
    """Outcome counts for one backend run.

    Backends fill this in as they go; ``total`` is the number of canonical
    transactions the backend was handed.
    """

    name: str
    table: str | None = None
    total: int = 0
    added: int = 0
    pending: int = 0
    existing: int = 0
    other_skipped: int = 0
    highlighted_transactions: dict[str, list[TransactionRow]] = field(default_factory=dict)

    @property
    def skipped(self) -> int:
        return self.pending + self.existing + self.other_skipped


def create_save_stats(
    name: str,
    table: str | None,
    txns: Sequence[TransactionRow],
    *,
    highlighted: Iterable[str] = (),
) -> SaveStats:
    """Start a stats record for ``txns`` with empty highlighted groups."""

    return SaveStats(
        name=name,
        table=table,
        total=len(txns),
        highlighted_transactions={group: [] for group in highlighted},
    )


def _fmt_seconds(seconds: float) -> str:
    return f"{seconds:.2f}s"


def steps_string(steps: Sequence[Timer], *, indent: str = "\t") -> str:
    lines = []
    for step in steps:
        if step.is_open:
            lines.append(f"{indent}{step.name}")
        else:
            lines.append(f"{indent}{step.name} ({_fmt_seconds(step.duration)})")
    return "\n".join(lines)


def _row_line(tx: TransactionRow) -> str:
    return f"{tx.description}: {format_amount(tx.charged_amount)}"


def highlighted_string(groups: Mapping[str, Sequence[TransactionRow]]) -> str:
    blocks = []
    for group, rows in groups.items():
        if not rows:
            continue
        lines = [f"\t{group} ({len(rows)}):"]
        lines.extend(f"\t\t{_row_line(tx)}" for tx in rows[:MAX_HIGHLIGHTED_ROWS])
        if len(rows) > MAX_HIGHLIGHTED_ROWS:
            lines.append(f"\t\tand {len(rows) - MAX_HIGHLIGHTED_ROWS} more")
        blocks.append("\n".join(lines))
    return "\n".join(blocks)


def stats_string(stats: SaveStats, duration: float, steps: Sequence[Timer] = ()) -> str:
    """Render a backend's terminal status message."""

    header = f"📝 {stats.name}" + (f" ({stats.table})" if stats.table else "")
    lines = [header, f"\t➕ Added {stats.added}"]
    if stats.skipped:
        lines.append(
            f"\t🚫 Skipped {stats.skipped} "
            f"({stats.existing} existing, {stats.pending} pending, {stats.other_skipped} other)"
        )
    highlighted = highlighted_string(stats.highlighted_transactions)
    if highlighted:
        lines.append(highlighted)
    lines.append(f"\ttook {_fmt_seconds(duration)}")
    if steps:
        lines.append(steps_string(steps, indent="\t\t"))
    return "\n".join(lines)


__all__ = [
    "MAX_HIGHLIGHTED_ROWS",
    "SaveStats",
    "create_save_stats",
    "steps_string",
    "highlighted_string",
    "stats_string",
]
