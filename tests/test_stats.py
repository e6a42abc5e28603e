from decimal import Decimal

from bank_sync import messages
from bank_sync.models import TransactionRow
from bank_sync.stats import (
    MAX_HIGHLIGHTED_ROWS,
    SaveStats,
    create_save_stats,
    highlighted_string,
    stats_string,
)
from bank_sync.timer import Timer

from tests.helpers.fakes import FakeClock


def _row(description: str, amount: str = "-10") -> TransactionRow:
    return TransactionRow(
        company_id="c",
        account="a",
        hash=f"h-{description}",
        unique_id=f"u-{description}",
        date="2024-03-10T08:00:00Z",
        charged_amount=Decimal(amount),
        description=description,
    )


def test_create_save_stats_counts_input_and_opens_groups():
    stats = create_save_stats("SQL", "bank_transactions", [_row("a"), _row("b")], highlighted=("Added",))

    assert stats.total == 2
    assert stats.added == 0
    assert stats.highlighted_transactions == {"Added": []}


def test_skipped_is_sum_of_skip_reasons():
    stats = SaveStats(name="x", pending=1, existing=2, other_skipped=3)

    assert stats.skipped == 6


def test_stats_string_without_skips():
    stats = SaveStats(name="Local JSON", table="out/run.json", added=3)

    assert stats_string(stats, 1.234) == "📝 Local JSON (out/run.json)\n\t➕ Added 3\n\ttook 1.23s"


def test_stats_string_with_skips_and_steps():
    clock = FakeClock(start=0.0, step=0.25)
    connect = Timer("Connecting", clock=clock)
    connect.end()
    stats = SaveStats(name="SQL", table="bank_transactions", added=2, existing=1, pending=1)

    text = stats_string(stats, 1.5, [connect])

    assert text == (
        "📝 SQL (bank_transactions)\n"
        "\t➕ Added 2\n"
        "\t🚫 Skipped 2 (1 existing, 1 pending, 0 other)\n"
        "\ttook 1.50s\n"
        "\t\tConnecting (0.25s)"
    )


def test_stats_string_lists_highlighted_rows():
    stats = SaveStats(name="SQL", added=1, highlighted_transactions={"Added": [_row("Cafe", "-12.50")]})

    assert "\tAdded (1):\n\t\tCafe: -12.5" in stats_string(stats, 0.0)


def test_highlighted_groups_collapse_long_lists():
    rows = [_row(f"r{i}") for i in range(MAX_HIGHLIGHTED_ROWS + 3)]

    text = highlighted_string({"Added": rows, "Empty": []})

    assert text.splitlines()[0] == f"\tAdded ({MAX_HIGHLIGHTED_ROWS + 3}):"
    assert text.splitlines()[-1] == "\t\tand 3 more"
    assert "Empty" not in text


def test_timer_end_is_idempotent_and_non_negative():
    clock = FakeClock(start=10.0, step=1.0)
    t = Timer("step", clock=clock)  # started at 10
    assert t.is_open

    t.end()  # 11
    t.end()
    assert not t.is_open
    assert t.duration == 1.0


def test_timer_never_reports_negative_duration():
    readings = iter([5.0, 3.0])
    t = Timer("step", clock=lambda: next(readings))

    t.end()

    assert t.duration == 0.0


def test_saving_messages():
    clock = FakeClock(start=0.0, step=1.0)
    done = Timer("Connecting", clock=clock)
    done.end()
    running = Timer("Inserting 2 rows", clock=clock)

    assert messages.saving("SQL") == "📝 SQL Saving..."
    assert messages.saving("SQL", [done, running]) == (
        "📝 SQL Saving...\n\tConnecting (1.00s)\n\tInserting 2 rows"
    )
    assert messages.saving_failed("SQL", RuntimeError("disk full"), [done]) == (
        "📝 SQL Saving...\n\tConnecting (1.00s)\n❌ Failed: RuntimeError: disk full"
    )
