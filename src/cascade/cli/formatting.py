"""
Display helpers for the command line: date parsing, date formatting and
rich tables for tasks.
"""

import time
from datetime import datetime
from typing import Iterable, Optional

from rich.markup import escape
from rich.table import Table

from cascade.tasks.models import UNSET_DUE_DATE, Task, TaskStatus

DAY_SECONDS = 24 * 60 * 60

RELATIVE_DATES = {
    "today": 0,
    "tomorrow": DAY_SECONDS,
    "next-week": 7 * DAY_SECONDS,
    "next-month": 30 * DAY_SECONDS,
}

STATUS_STYLES = {
    TaskStatus.TODO: "white",
    TaskStatus.IN_PROGRESS: "yellow",
    TaskStatus.DONE: "green",
    TaskStatus.WONT_DO: "dim",
}


def parse_date(text: str, now: Optional[float] = None) -> int:
    """Parse YYYY-MM-DD or a relative keyword into epoch seconds.

    Raises:
        ValueError: the text is neither a keyword nor a valid date
    """
    value = text.strip().lower()
    if now is None:
        now = time.time()

    if value in RELATIVE_DATES:
        return int(now) + RELATIVE_DATES[value]

    try:
        parsed = datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise ValueError(
            f"Invalid date '{text}'. Use YYYY-MM-DD, today, tomorrow, next-week or next-month"
        ) from None
    return int(parsed.timestamp())


def format_date(timestamp: int) -> str:
    if timestamp == UNSET_DUE_DATE:
        return "Not set"
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d")


def format_status(status: TaskStatus) -> str:
    return f"[{STATUS_STYLES[status]}]{status.label}[/]"


def task_table(tasks: Iterable[Task], title: Optional[str] = None, numbered: bool = False) -> Table:
    """Build a table with one row per task."""
    table = Table(title=title)
    if numbered:
        table.add_column("#", justify="right", style="dim")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("Priority", justify="center")
    table.add_column("Status")
    table.add_column("Due")

    for position, task in enumerate(tasks, start=1):
        cells = [
            str(task.id),
            escape(task.title),
            str(task.priority),
            format_status(task.status),
            format_date(task.due_date),
        ]
        if numbered:
            cells.insert(0, str(position))
        table.add_row(*cells)

    return table


def task_detail_table(task: Task) -> Table:
    """Two-column field/value table for a single task."""
    table = Table(title=f"Task {task.id}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Title", escape(task.title))
    table.add_row("Priority", str(task.priority))
    table.add_row("Status", format_status(task.status))
    table.add_row("Due", format_date(task.due_date))
    table.add_row("Created", format_date(task.creation_time))
    return table
