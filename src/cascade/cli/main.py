"""
Cascade command line.

Usage:
    cascade task add "Write report" -p 1 --due tomorrow
    cascade task list --all --sort priority
    cascade task next
    cascade deps add 5 3        # task 5 depends on task 3
    cascade deps plan
    cascade deps critical
"""

import argparse
import asyncio
import sys
from typing import Any, Awaitable, Callable, Dict, List, Optional

from rich.console import Console
from rich.markup import escape

from cascade import __version__
from cascade.cli.formatting import parse_date, task_detail_table, task_table
from cascade.core.config import CascadeConfig, DatabaseConfig, LoggingConfig
from cascade.core.exceptions import CascadeError
from cascade.core.logging import configure_logging, get_logger
from cascade.database.connection import ConnectionPool
from cascade.database.schema import SQLITE_MAX_INTEGER
from cascade.tasks.comparators import SORT_KEYS
from cascade.tasks.graph import ResultStatus
from cascade.tasks.models import MAX_PRIORITY, MIN_PRIORITY, TaskStatus
from cascade.tasks.repository import TaskRepository
from cascade.tasks.service import TaskService

Handler = Callable[[TaskService, argparse.Namespace, Console], Awaitable[int]]

EXIT_OK = 0
EXIT_FAILURE = 1

PRIORITIES = list(range(MIN_PRIORITY, MAX_PRIORITY + 1))


# ============================================================================
# ARGUMENT TYPES
# ============================================================================

def _status_arg(value: str) -> TaskStatus:
    try:
        return TaskStatus.parse(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def _date_arg(value: str) -> int:
    try:
        return parse_date(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def _task_id_arg(value: str) -> int:
    try:
        task_id = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid task id: '{value}'") from None
    if not 1 <= task_id <= SQLITE_MAX_INTEGER:
        raise argparse.ArgumentTypeError(
            f"task id must be between 1 and {SQLITE_MAX_INTEGER}, got {value}"
        )
    return task_id


# ============================================================================
# TASK COMMANDS
# ============================================================================

async def cmd_task_add(service: TaskService, args: argparse.Namespace, console: Console) -> int:
    task = await service.create_task(
        title=args.title,
        priority=args.priority,
        status=args.status,
        due_date=args.due,
    )
    console.print(f"Created task {task.id}: {task.title}", style="green", markup=False)
    return EXIT_OK


async def cmd_task_list(service: TaskService, args: argparse.Namespace, console: Console) -> int:
    tasks = await service.list_tasks(
        show_all=args.all,
        status=args.status,
        priority=args.priority,
        sort_by=args.sort,
    )
    if not tasks:
        console.print("No tasks found.", style="yellow")
        return EXIT_OK

    console.print(task_table(tasks, title="Tasks"))
    return EXIT_OK


async def cmd_task_show(service: TaskService, args: argparse.Namespace, console: Console) -> int:
    view = await service.get_dependency_view(args.id)
    console.print(task_detail_table(view.task))
    console.print(
        f"Depends on {len(view.dependencies)} task(s), blocks {len(view.dependents)} task(s)."
    )
    return EXIT_OK


async def cmd_task_next(service: TaskService, args: argparse.Namespace, console: Console) -> int:
    task = await service.get_next_task()
    if task is None:
        console.print("No open tasks. Nothing to do!", style="green")
        return EXIT_OK

    console.print("Next task to work on:", style="bold")
    console.print(task_detail_table(task))
    return EXIT_OK


async def cmd_task_update(service: TaskService, args: argparse.Namespace, console: Console) -> int:
    fields: Dict[str, Any] = {}
    if args.priority is not None:
        fields["priority"] = args.priority
    if args.status is not None:
        fields["status"] = args.status
    if args.due is not None:
        fields["due_date"] = args.due
    if args.title is not None:
        fields["title"] = args.title

    if not fields:
        console.print("No updates specified. Use --priority, --status, --due, or --title.", style="yellow")
        return EXIT_FAILURE

    task = await service.update_task(args.id, **fields)
    console.print(f"Updated task {task.id}: {', '.join(sorted(fields))}", style="green")
    return EXIT_OK


async def cmd_task_delete(service: TaskService, args: argparse.Namespace, console: Console) -> int:
    await service.delete_task(args.id)
    console.print(f"Deleted task {args.id} and its dependencies", style="green")
    return EXIT_OK


async def cmd_task_done(service: TaskService, args: argparse.Namespace, console: Console) -> int:
    task = await service.complete_task(args.id)
    console.print(f"Completed task {task.id}: {escape(task.title)}", style="green")
    return EXIT_OK


async def cmd_task_start(service: TaskService, args: argparse.Namespace, console: Console) -> int:
    task = await service.start_task(args.id)
    console.print(f"Started task {task.id}: {escape(task.title)}", style="green")
    return EXIT_OK


# ============================================================================
# DEPENDENCY COMMANDS
# ============================================================================

async def cmd_deps_add(service: TaskService, args: argparse.Namespace, console: Console) -> int:
    outcome = await service.add_dependency(args.task_id, args.depends_on_id)
    if outcome.applied:
        console.print(outcome.message, style="green")
        return EXIT_OK

    console.print(f"Dependency rejected: {outcome.message}", style="red", markup=False)
    return EXIT_FAILURE


async def cmd_deps_remove(service: TaskService, args: argparse.Namespace, console: Console) -> int:
    if await service.remove_dependency(args.task_id, args.depends_on_id):
        console.print(
            f"Task {args.task_id} no longer depends on task {args.depends_on_id}", style="green"
        )
    else:
        console.print(
            f"Task {args.task_id} does not depend on task {args.depends_on_id}", style="yellow"
        )
    return EXIT_OK


async def cmd_deps_show(service: TaskService, args: argparse.Namespace, console: Console) -> int:
    view = await service.get_dependency_view(args.task_id)
    console.print(f"Task {view.task.id}: {escape(view.task.title)}", style="bold")

    if view.dependencies:
        console.print(task_table(view.dependencies, title="Depends on (must complete first)"))
    else:
        console.print("No dependencies.")

    if view.dependents:
        console.print(task_table(view.dependents, title="Blocks (waiting on this task)"))
    else:
        console.print("No dependents.")
    return EXIT_OK


async def cmd_deps_plan(service: TaskService, args: argparse.Namespace, console: Console) -> int:
    plan = await service.get_execution_order()
    status = plan.result.status

    if status == ResultStatus.EMPTY:
        console.print("No tasks to plan.", style="yellow")
        return EXIT_OK

    if status == ResultStatus.CYCLE_DETECTED:
        console.print("Circular dependency detected; no valid execution order exists.", style="red")
        if plan.cycle:
            console.print("Cycle: " + " -> ".join(str(i) for i in plan.cycle.cycle_path), style="red")
        return EXIT_FAILURE

    console.print(task_table(plan.tasks, title="Execution plan", numbered=True))
    return EXIT_OK


async def cmd_deps_critical(service: TaskService, args: argparse.Namespace, console: Console) -> int:
    report = await service.get_critical_path()
    status = report.result.status

    if status == ResultStatus.EMPTY:
        console.print("No tasks to analyze.", style="yellow")
        return EXIT_OK

    if status == ResultStatus.CYCLE_DETECTED:
        console.print("Circular dependency detected; the critical path is undefined.", style="red")
        return EXIT_FAILURE

    console.print(f"Critical path: {report.result.length} task(s)", style="bold")
    console.print(task_table(report.tasks, title="Critical path", numbered=True))
    return EXIT_OK


# ============================================================================
# PARSER
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser.

    Returns:
        Parser whose leaf subcommands set a ``handler`` default
    """
    parser = argparse.ArgumentParser(
        prog="cascade",
        description=(
            "Cascade - a personal task manager.\n"
            "Manage tasks with dependencies, priorities, and deadlines."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s task add "Finish report" -p 1 --due tomorrow
  %(prog)s task list --all --sort priority
  %(prog)s deps add 5 3                      # Task 5 depends on task 3
  %(prog)s deps plan                         # Order respecting dependencies
        """,
    )
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--db", help="Path to the SQLite database (overrides CASCADE_DB_PATH)")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Logging level (overrides CASCADE_LOG_LEVEL)",
    )

    groups = parser.add_subparsers(dest="group", metavar="{task,deps}")

    # ---- task ----
    task = groups.add_parser("task", help="Create, view, update, and delete tasks")
    task_cmds = task.add_subparsers(dest="command", metavar="COMMAND")

    add = task_cmds.add_parser("add", help="Create a new task")
    add.add_argument("title", help="Title of the task")
    add.add_argument("-p", "--priority", type=int, choices=PRIORITIES, default=2,
                     help="Priority level (1=highest, 4=lowest). Default: 2")
    add.add_argument("-s", "--status", type=_status_arg, default=TaskStatus.TODO,
                     help="Initial status: todo, in_progress, done, wont_do. Default: todo")
    add.add_argument("--due", type=_date_arg, default=0,
                     help="Due date: YYYY-MM-DD or today, tomorrow, next-week, next-month")
    add.set_defaults(handler=cmd_task_add)

    lst = task_cmds.add_parser("list", help="List tasks (incomplete only unless --all)")
    lst.add_argument("--all", action="store_true", help="Include completed and cancelled tasks")
    lst.add_argument("--status", type=_status_arg, help="Filter by status")
    lst.add_argument("--priority", type=int, choices=PRIORITIES, help="Filter by priority level")
    lst.add_argument("--sort", choices=sorted(SORT_KEYS), help="Sort order")
    lst.set_defaults(handler=cmd_task_list)

    show = task_cmds.add_parser("show", help="Show details of a task")
    show.add_argument("id", type=_task_id_arg, help="Task ID")
    show.set_defaults(handler=cmd_task_show)

    nxt = task_cmds.add_parser("next", help="Show the next task by priority and due date")
    nxt.set_defaults(handler=cmd_task_next)

    upd = task_cmds.add_parser("update", help="Update properties of a task")
    upd.add_argument("id", type=_task_id_arg, help="Task ID")
    upd.add_argument("--priority", type=int, choices=PRIORITIES, help="New priority level")
    upd.add_argument("--status", type=_status_arg, help="New status")
    upd.add_argument("--due", type=_date_arg, help="New due date")
    upd.add_argument("--title", help="New title")
    upd.set_defaults(handler=cmd_task_update)

    rm = task_cmds.add_parser("delete", help="Delete a task and all its dependencies")
    rm.add_argument("id", type=_task_id_arg, help="Task ID")
    rm.set_defaults(handler=cmd_task_delete)

    done = task_cmds.add_parser("done", help="Mark a task as done")
    done.add_argument("id", type=_task_id_arg, help="Task ID")
    done.set_defaults(handler=cmd_task_done)

    start = task_cmds.add_parser("start", help="Mark a task as in progress")
    start.add_argument("id", type=_task_id_arg, help="Task ID")
    start.set_defaults(handler=cmd_task_start)

    # ---- deps ----
    deps = groups.add_parser("deps", help="Manage and analyze task dependencies")
    deps_cmds = deps.add_subparsers(dest="command", metavar="COMMAND")

    dep_add = deps_cmds.add_parser("add", help="Make TASK_ID depend on DEPENDS_ON_ID")
    dep_add.add_argument("task_id", type=_task_id_arg, help="Task that gets the dependency")
    dep_add.add_argument("depends_on_id", type=_task_id_arg, help="Task it depends on")
    dep_add.set_defaults(handler=cmd_deps_add)

    dep_rm = deps_cmds.add_parser("remove", help="Remove a dependency")
    dep_rm.add_argument("task_id", type=_task_id_arg, help="Task that has the dependency")
    dep_rm.add_argument("depends_on_id", type=_task_id_arg, help="Task it currently depends on")
    dep_rm.set_defaults(handler=cmd_deps_remove)

    dep_show = deps_cmds.add_parser("show", help="Show dependencies and dependents of a task")
    dep_show.add_argument("task_id", type=_task_id_arg, help="Task ID")
    dep_show.set_defaults(handler=cmd_deps_show)

    plan = deps_cmds.add_parser("plan", help="Execution order respecting all dependencies")
    plan.set_defaults(handler=cmd_deps_plan)

    critical = deps_cmds.add_parser("critical", help="Longest chain of dependent tasks")
    critical.set_defaults(handler=cmd_deps_critical)

    return parser


# ============================================================================
# ENTRY POINT
# ============================================================================

def load_config(args: argparse.Namespace) -> CascadeConfig:
    """Load configuration and apply command line overrides."""
    config = CascadeConfig.from_yaml(args.config) if args.config else CascadeConfig.from_env()

    if args.db:
        config.database = DatabaseConfig(
            path=args.db,
            max_connections=config.database.max_connections,
            echo=config.database.echo,
        )
    if args.log_level:
        config.logging = LoggingConfig(
            level=args.log_level,
            format=config.logging.format,
            include_timestamps=config.logging.include_timestamps,
        )
    return config


async def run_command(
    handler: Handler,
    args: argparse.Namespace,
    config: CascadeConfig,
    console: Console,
) -> int:
    async with ConnectionPool.from_config(config.database) as pool:
        service = TaskService(TaskRepository(pool))
        return await handler(service, args, console)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    handler: Optional[Handler] = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return EXIT_OK

    console = Console()
    try:
        config = load_config(args)
        configure_logging(config.logging)
        logger = get_logger("cli")
        logger.debug("command_start", group=args.group, command=args.command)
        return asyncio.run(run_command(handler, args, config, console))
    except CascadeError as e:
        console.print(f"Error: {e.message}", style="red", markup=False)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
