"""Main CLI entry point using Typer.

Every command reads a JSON task snapshot: either a list of task objects or
an object with a ``tasks`` list.
"""

import json
from pathlib import Path

import typer
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from knot import __version__
from knot.core.config import get_settings
from knot.core.errors import ConfigurationError, SelectionError
from knot.core.logging import configure_logging
from knot.selection.analyzer import ProjectAnalyzer, analyze_project_and_recommend_strategy
from knot.selection.graph import DependencyAnalyzer
from knot.selection.models import SelectionConfig, Strategy, load_selection_config
from knot.selection.selector import TaskSelector
from knot.selection.strategies import StrategyFactory, parse_strategy
from knot.tasks.breakdown import find_tasks_needing_breakdown
from knot.tasks.models import Task
from knot.tasks.state_machine import StateValidator

app = typer.Typer(
    name="knot",
    help="Knot - dependency-aware task selection",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()

_task_list = TypeAdapter(list[Task])

STATE_STYLES = {
    "pending": "yellow",
    "in_progress": "cyan",
    "completed": "green",
    "blocked": "red",
    "cancelled": "dim",
    "deletion_pending": "dim red",
}

TasksArgument = typer.Argument(
    ...,
    exists=True,
    dir_okay=False,
    readable=True,
    help="JSON file with the project's tasks",
)


def load_tasks(path: Path) -> list[Task]:
    """Read a task snapshot from a JSON file.

    Raises:
        typer.BadParameter: If the file is not a valid snapshot.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"{path} is not valid JSON: {e}") from e

    if isinstance(data, dict):
        data = data.get("tasks", [])
    try:
        return _task_list.validate_python(data)
    except ValidationError as e:
        raise typer.BadParameter(f"{path} has invalid tasks:\n{e}") from e


def _state(task: Task) -> str:
    style = STATE_STYLES.get(task.state.value, "white")
    return f"[{style}]{task.state.value}[/{style}]"


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold blue]Knot[/bold blue] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    Knot - decide what to work on next.

    Validates task state changes, analyzes the dependency graph and ranks
    ready tasks under a pluggable strategy.
    """
    configure_logging(get_settings())


@app.command("next")
def next_task(
    tasks_file: Path = TasksArgument,
    strategy: str | None = typer.Option(
        None,
        "--strategy",
        "-s",
        help="Selection strategy (default: recommended for the project)",
    ),
    template: str | None = typer.Option(
        None,
        "--template",
        "-t",
        help="Built-in configuration template",
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="JSON selection configuration file",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
) -> None:
    """
    Select the next task to work on.

    Example:
        knot next tasks.json --strategy priority
    """
    tasks = load_tasks(tasks_file)
    settings = get_settings()

    try:
        if config_file is not None:
            config = load_selection_config(config_file)
        elif template is not None:
            config = SelectionConfig.from_template(template)
        else:
            config = settings.selection_config()
            if settings.knot_strategy is None:
                recommended, _ = analyze_project_and_recommend_strategy(tasks)
                config = config.model_copy(update={"strategy": recommended})
    except ConfigurationError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(2) from e

    if strategy is not None:
        chosen = parse_strategy(strategy)
        if chosen is None:
            names = ", ".join(s.value for s in Strategy)
            console.print(
                f"[red]Unknown strategy {escape(repr(strategy))}.[/red] Choose one of: {names}"
            )
            raise typer.Exit(2)
        config = config.model_copy(update={"strategy": chosen})

    try:
        result = TaskSelector(config).select_next_actionable_task(tasks)
    except ConfigurationError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(2) from e
    except SelectionError as e:
        if as_json:
            console.print_json(data={"error": e.to_dict()})
        else:
            _print_selection_error(e)
        raise typer.Exit(1) from e

    if as_json:
        console.print_json(data=result.to_dict())
        return

    task = result.task
    console.print(
        Panel(
            f"[bold]{escape(task.title)}[/bold] ({escape(task.id)})\n"
            f"State: {_state(task)}  Priority: {task.priority.value}  "
            f"Complexity: {task.complexity}\n\n"
            f"[dim]{escape(result.reason)}[/dim]",
            title=f"[bold blue]Next task[/bold blue] [dim]({result.strategy.value})[/dim]",
            border_style="blue",
        )
    )

    if result.alternatives:
        table = Table(title="Alternatives")
        table.add_column("ID", style="cyan")
        table.add_column("Title")
        table.add_column("Score", justify="right")
        table.add_column("Unblocks", justify="right")
        for alt in result.alternatives:
            table.add_row(
                alt.task.id,
                escape(alt.task.title),
                f"{alt.score:.2f}",
                str(alt.unblocked_count),
            )
        console.print(table)


def _print_selection_error(error: SelectionError) -> None:
    body = f"[bold]{escape(error.message)}[/bold]"
    for cycle in error.cycles:
        body += f"\n  cycle: {' -> '.join([*cycle, cycle[0]])}"
    if error.task_ids and not error.cycles:
        body += f"\n  tasks: {', '.join(error.task_ids)}"
    if error.suggestions:
        body += "\n\n" + "\n".join(f"- {s}" for s in error.suggestions)
    console.print(
        Panel(
            body,
            title=f"[bold red]No task selected[/bold red] [dim]({error.kind.value})[/dim]",
            border_style="red",
        )
    )


@app.command()
def cycles(tasks_file: Path = TasksArgument) -> None:
    """List dependency cycles."""
    found = DependencyAnalyzer(load_tasks(tasks_file)).detect_cycles()
    if not found:
        console.print("[green]No dependency cycles found[/green]")
        return

    console.print(f"[red]Found {len(found)} dependency cycle(s):[/red]")
    for cycle in found:
        console.print(f"  {' -> '.join([*cycle, cycle[0]])}")
    raise typer.Exit(1)


@app.command()
def validate(tasks_file: Path = TasksArgument) -> None:
    """Check for missing dependency targets and cycles."""
    analyzer = DependencyAnalyzer(load_tasks(tasks_file))
    issues = analyzer.validate_referential_integrity()
    found = analyzer.detect_cycles()

    if not issues and not found:
        console.print(f"[green]All {len(analyzer)} tasks are consistent[/green]")
        return

    if issues:
        table = Table(title="Missing dependencies")
        table.add_column("Task", style="cyan")
        table.add_column("Missing dependency", style="red")
        for issue in issues:
            table.add_row(issue.task_id, issue.missing_id)
        console.print(table)

    for cycle in found:
        console.print(f"[red]Cycle:[/red] {' -> '.join([*cycle, cycle[0]])}")

    raise typer.Exit(1)


@app.command()
def breakdown(
    tasks_file: Path = TasksArgument,
    threshold: int | None = typer.Option(
        None,
        "--threshold",
        min=1,
        max=10,
        help="Complexity threshold (default from settings)",
    ),
) -> None:
    """List high-complexity tasks that have no subtasks yet."""
    config = get_settings().breakdown_config()
    if threshold is not None:
        config = config.model_copy(update={"complexity_threshold": threshold})

    candidates = find_tasks_needing_breakdown(load_tasks(tasks_file), config)
    if not candidates:
        console.print("[green]No tasks need breaking down[/green]")
        return

    table = Table(title=f"Tasks at complexity {config.complexity_threshold}+")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Complexity", justify="right")
    table.add_column("State")
    for task in candidates:
        table.add_row(task.id, escape(task.title), str(task.complexity), _state(task))
    console.print(table)


@app.command()
def recommend(tasks_file: Path = TasksArgument) -> None:
    """Recommend a strategy for the project."""
    tasks = load_tasks(tasks_file)
    strategy, reason = analyze_project_and_recommend_strategy(tasks)
    characteristics = ProjectAnalyzer().analyze(tasks)

    console.print(f"[bold]Recommended strategy:[/bold] [cyan]{strategy.value}[/cyan]")
    console.print(f"[dim]{escape(reason)}[/dim]")

    table = Table(title="Project characteristics")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Tasks", str(characteristics.task_count))
    table.add_row("Dependency edges", str(characteristics.dependency_count))
    table.add_row("Tasks with dependencies", f"{characteristics.dependency_ratio:.0%}")
    table.add_row("Max hierarchy depth", str(characteristics.max_hierarchy_depth))
    table.add_row("High priority", f"{characteristics.high_priority_ratio:.0%}")
    table.add_row("Complexity", characteristics.complexity.value)
    console.print(table)


@app.command()
def chain(
    tasks_file: Path = TasksArgument,
    task_id: str = typer.Argument(..., help="Task to show the chain for"),
    direction: str = typer.Option(
        "both",
        "--direction",
        "-d",
        help="upstream, downstream or both",
    ),
) -> None:
    """Show what a task waits on and what waits on it."""
    if direction not in ("upstream", "downstream", "both"):
        console.print(f"[red]Unknown direction {escape(repr(direction))}[/red]")
        raise typer.Exit(2)

    analyzer = DependencyAnalyzer(load_tasks(tasks_file))
    root = analyzer.get(task_id)
    if root is None:
        console.print(f"[red]Task not found: {escape(task_id)}[/red]")
        raise typer.Exit(1)

    sections = []
    if direction in ("upstream", "both"):
        sections.append(("Waits on", analyzer.upstream_chain(task_id)))
    if direction in ("downstream", "both"):
        sections.append(("Needed by", analyzer.downstream_chain(task_id)))

    for title, entries in sections:
        tree = Tree(f"[bold]{title}[/bold] - {escape(root.title)} ({escape(root.id)})")
        nodes = {0: tree}
        for entry in entries:
            parent = nodes[entry.depth - 1]
            nodes[entry.depth] = parent.add(
                f"{escape(entry.task.title)} [dim]({escape(entry.task.id)})[/dim] - {_state(entry.task)}"
            )
        if not entries:
            tree.add("[dim]nothing[/dim]")
        console.print(tree)


@app.command()
def transitions() -> None:
    """Show the task state transition table."""
    table = Table(title="Task state transitions")
    table.add_column("From", style="cyan")
    table.add_column("Allowed targets")
    for state, targets in StateValidator().get_state_transition_matrix().items():
        table.add_row(state, ", ".join(targets) or "[dim](terminal)[/dim]")
    console.print(table)


@app.command()
def strategies() -> None:
    """List the available selection strategies."""
    table = Table(title="Selection strategies")
    table.add_column("Name", style="cyan")
    table.add_column("Ranking")
    for strategy, description in StrategyFactory.available_strategies().items():
        table.add_row(strategy.value, description)
    console.print(table)


if __name__ == "__main__":
    app()
