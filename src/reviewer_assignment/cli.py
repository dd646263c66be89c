from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, NoReturn

import typer
from rich import print
from rich.logging import RichHandler
from rich.table import Table

from .allocator import AssignmentRun
from .ledger import AssignmentLedger
from .pool import ConfigurationError, ReviewerPool
from .reminders import build_reminders, compose_message, parse_directory, summarize, unreachable
from .store import (
    clear_ledger,
    db_cursor,
    load_directory,
    load_ledger,
    load_pool,
    load_sql,
    lock_dataset,
    remove_directory_entry,
    run_for_dataset,
    save_directory,
    save_directory_entry,
    save_ledger,
    save_pool,
)
from .tracker import TrackerRow, build_tracker_view, group_by_meeting_date

app = typer.Typer(help="Reviewer auto-assignment CLI for the review dashboard.")

SQL_DIR = Path(__file__).resolve().parents[2] / "sql"


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
    )


def _fail(message: str) -> NoReturn:
    print(f"[red]{message}[/red]")
    raise typer.Exit(code=1)


def _read_projects(projects: list[str] | None, projects_file: Path | None) -> list[str]:
    keys = list(projects or [])
    if projects_file is not None:
        for line in projects_file.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line and not line.startswith("#"):
                keys.append(line)
    return keys


def _edit_ledger(
    dataset: str,
    edit: Callable[[AssignmentLedger, ReviewerPool], object],
) -> tuple[AssignmentLedger, object]:
    with db_cursor() as cursor:
        lock_dataset(cursor, dataset)
        pool = load_pool(cursor, dataset)
        ledger = load_ledger(cursor, dataset, pool.reviewer_count)
        outcome = edit(ledger, pool)
        save_ledger(cursor, ledger)
    return ledger, outcome


def _tracker_table(title: str, rows: list[TrackerRow], reviewer_count: int) -> Table:
    table = Table(title=title)
    table.add_column("Project")
    table.add_column("Reviewers")
    table.add_column("Assigned", justify="right")
    table.add_column("Meeting")
    table.add_column("Status")
    for row in rows:
        table.add_row(
            row.project,
            ", ".join(row.reviewers) or "-",
            f"{len(row.reviewers)}/{reviewer_count}",
            row.meeting_date or "-",
            "[yellow]overflow[/yellow]" if row.overflow else "[green]ok[/green]",
        )
    return table


@app.command("init-db")
def init_db() -> None:
    """Create schema and tables."""
    sql = load_sql(SQL_DIR / "001_init.sql")
    with db_cursor() as cursor:
        cursor.execute(sql)
    print("[green]Database initialized.[/green]")


@app.command("configure")
def configure(
    dataset: str = typer.Argument(..., help="Dataset identifier."),
    reviewer: list[str] | None = typer.Option(None, "--reviewer", "-r", help="Pool reviewer (repeatable)."),
    count: int | None = typer.Option(None, help="Target reviewers per project."),
    meeting_date: list[str] | None = typer.Option(None, "--date", "-d", help="Meeting date YYYY-MM-DD (repeatable)."),
) -> None:
    """Update the assignment configuration of a dataset."""
    with db_cursor() as cursor:
        current = load_pool(cursor, dataset)
        try:
            pool = ReviewerPool(
                reviewer_pool=tuple(reviewer) if reviewer else current.reviewer_pool,
                reviewer_count=count if count is not None else current.reviewer_count,
                meeting_dates=tuple(meeting_date) if meeting_date else current.meeting_dates,
            )
        except ConfigurationError as exc:
            _fail(f"Configuration rejected: {exc}")
        save_pool(cursor, dataset, pool)

    print(
        f"[green]Saved configuration for {dataset}:[/green] "
        f"{len(pool)} reviewers, {pool.reviewer_count} per project, "
        f"{len(pool.meeting_dates)} meeting dates."
    )


@app.command("status")
def status(dataset: str = typer.Argument(..., help="Dataset identifier.")) -> None:
    """Show pool reviewers and their current load."""
    with db_cursor() as cursor:
        pool = load_pool(cursor, dataset)
        ledger = load_ledger(cursor, dataset, pool.reviewer_count)

    loads = ledger.loads()
    table = Table(title=f"Reviewer Load: {dataset}")
    table.add_column("Reviewer")
    table.add_column("Assigned", justify="right")
    table.add_column("In Pool")
    for name in pool.reviewer_pool:
        table.add_row(name, str(loads.get(name, 0)), "yes")
    for name, assigned in sorted(loads.items()):
        if name not in pool:
            table.add_row(name, str(assigned), "[yellow]no[/yellow]")

    print(
        f"[bold]Per project:[/bold] {pool.reviewer_count} | "
        f"[bold]Meeting dates:[/bold] {', '.join(pool.meeting_dates) or '-'} | "
        f"[bold]Overflow:[/bold] {len(ledger.overflow)}"
    )
    print(table)


@app.command("run")
def run(
    dataset: str = typer.Argument(..., help="Dataset identifier."),
    project: list[str] | None = typer.Option(None, "--project", "-p", help="Project key (repeatable)."),
    projects_file: Path | None = typer.Option(None, help="File with one project key per line."),
    dry_run: bool = typer.Option(False, help="Compute the plan without saving it."),
) -> None:
    """Auto-assign reviewers to the projects awaiting review."""
    keys = _read_projects(project, projects_file)
    if not keys:
        print("[yellow]No projects supplied.[/yellow]")
        return

    try:
        result: AssignmentRun = run_for_dataset(dataset, keys, dry_run=dry_run)
    except ConfigurationError as exc:
        _fail(f"Auto-assign rejected: {exc}")

    table = Table(title="Assignment Plan")
    table.add_column("Project")
    table.add_column("Reviewer")
    table.add_column("Load", justify="right")
    for pick in result.picks:
        table.add_row(pick.project, pick.reviewer, str(pick.load))
    if result.picks:
        print(table)
    else:
        print("[yellow]No new assignments created.[/yellow]")

    print(
        f"[bold]Processed:[/bold] {len(result.processed)} | "
        f"[bold]Carried forward:[/bold] {len(result.carried)} | "
        f"[bold]Overflow:[/bold] {len(result.overflow)}"
    )
    if result.overflow:
        print(f"[yellow]Under capacity: {', '.join(result.overflow)}[/yellow]")
    if dry_run:
        print("[yellow]Dry run: ledger not saved.[/yellow]")


@app.command("clear")
def clear(
    dataset: str = typer.Argument(..., help="Dataset identifier."),
    yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt."),
) -> None:
    """Remove every assignment and overflow entry of a dataset."""
    if not yes:
        typer.confirm(f"Clear all assignments for {dataset}?", abort=True)
    with db_cursor() as cursor:
        clear_ledger(cursor, dataset)
    print(f"[green]Cleared assignments for {dataset}.[/green]")


@app.command("assign")
def assign(
    dataset: str = typer.Argument(..., help="Dataset identifier."),
    project: str = typer.Argument(..., help="Project key."),
    reviewer: str = typer.Argument(..., help="Reviewer name."),
) -> None:
    """Manually add a reviewer to a project."""
    try:
        ledger, changed = _edit_ledger(dataset, lambda item, _pool: item.manual_assign(project, reviewer))
    except ConfigurationError as exc:
        _fail(f"Assignment rejected: {exc}")
    if not changed:
        print(f"[yellow]{reviewer} is already assigned to {project}.[/yellow]")
        return
    state = "overflow" if ledger.is_overflow(project) else "complete"
    print(f"[green]Assigned {reviewer} to {project} ({state}).[/green]")


@app.command("unassign")
def unassign(
    dataset: str = typer.Argument(..., help="Dataset identifier."),
    project: str = typer.Argument(..., help="Project key."),
    reviewer: str = typer.Argument(..., help="Reviewer name."),
) -> None:
    """Manually remove a reviewer from a project."""
    ledger, changed = _edit_ledger(dataset, lambda item, _pool: item.manual_unassign(project, reviewer.strip()))
    if not changed:
        print(f"[yellow]{reviewer} is not assigned to {project}.[/yellow]")
        return
    state = "overflow" if ledger.is_overflow(project) else "complete"
    print(f"[green]Removed {reviewer} from {project} ({state}).[/green]")


@app.command("schedule")
def schedule(
    dataset: str = typer.Argument(..., help="Dataset identifier."),
    project: str = typer.Argument(..., help="Project key."),
    meeting_date: str | None = typer.Argument(None, help="Meeting date YYYY-MM-DD; omit to unschedule."),
) -> None:
    """Tag a project with the meeting it will be discussed at."""
    try:
        _edit_ledger(
            dataset,
            lambda item, pool: item.schedule(project, meeting_date, allowed=pool.meeting_dates),
        )
    except ConfigurationError as exc:
        _fail(str(exc))
    if meeting_date:
        print(f"[green]{project} scheduled for {meeting_date}.[/green]")
    else:
        print(f"[green]{project} unscheduled.[/green]")


@app.command("tracker")
def tracker(
    dataset: str = typer.Argument(..., help="Dataset identifier."),
    query: str = typer.Option("", "--query", "-q", help="Filter by assignee name."),
    by_date: bool = typer.Option(False, help="Group projects by meeting date."),
) -> None:
    """Show the assignment tracker."""
    with db_cursor() as cursor:
        pool = load_pool(cursor, dataset)
        ledger = load_ledger(cursor, dataset, pool.reviewer_count)

    rows = build_tracker_view(ledger, query)
    if not rows:
        print("[yellow]No projects match.[/yellow]")
        return

    if not by_date:
        print(_tracker_table("Assignment Tracker", rows, ledger.reviewer_count))
        return
    for meeting, group in group_by_meeting_date(rows).items():
        print(_tracker_table(f"Meeting: {meeting}", group, ledger.reviewer_count))


@app.command("remind")
def remind(
    dataset: str = typer.Argument(..., help="Dataset identifier."),
    show_body: bool = typer.Option(False, help="Print the composed message bodies."),
) -> None:
    """Prepare one reminder per assigned reviewer."""
    with db_cursor() as cursor:
        pool = load_pool(cursor, dataset)
        ledger = load_ledger(cursor, dataset, pool.reviewer_count)
        directory = load_directory(cursor)

    reminders = build_reminders(ledger, directory)
    if not reminders:
        print("[yellow]No reviewers have assigned projects.[/yellow]")
        return

    table = Table(title="Reviewer Reminders")
    table.add_column("Reviewer")
    table.add_column("Email")
    table.add_column("Projects")
    for reminder in reminders:
        table.add_row(
            reminder.reviewer,
            reminder.address or "[yellow]missing[/yellow]",
            ", ".join(reminder.projects),
        )
    print(table)

    if show_body:
        for reminder in reminders:
            message = compose_message(reminder, dataset)
            print(f"[bold]To:[/bold] {message.to or '-'}\n[bold]Subject:[/bold] {message.subject}\n{message.body}")

    missing = unreachable(reminders)
    colour = "yellow" if missing else "green"
    print(f"[{colour}]{summarize(reminders)}[/{colour}]")


@app.command("directory-set")
def directory_set(
    name: str = typer.Argument(..., help="Reviewer name."),
    email: str | None = typer.Argument(None, help="Contact address; omit to clear."),
) -> None:
    """Set or clear a reviewer's contact address."""
    with db_cursor() as cursor:
        save_directory_entry(cursor, name.strip(), email.strip() if email else None)
    print(f"[green]Directory updated for {name}.[/green]")


@app.command("directory")
def directory() -> None:
    """List the reviewer directory."""
    with db_cursor() as cursor:
        entries = load_directory(cursor)

    if not entries:
        print("[yellow]No reviewers in the directory.[/yellow]")
        return

    table = Table(title="Reviewer Directory")
    table.add_column("Reviewer")
    table.add_column("Email")
    for name, email in entries.items():
        table.add_row(name, email or "[yellow]missing[/yellow]")
    print(table)
    print(f"{len(entries)} reviewer{'s' if len(entries) != 1 else ''}")


@app.command("directory-import")
def directory_import(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="One entry per line."),
) -> None:
    """Bulk-import reviewer contact addresses."""
    entries = parse_directory(path.read_text(encoding="utf-8"))
    if not entries:
        print("[yellow]No directory entries found.[/yellow]")
        return
    with db_cursor() as cursor:
        saved = save_directory(cursor, entries)
    print(f"[green]Imported {saved} directory entries.[/green]")


@app.command("directory-remove")
def directory_remove(name: str = typer.Argument(..., help="Reviewer name.")) -> None:
    """Delete a reviewer from the directory."""
    with db_cursor() as cursor:
        removed = remove_directory_entry(cursor, name.strip())
    if not removed:
        print(f"[yellow]{name} is not in the directory.[/yellow]")
        return
    print(f"[green]Removed {name} from the directory.[/green]")


if __name__ == "__main__":
    app()
