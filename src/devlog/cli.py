"""
devlog CLI - incremental git ingestion and cached worklogs.

``devlog ingest`` stores new commits of the selected branches;
``devlog worklog`` renders a markdown worklog from what was stored;
``devlog list`` and ``devlog clear`` inspect and reset the worklog cache.
"""

from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

import typer
from rich.console import Console

from devlog.logging_config import setup_logging

app = typer.Typer(
    name="devlog",
    help="devlog - Incremental git ingestion and developer worklogs",
    no_args_is_help=True,
)

console = Console()


def _init_logging() -> None:
    # Fall back to console logging if the log directory is not writable
    try:
        setup_logging(context="cli")
    except PermissionError:
        import logging

        logging.basicConfig(level=logging.INFO)


def _parse_date(value: Optional[str], option: str) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        console.print(
            f"[bold red]Error:[/bold red] {option} must be YYYY-MM-DD, got {value!r}"
        )
        raise typer.Exit(1)


def _require_codebase(session, path: str):
    from pathlib import Path

    from devlog.db.repositories import CodebaseRepository

    repo_path = str(Path(path).expanduser().resolve())
    codebase = CodebaseRepository(session).get_by_path(repo_path)
    if codebase is None:
        console.print(
            f"[bold red]Error:[/bold red] {repo_path} has not been ingested; "
            f"run 'devlog ingest' first"
        )
        raise typer.Exit(1)
    return codebase


@app.command()
def ingest(
    path: str = typer.Argument(".", help="Path to the git repository"),
    branch: Optional[List[str]] = typer.Option(
        None,
        "--branch",
        "-b",
        help="Branch to ingest (repeatable); the first one is the main branch",
    ),
    all_branches: bool = typer.Option(
        False, "--all", help="Ingest every local branch"
    ),
    days: Optional[int] = typer.Option(
        None, help="Only ingest commits from the last N days"
    ),
    since: Optional[str] = typer.Option(
        None, help="Only ingest commits authored on or after YYYY-MM-DD"
    ),
    full_history: bool = typer.Option(
        False, "--full-history", help="Ingest every commit regardless of age"
    ),
    summaries: bool = typer.Option(
        True, "--summaries/--no-summaries", help="Generate commit summaries"
    ),
    fill_summaries: bool = typer.Option(
        False,
        "--fill-summaries",
        help="Backfill summaries for stored commits that lack one",
    ),
    workers: Optional[int] = typer.Option(
        None, help="Diff worker threads (0 = CPU count)"
    ),
    interactive: bool = typer.Option(
        True, "--interactive/--non-interactive", help="Prompt for branch selection"
    ),
) -> None:
    """
    Ingest new commits into the database.

    The main branch is ingested in full; every other selected branch only
    contributes commits that are not on the main branch.
    """
    from rich.progress import Progress

    from devlog.config import settings
    from devlog.db.connection import db_session, init_db
    from devlog.exceptions import FatalRunError
    from devlog.git import GitRepository
    from devlog.ingestion import (
        ConsolePrompter,
        IngestionEngine,
        SelectionStore,
        extract_github_username,
        resolve_branch_selection,
    )

    _init_logging()

    if full_history and (since or days is not None):
        console.print(
            "[bold red]Error:[/bold red] --full-history cannot be combined with "
            "--since or --days"
        )
        raise typer.Exit(1)

    since_day = _parse_date(since, "--since")
    if since_day is None and not full_history:
        since_day = datetime.now(timezone.utc).date() - timedelta(
            days=days if days is not None else settings.ingest_days
        )
    since_at = None
    if since_day is not None:
        since_at = datetime.combine(
            since_day, datetime.min.time(), tzinfo=timezone.utc
        )

    try:
        init_db()
        repo = GitRepository.open(path)
    except FatalRunError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    user_email = settings.user_email or repo.user_email()
    user_name = settings.user_name or repo.user_name()
    github_username = settings.github_username or extract_github_username(user_email)

    llm_client = None
    if summaries or fill_summaries:
        from devlog.llm import create_client_from_settings

        try:
            llm_client = create_client_from_settings(settings)
        except FatalRunError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            console.print("Use --no-summaries to ingest without a language model")
            raise typer.Exit(1)

    console.print(f"[bold blue]Ingesting repository:[/bold blue] {repo.path}")
    console.print(f"  Profile: {settings.profile}")
    console.print(f"  User: {user_email or 'N/A'}")
    console.print(
        f"  Since: {since_day.isoformat() if since_day else 'full history'}"
    )
    console.print(f"  Summaries: {summaries}")
    console.print()

    try:
        with db_session() as session, Progress(console=console) as progress:
            task = progress.add_task("Computing diffs", total=None)

            def on_progress(done: int, total: int) -> None:
                progress.update(task, completed=done, total=total)

            engine = IngestionEngine(
                session,
                repo,
                llm_client=llm_client,
                summaries_enabled=summaries,
                workers=workers if workers is not None else settings.ingest_workers,
                patch_max_chars=settings.patch_max_chars,
                commit_summary_timeout=settings.commit_summary_timeout_seconds,
                on_progress=on_progress,
                commit_per_branch=True,
            )
            codebase = engine.ensure_codebase()
            if user_email:
                engine.register_current_user(user_email, user_name)

            progress.stop()
            selection = resolve_branch_selection(
                repo.list_branches(),
                codebase.default_branch,
                explicit=branch,
                all_branches=all_branches,
                store=SelectionStore(settings.branch_selection_file, settings.profile),
                repo_path=repo.path,
                prompter=ConsolePrompter(console) if interactive else None,
            )
            progress.start()

            result = engine.ingest(
                codebase,
                selection,
                since=since_at,
                user_email=user_email,
                github_username=github_username,
            )

            filled = 0
            if fill_summaries:
                filled = IngestionEngine(
                    session, repo, llm_client=llm_client
                ).fill_missing_summaries(codebase)
    except FatalRunError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)
    finally:
        repo.close()

    console.print()
    console.print("[bold]Summary:[/bold]")
    for branch_result in result.branches:
        console.print(
            f"  [green]✓[/green] {branch_result.branch}: "
            f"{branch_result.commits_ingested} commits, "
            f"{branch_result.file_changes_ingested} file changes"
            + (
                f", [yellow]{branch_result.commits_failed} failed[/yellow]"
                if branch_result.commits_failed
                else ""
            )
        )
    for name, reason in result.failed_branches.items():
        console.print(f"  [red]✗[/red] {name}: {reason}")
    if fill_summaries:
        console.print(f"  Summaries backfilled: {filled}")
    console.print(f"  Total commits: {result.commits_ingested}")

    if result.failed_branches:
        raise typer.Exit(1)


@app.command()
def worklog(
    path: str = typer.Argument(".", help="Path to an ingested git repository"),
    days: int = typer.Option(7, help="Number of days to cover, ending today"),
    start: Optional[str] = typer.Option(None, help="First day (YYYY-MM-DD)"),
    end: Optional[str] = typer.Option(None, help="Last day (YYYY-MM-DD)"),
    group_by: str = typer.Option("date", help="Group by 'date' or 'branch'"),
    branch: Optional[str] = typer.Option(None, help="Only include this branch"),
    all_authors: bool = typer.Option(
        False, "--all-authors", help="Include commits by other authors"
    ),
    llm: bool = typer.Option(
        True, "--llm/--no-llm", help="Use the language model for summaries"
    ),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Write the worklog to this file"
    ),
) -> None:
    """
    Render a markdown worklog from ingested commits.

    Sections whose commits have not changed since the last run are served
    from the cache.
    """
    from pathlib import Path

    from devlog.config import settings
    from devlog.db.connection import db_session, init_db
    from devlog.db.repositories import BranchRepository
    from devlog.exceptions import FatalRunError
    from devlog.models.db import GroupBy
    from devlog.worklog import (
        WorklogAssembler,
        WorklogCache,
        load_worklog_commits,
        resolve_timezone,
        rollup_span,
    )

    _init_logging()

    try:
        mode = GroupBy(group_by.lower())
    except ValueError:
        console.print(
            "[bold red]Error:[/bold red] --group-by must be 'date' or 'branch'"
        )
        raise typer.Exit(1)

    tz = resolve_timezone(settings.timezone)
    end_day = _parse_date(end, "--end") or datetime.now(tz).date()
    start_day = _parse_date(start, "--start") or end_day - timedelta(days=days - 1)
    if start_day > end_day:
        console.print("[bold red]Error:[/bold red] --start is after --end")
        raise typer.Exit(1)

    llm_client = None
    if llm:
        from devlog.llm import create_client_from_settings

        try:
            llm_client = create_client_from_settings(settings)
        except FatalRunError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            console.print("Use --no-llm to render without a language model")
            raise typer.Exit(1)

    try:
        init_db()
        with db_session() as session:
            codebase = _require_codebase(session, path)

            branch_id = None
            if branch:
                branch_row = BranchRepository(session).get_by_name(codebase.id, branch)
                if branch_row is None:
                    console.print(
                        f"[bold red]Error:[/bold red] Unknown branch: {branch}"
                    )
                    raise typer.Exit(1)
                branch_id = branch_row.id

            # Rollups need their whole week and month, not just the window
            span_start, span_end = rollup_span(start_day, end_day)
            commits = load_worklog_commits(
                session,
                codebase.id,
                span_start,
                span_end,
                tz=tz,
                only_user=not all_authors,
                branch_id=branch_id,
            )
            cache = WorklogCache(session, codebase.id, settings.profile, tz=tz)
            assembler = WorklogAssembler(
                cache,
                llm_client=llm_client,
                settings=settings,
                user_label=settings.user_name or settings.user_email,
                project_context=codebase.summary or "",
            )
            document = assembler.build(
                commits,
                start_day,
                end_day,
                group_by=mode,
                scope_branch_id=str(branch_id) if branch_id else "",
            )
    except FatalRunError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if output:
        Path(output).write_text(document, encoding="utf-8")
        console.print(f"[green]✓ Worklog written to[/green] {output}")
    else:
        console.print(document, markup=False, highlight=False)

    shown = sum(1 for c in commits if start_day <= c.local_date(tz) <= end_day)
    stats = cache.stats
    console.print(
        f"[dim]{shown} commits | cache: {stats.hits} hits, "
        f"{stats.misses} misses, {stats.write_failures} write failures[/dim]"
    )
    if assembler.generation_failures:
        console.print(
            f"[yellow]⚠ {assembler.generation_failures} sections fell back to "
            f"plain output[/yellow]"
        )


@app.command("list")
def list_entries(
    path: str = typer.Argument(".", help="Path to an ingested git repository"),
    start: Optional[str] = typer.Option(None, help="First day (YYYY-MM-DD)"),
    end: Optional[str] = typer.Option(None, help="Last day (YYYY-MM-DD)"),
    entry_type: Optional[str] = typer.Option(
        None,
        "--type",
        help="Only this kind: day_updates, week_summary, month_summary "
        "or branch_summary",
    ),
) -> None:
    """List cached worklog sections of a repository for the active profile."""
    from rich.table import Table

    from devlog.config import settings
    from devlog.db.connection import db_session, init_db
    from devlog.db.repositories import WorklogRepository
    from devlog.models.db import EntryType

    _init_logging()

    kind = None
    if entry_type:
        try:
            kind = EntryType(entry_type.lower()).value
        except ValueError:
            console.print(f"[bold red]Error:[/bold red] Unknown --type {entry_type!r}")
            raise typer.Exit(1)
    start_day = _parse_date(start, "--start")
    end_day = _parse_date(end, "--end")

    init_db()
    with db_session() as session:
        codebase = _require_codebase(session, path)
        entries = WorklogRepository(session).list_entries(
            codebase.id,
            settings.profile,
            start=start_day,
            end=end_day,
            entry_type=kind,
        )

        if not entries:
            console.print("[dim]No cached worklog sections.[/dim]")
            return

        table = Table(title=f"Cached worklog sections for {codebase.name}")
        table.add_column("Date")
        table.add_column("Type", style="bold")
        table.add_column("Mode")
        table.add_column("Branch")
        table.add_column("Commits", justify="right")
        table.add_column("Signature", style="dim")
        for entry in entries:
            table.add_row(
                entry.entry_date.isoformat(),
                entry.entry_type,
                entry.group_by,
                entry.branch_name or "-",
                str(entry.commit_count),
                entry.signature[:12],
            )
    console.print(table)
    console.print(f"[dim]{len(entries)} sections[/dim]")


@app.command()
def clear(
    path: str = typer.Argument(".", help="Path to an ingested git repository"),
    selection: bool = typer.Option(
        False, "--selection", help="Also forget the saved branch selection"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """
    Delete cached worklog sections of a repository for the active profile.

    Ingested commits are kept; the next worklog run regenerates every
    section from them.
    """
    from devlog.config import settings
    from devlog.db.connection import db_session, init_db
    from devlog.db.repositories import WorklogRepository
    from devlog.ingestion import SelectionStore

    _init_logging()

    init_db()
    with db_session() as session:
        codebase = _require_codebase(session, path)
        if not yes and not typer.confirm(
            f"Delete cached worklog sections for {codebase.path} "
            f"(profile {settings.profile})?",
            default=False,
        ):
            console.print("[dim]Cancelled[/dim]")
            return
        deleted = WorklogRepository(session).delete_entries(
            codebase.id, settings.profile
        )
        repo_path = codebase.path

    console.print(f"[green]✓[/green] Deleted {deleted} cached sections")
    if selection:
        store = SelectionStore(settings.branch_selection_file, settings.profile)
        if store.clear(repo_path):
            console.print("[green]✓[/green] Forgot saved branch selection")
        else:
            console.print("[dim]No saved branch selection[/dim]")


if __name__ == "__main__":
    app()
