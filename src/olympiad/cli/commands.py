"""CLI commands for the Olympiad back-office.

Commands:
- init-db: Create the database schema
- db-status: Show which tables exist and the schema version
- create-admin: Create a back-office admin account
- run-progression: Score, rank and advance the participants of a stage
- serve: Run the Web API with uvicorn
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from olympiad.config import load_app_config
from olympiad.core.accounts import create_admin as do_create_admin
from olympiad.core.errors import OlympiadError
from olympiad.core.progression import run_progression as do_run_progression
from olympiad.db.database import (
    EXPECTED_TABLES,
    check_database_status,
    init_db as do_init_db,
    set_db_path,
)

app = typer.Typer(
    name="olympiad",
    help="Back-office tools for running a multi-stage STEM Olympiad.",
    no_args_is_help=True,
)

console = Console()


def _db_path(db: str | None) -> Path:
    return Path(db) if db else load_app_config().database.path


# =============================================================================
# DATABASE
# =============================================================================


@app.command(name="init-db")
def init_db(
    db: str | None = typer.Option(None, "--db", help="Database file (default from config)"),
) -> None:
    """Create any missing tables."""
    path = _db_path(db)
    do_init_db(path)
    status = check_database_status()
    console.print(f"[green]✓ Database initialized with {len(status['tables'])} tables[/green]")
    console.print(f"  [dim]path:[/dim]    {path}")
    console.print(f"  [dim]version:[/dim] {status['schema_version']}")


@app.command(name="db-status")
def db_status(
    db: str | None = typer.Option(None, "--db", help="Database file (default from config)"),
) -> None:
    """Show which tables exist and the schema version."""
    path = _db_path(db)
    if not path.exists():
        console.print(f"[yellow]⚠ No database at {path}. Run 'olympiad init-db'.[/yellow]")
        raise typer.Exit(code=1)

    set_db_path(path)
    status = check_database_status()

    table = Table(title=f"Database {path}")
    table.add_column("Table")
    table.add_column("Present", justify="center")
    for name in EXPECTED_TABLES:
        present = name in status["tables"]
        table.add_row(name, "[green]✓[/green]" if present else "[red]✗[/red]")
    console.print(table)
    console.print(f"  [dim]schema version:[/dim] {status['schema_version']}")

    if not status["initialized"]:
        raise typer.Exit(code=1)


# =============================================================================
# ACCOUNTS
# =============================================================================


@app.command(name="create-admin")
def create_admin(
    email: str = typer.Argument(..., help="Admin email"),
    full_name: str = typer.Option(..., "--full-name", "-n", help="Admin full name"),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True
    ),
    db: str | None = typer.Option(None, "--db", help="Database file (default from config)"),
) -> None:
    """Create a back-office admin account."""
    do_init_db(_db_path(db))
    try:
        account = do_create_admin(email, password, full_name)
    except OlympiadError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]✓ Admin created: {account.email}[/green]")
    console.print(f"  [dim]id:[/dim] {account.id}")


# =============================================================================
# PROGRESSION
# =============================================================================


@app.command(name="run-progression")
def run_progression(
    edition_id: str = typer.Argument(..., help="Edition ID"),
    stage: str = typer.Argument(..., help="Stage: Beginner, Theory, Practical or Final"),
    db: str | None = typer.Option(None, "--db", help="Database file (default from config)"),
) -> None:
    """Score, rank and advance every participant of a stage."""
    do_init_db(_db_path(db))
    try:
        summary = do_run_progression(edition_id, stage)
    except OlympiadError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        raise typer.Exit(code=1)

    table = Table(title=f"{stage} progression")
    table.add_column("Level")
    table.add_column("Evaluated", justify="right")
    table.add_column("Advanced", justify="right")
    for level, counts in sorted(summary["by_level"].items()):
        table.add_row(level, str(counts["evaluated"]), str(counts["advanced"]))
    console.print(table)
    console.print(
        f"[green]✓ {summary['advanced']} of {summary['evaluated']} participants advanced[/green]"
    )


# =============================================================================
# SERVER
# =============================================================================


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the Web API."""
    import uvicorn

    console.print(f"[blue]Serving Olympiad API on http://{host}:{port}[/blue]")
    uvicorn.run("olympiad.web.api:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
