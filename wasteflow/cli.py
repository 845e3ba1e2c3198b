"""Click CLI entry point for Wasteflow."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, NoReturn

import click

from wasteflow.config import Settings
from wasteflow.db import Database
from wasteflow.errors import WasteflowError
from wasteflow.lifecycle import ProcessAction, ProcessLifecycle
from wasteflow.logging import configure_logging
from wasteflow.models.process import ProcessStatus, ProcessType
from wasteflow.models.user import Caller, Role, User
from wasteflow.stats import compute_process_stats

if TYPE_CHECKING:
    from wasteflow.models.process import Process

CLI_CALLER_ID = "cli"


def _get_db(settings: Settings) -> Database:
    settings.ensure_data_dir()
    db = Database(settings.db_path)
    db.init_schema()
    return db


def _caller(ctx: click.Context, db: Database) -> Caller:
    """The operator console acts as admin unless --as-user names an account."""
    user_id = ctx.obj.get("as_user")
    if not user_id:
        return Caller(caller_id=CLI_CALLER_ID, role=Role.ADMIN)
    user = db.get_user(user_id)
    if user is None:
        _fail(f"User {user_id} not found.")
    return Caller.from_user(user)


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _echo_process(process: Process) -> None:
    click.echo(f"Process {process.id}: {process.name}")
    click.echo(f"  Type: {process.process_type.value}")
    click.echo(f"  Status: {process.status.value}")
    click.echo(f"  Progress: {process.progress:.0f}%")
    if process.estimated_duration is not None:
        click.echo(f"  Estimated: {process.estimated_duration} min")
    if process.actual_duration is not None:
        click.echo(f"  Actual: {process.actual_duration} min")
    if process.error_message:
        click.echo(f"  Error: {process.error_message}")
    if process.started_at:
        click.echo(f"  Started: {process.started_at.isoformat()}")
    if process.completed_at:
        click.echo(f"  Completed: {process.completed_at.isoformat()}")


def _run_action(
    ctx: click.Context, process_id: str, action: ProcessAction, **params: object
) -> None:
    db = _get_db(ctx.obj["settings"])
    try:
        lifecycle = ProcessLifecycle(db)
        process = lifecycle.apply(_caller(ctx, db), process_id, action, **params)
        _echo_process(process)
    except WasteflowError as exc:
        _fail(str(exc))
    finally:
        db.close()


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("--as-user", "as_user", default=None, help="Act as this user id (default: admin)")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, as_user: str | None) -> None:
    """Wasteflow: waste-processing lifecycle tracking."""
    ctx.ensure_object(dict)
    settings = Settings()
    log_level = "DEBUG" if verbose else settings.log_level
    configure_logging(log_level=log_level, log_format=settings.log_format)
    ctx.obj["settings"] = settings
    ctx.obj["as_user"] = as_user


@cli.command("init-db")
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Create the database schema."""
    settings = ctx.obj["settings"]
    db = _get_db(settings)
    db.close()
    click.echo(f"Database ready at {settings.db_path}")


@cli.command("ls")
@click.option(
    "--status",
    type=click.Choice([s.value for s in ProcessStatus]),
    default=None,
    help="Filter by status",
)
@click.pass_context
def list_processes(ctx: click.Context, status: str | None) -> None:
    """List processes, newest first."""
    db = _get_db(ctx.obj["settings"])
    try:
        processes = db.list_processes()
        if status:
            processes = [p for p in processes if p.status.value == status]
        if not processes:
            click.echo("No processes found.")
            return
        for p in processes:
            click.echo(
                f"  [{p.id}] {p.status.value:10s} {p.progress:5.1f}% "
                f"{p.process_type.value:10s} {p.name}"
            )
    finally:
        db.close()


@cli.command()
@click.argument("process_id")
@click.pass_context
def show(ctx: click.Context, process_id: str) -> None:
    """Show one process."""
    db = _get_db(ctx.obj["settings"])
    try:
        process = db.get_process(process_id)
        if process is None:
            _fail(f"Process {process_id} not found.")
        _echo_process(process)
    finally:
        db.close()


@cli.command()
@click.option("--name", required=True, help="Process name")
@click.option("--description", required=True, help="What the process handles")
@click.option(
    "--type",
    "process_type",
    type=click.Choice([t.value for t in ProcessType]),
    required=True,
    help="Waste stream",
)
@click.option("--duration", type=int, default=None, help="Estimated duration in minutes")
@click.pass_context
def create(
    ctx: click.Context,
    name: str,
    description: str,
    process_type: str,
    duration: int | None,
) -> None:
    """Create a stopped process."""
    db = _get_db(ctx.obj["settings"])
    try:
        lifecycle = ProcessLifecycle(db)
        process = lifecycle.create_process(
            _caller(ctx, db),
            {
                "name": name,
                "description": description,
                "process_type": process_type,
                "estimated_duration": duration,
            },
        )
        click.echo(f"Created process {process.id}")
    except WasteflowError as exc:
        _fail(str(exc))
    finally:
        db.close()


@cli.command("action")
@click.argument(
    "action_name",
    metavar="ACTION",
    type=click.Choice(
        [
            ProcessAction.START.value,
            ProcessAction.PAUSE.value,
            ProcessAction.RESUME.value,
            ProcessAction.STOP.value,
            ProcessAction.FIX.value,
        ]
    ),
)
@click.argument("process_id")
@click.pass_context
def lifecycle_action(ctx: click.Context, action_name: str, process_id: str) -> None:
    """Apply a lifecycle action (start, pause, resume, stop, fix)."""
    _run_action(ctx, process_id, ProcessAction(action_name))


@cli.command()
@click.argument("process_id")
@click.pass_context
def complete(ctx: click.Context, process_id: str) -> None:
    """Mark a process completed (admin)."""
    _run_action(ctx, process_id, ProcessAction.MARK_COMPLETED)


@cli.command("force-stop")
@click.argument("process_id")
@click.option("--reason", default=None, help="Stored as the process error message")
@click.pass_context
def force_stop(ctx: click.Context, process_id: str, reason: str | None) -> None:
    """Force-stop a running, paused or failed process (admin)."""
    _run_action(ctx, process_id, ProcessAction.FORCE_STOP, reason=reason)


@cli.command()
@click.argument("process_id")
@click.option("--factor", type=int, default=1, show_default=True, help="Speed factor (1-5)")
@click.pass_context
def boost(ctx: click.Context, process_id: str, factor: int) -> None:
    """Speed-boost a process (admin)."""
    _run_action(ctx, process_id, ProcessAction.SPEED_BOOST, speed_factor=factor)


@cli.command("rm")
@click.argument("process_id")
@click.pass_context
def remove(ctx: click.Context, process_id: str) -> None:
    """Delete a process."""
    db = _get_db(ctx.obj["settings"])
    try:
        lifecycle = ProcessLifecycle(db)
        if not lifecycle.delete_process(_caller(ctx, db), process_id):
            _fail(f"Process {process_id} not found.")
        click.echo(f"Deleted process {process_id}")
    finally:
        db.close()


@cli.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show process counts and average progress."""
    db = _get_db(ctx.obj["settings"])
    try:
        summary = compute_process_stats(db.list_processes())
        click.echo(f"Total processes: {summary.total}")
        click.echo(f"Average progress: {summary.average_progress:.1f}%")
        click.echo("\nBy status:")
        for status, count in summary.by_status.items():
            click.echo(f"  {status:10s} {count}")
        click.echo("\nBy type:")
        for process_type, count in summary.by_type.items():
            click.echo(f"  {process_type:10s} {count}")
    finally:
        db.close()


@cli.command()
@click.pass_context
def users(ctx: click.Context) -> None:
    """List known users and their roles."""
    db = _get_db(ctx.obj["settings"])
    try:
        rows = db.list_users()
        if not rows:
            click.echo("No users found.")
            return
        for u in rows:
            click.echo(f"  [{u.id}] {u.role.value:6s} {u.email or ''}")
    finally:
        db.close()


@cli.command("set-role")
@click.argument("user_id")
@click.argument("role", type=click.Choice([r.value for r in Role]))
@click.option("--email", default=None, help="Email for a user not seen before")
@click.pass_context
def set_role(ctx: click.Context, user_id: str, role: str, email: str | None) -> None:
    """Grant or revoke the admin role. Unknown users are created."""
    db = _get_db(ctx.obj["settings"])
    try:
        user = db.set_user_role(user_id, Role(role))
        if user is None:
            user = db.upsert_user(User(id=user_id, email=email, role=Role(role)))
        click.echo(f"User {user.id} is now {user.role.value}")
    finally:
        db.close()


@cli.command()
@click.option("--host", type=str, default=None, help="Bind host")
@click.option("--port", type=int, default=None, help="Bind port")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Start the FastAPI API server."""
    import uvicorn

    settings = ctx.obj["settings"]
    uvicorn.run(
        "wasteflow.api.app:create_app",
        factory=True,
        host=host or settings.api_host,
        port=port or settings.api_port,
    )
