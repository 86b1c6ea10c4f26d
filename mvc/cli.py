import functools
import os
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mvc.config import find_config, init_config, load_config, resolve_path, save_global_config
from mvc.errors import IntegrityError, MvcError
from mvc.identity import resolve_identity
from mvc.ignore import get_ignore_set
from mvc.log import read_log
from mvc.repository import Repository


def handle_errors(func):
    """Report MvcError as a one-line red message and exit 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except IntegrityError as e:
            Console().print(f"[red]Integrity check failed:[/red] {escape(e.message)}")
            Console().print("[dim]Nothing was changed.[/dim]")
            raise SystemExit(1)
        except MvcError as e:
            Console().print(f"[red]{escape(e.message)}[/red]")
            raise SystemExit(1)

    return wrapper


def _open():
    """Load config and return (config, repository, source path)."""
    config = load_config()
    repo = Repository(resolve_path(config, "repository"))
    return config, repo, resolve_path(config, "source")


@click.group()
@click.version_option(version="0.1.0")
def main():
    """mvc: local snapshots of a directory tree."""


@main.command()
@click.option("--force", is_flag=True, help="Reset HEAD to 0 if the repository already exists.")
@click.option("--repository", default=None, help="Repository directory (default .mvc).")
@handle_errors
def init(force, repository):
    """Initialize a repository in the current project. Creates .mvcconfig if missing."""
    if not find_config():
        config_path = init_config(repository=repository)
        click.echo(f"Created {config_path}")
    _, repo, _ = _open()
    repo.init(force=force)
    click.echo(f"Initialized empty repository in {repo.path}")


@main.command()
@click.argument("message")
@click.option("--name", default=None, help="Author name for this snapshot.")
@click.option("--email", default=None, help="Author email for this snapshot.")
@click.option("--ignore", "extra_ignore", multiple=True, help="Extra path to exclude (repeatable).")
@handle_errors
def save(message, name, email, extra_ignore):
    """Save a snapshot of the project.

    Example: mvc save "before refactor"
    """
    console = Console()
    config, repo, source = _open()
    ignore = get_ignore_set(source, repo.path) | set(extra_ignore)
    user = resolve_identity(name, email, config)
    snap_id = repo.save_snapshot(message, ignore, user, source)
    console.print(f"[bold green]Saved snapshot {snap_id}[/bold green]  [dim]{escape(message)}[/dim]")


@main.command()
@click.argument("snap_id", type=int)
@click.option("--to", "target", default=None, help="Directory to restore into (default: project source).")
@click.option("--ignore", "extra_ignore", multiple=True, help="Extra path to keep untouched (repeatable).")
@click.option("-y", "--yes", is_flag=True, help="Skip confirmation prompt.")
@handle_errors
def restore(snap_id, target, extra_ignore, yes):
    """Restore the project to a snapshot. Non-ignored files are replaced."""
    console = Console()
    _, repo, source = _open()
    # Traversal roots are passed relative to the cwd
    target = Path(os.path.relpath(target)) if target else source
    ignore = get_ignore_set(target, repo.path) | set(extra_ignore)

    snapshot = repo.get_snapshot(snap_id)
    console.print(f"[bold]About to restore snapshot {snap_id}[/bold] into {escape(str(target))}")
    console.print(f"  [cyan]{escape(snapshot.message)}[/cyan]  [dim]{escape(_author(snapshot))}[/dim]")

    if not yes:
        confirm = input("\nReplace current files? (y/n) > ").strip().lower()
        if confirm not in ("y", "yes"):
            console.print("[dim]Cancelled.[/dim]")
            return

    message = repo.return_snapshot(snap_id, target, ignore)
    console.print(f"[bold green]Restored snapshot {snap_id}:[/bold green] {escape(message)}")


@main.command()
@click.option("-n", "--limit", default=20, help="Number of snapshots to show.")
@handle_errors
def log(limit):
    """Show snapshot history, newest first."""
    console = Console()
    _, repo, _ = _open()
    snapshots = repo.list_snapshots()

    if not snapshots:
        console.print("[dim]No snapshots yet. Run 'mvc save' first.[/dim]")
        return

    table = Table(title="Snapshots")
    table.add_column("ID", style="bold cyan")
    table.add_column("Message", max_width=50)
    table.add_column("Author", style="dim")
    table.add_column("Hash", style="dim")

    for snap_id, snapshot in snapshots[:limit]:
        table.add_row(str(snap_id), escape(snapshot.message), escape(_author(snapshot)), snapshot.hash[:12])

    console.print(table)


@main.command()
@click.option("-n", "--limit", default=20, help="Number of entries to show.")
@handle_errors
def events(limit):
    """Show the repository audit log, most recent last."""
    console = Console()
    _, repo, _ = _open()
    repo.head()  # fails with NotInitializedError before a repository exists
    entries = read_log(repo.path)

    if not entries:
        console.print("[dim]No events recorded.[/dim]")
        return

    table = Table(title="Events")
    table.add_column("Time", style="dim")
    table.add_column("Event", style="bold")
    table.add_column("Snapshot", style="cyan")
    table.add_column("Detail", max_width=60)

    for entry in entries[-limit:]:
        event = entry.get("event", "?")
        style = "red" if event == "restore_failed" else "green"
        snapshot = entry.get("snapshot")
        detail = entry.get("message") or entry.get("target") or entry.get("reason") or ""
        table.add_row(
            entry.get("timestamp", "")[:19],
            f"[{style}]{escape(str(event))}[/{style}]",
            "" if snapshot is None else str(snapshot),
            escape(str(detail)),
        )

    console.print(table)


def _author(snapshot):
    if snapshot.email == "None":
        return snapshot.name
    return f"{snapshot.name} <{snapshot.email}>"


@main.command()
@click.argument("snap_id", type=int)
@handle_errors
def show(snap_id):
    """Show one snapshot and whether its archive is intact."""
    console = Console()
    _, repo, _ = _open()
    snapshot = repo.get_snapshot(snap_id)
    intact = repo.verify(snap_id)

    console.print(f"[bold]Snapshot {snap_id}[/bold]")
    console.print(f"  Message: {escape(snapshot.message)}")
    console.print(f"  Author:  {escape(_author(snapshot))}")
    console.print(f"  Hash:    {snapshot.hash}")
    status = "[green]ok[/green]" if intact else "[red]corrupt[/red]"
    console.print(f"  Archive: {status}")


@main.command()
@click.argument("snap_id", type=int, required=False)
@handle_errors
def verify(snap_id):
    """Check archive hashes for one snapshot, or all of them."""
    console = Console()
    _, repo, _ = _open()
    ids = [snap_id] if snap_id is not None else list(range(1, repo.head() + 1))

    bad = []
    for i in ids:
        if repo.verify(i):
            console.print(f"  [green]ok[/green]       {i}")
        else:
            console.print(f"  [red]corrupt[/red]  {i}")
            bad.append(i)

    if bad:
        console.print(f"[bold red]{len(bad)} corrupt snapshot(s).[/bold red]")
        raise SystemExit(1)
    console.print(f"[bold green]{len(ids)} snapshot(s) verified.[/bold green]")


@main.command("config")
@click.option("--name", default=None, help="Default author name.")
@click.option("--email", default=None, help="Default author email.")
def config_cmd(name, email):
    """Save default author identity to ~/.mvc/config.json."""
    updates = {k: v for k, v in (("name", name), ("email", email)) if v}
    if not updates:
        click.echo("Nothing to save. Pass --name and/or --email.")
        return
    save_global_config(updates)
    click.echo("Saved " + ", ".join(f"{k}={v}" for k, v in updates.items()) + " to ~/.mvc/config.json")
