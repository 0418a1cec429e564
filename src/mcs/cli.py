"""Command-line entry point: `mcs`."""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Tuple

import click
import requests

from mcs import __version__
from mcs.codespaces import components as registry
from mcs.codespaces.backups import BackupManager, format_size
from mcs.codespaces.lifecycle import CodespaceManager, CreateOptions
from mcs.codespaces.ownership import cleanup_owned, count_owned, prune_unused
from mcs.config import Settings, get_settings
from mcs.errors import BulkOperationError, McsError
from mcs.logging_setup import setup_logging
from mcs.models import BackupType, CodespaceState
from mcs.preferences import IPMode, PreferencesStore
from mcs.prompt import confirm_word
from mcs.updates import check_for_updates, pending_banner, start_background_check

logger = logging.getLogger(__name__)

_STATE_COLORS = {
    CodespaceState.running: "green",
    CodespaceState.stopped: "yellow",
    CodespaceState.created: "cyan",
}


class AppContext:
    """Per-invocation state shared by subcommands."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.preferences = PreferencesStore(settings.preferences_path)
        self._manager: Optional[CodespaceManager] = None

    @property
    def manager(self) -> CodespaceManager:
        if self._manager is None:
            self._manager = CodespaceManager(self.settings, preferences=self.preferences)
        return self._manager

    @property
    def backups(self) -> BackupManager:
        return self.manager.backups

    def close(self) -> None:
        if self._manager is not None:
            self._manager.close()


class McsGroup(click.Group):
    """Click group that reports mcs errors as one-line failures."""

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except BulkOperationError as e:
            for line in e.report.errors:
                click.secho(f"  {line}", fg="red", err=True)
            logger.error("Bulk operation failed: %s", e)
            raise click.ClickException(str(e)) from e
        except McsError as e:
            logger.error("%s", e)
            raise click.ClickException(str(e)) from e


pass_app = click.make_pass_decorator(AppContext)


@click.group(cls=McsGroup)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log to the console as well.")
@click.version_option(__version__, prog_name="mcs")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """mcs - container-backed development codespaces."""
    settings = get_settings()
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_dir=settings.logs_dir,
        add_console=verbose,
    )

    app = AppContext(settings)
    ctx.obj = app
    ctx.call_on_close(app.close)

    banner = pending_banner(app.preferences, __version__)
    if banner:
        click.secho(banner, fg="cyan", err=True)
    if ctx.invoked_subcommand not in ("check-updates", "version"):
        start_background_check(settings, app.preferences, __version__)


# ---------------------------------------------------------------------------
# Codespace commands
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("repository")
@click.option("--name", default=None, help="Codespace name (default: derived from the repository).")
@click.option(
    "--component",
    "-c",
    "component_ids",
    multiple=True,
    type=click.Choice([c.id for c in registry.REGISTRY]),
    help="Component to install (repeatable). Default: all.",
)
@click.option("--no-components", is_flag=True, default=False, help="Install no components.")
@click.option("--no-start", is_flag=True, default=False, help="Create without starting.")
@click.option("--depth", type=int, default=None, help="Clone depth; negative for full history.")
@pass_app
def create(
    app: AppContext,
    repository: str,
    name: Optional[str],
    component_ids: Tuple[str, ...],
    no_components: bool,
    no_start: bool,
    depth: Optional[int],
) -> None:
    """Create a codespace from REPOSITORY (owner/repo, URL, or local path)."""
    selection: Optional[List[str]] = None
    if no_components:
        selection = []
    elif component_ids:
        selection = list(component_ids)

    cs = app.manager.create(
        CreateOptions(
            repository=repository,
            name=name,
            components=selection,
            start=not no_start,
            clone_depth=depth,
        )
    )
    click.secho(f"Codespace '{cs.name}' created", fg="green")
    click.echo(f"  Path:     {cs.path}")
    click.echo(f"  Language: {cs.language}")
    click.echo(f"  Editor:   {cs.vscode_url}")
    click.echo(f"  App:      {cs.app_url}")
    click.echo(f"  Password: {cs.password}")
    if not no_start and cs.status is not CodespaceState.running:
        click.secho(f"  Container did not start; run `mcs start {cs.name}` to retry.", fg="yellow")


@cli.command(name="list")
@pass_app
def list_cmd(app: AppContext) -> None:
    """List codespaces with their live status."""
    items = app.manager.list()
    if not items:
        click.echo("No codespaces found.")
        return
    width = max(len(cs.name) for cs in items)
    for cs in items:
        state = click.style(cs.status.value.ljust(8), fg=_STATE_COLORS.get(cs.status))
        click.echo(f"{cs.name.ljust(width)}  {state}  {cs.vscode_url or '-'}")


@cli.command()
@click.argument("name", required=False)
@pass_app
def status(app: AppContext, name: Optional[str]) -> None:
    """Show one codespace, or an overview of managed containers."""
    if name:
        cs = app.manager.get(name)
        click.echo(f"Name:       {cs.name}")
        click.echo(f"Status:     {click.style(cs.status.value, fg=_STATE_COLORS.get(cs.status))}")
        click.echo(f"Repository: {cs.repository or '-'}")
        click.echo(f"Path:       {cs.path}")
        click.echo(f"Editor:     {cs.vscode_url or '-'}")
        click.echo(f"App:        {cs.app_url or '-'}")
        click.echo(f"Components: {', '.join(cs.components) or '-'}")
        return

    counts = count_owned(app.manager.client)
    click.echo(f"Codespaces: {len(app.manager.list())}")
    click.echo(f"Managed containers: {counts['total']} ({counts['running']} running, {counts['stopped']} stopped)")


@cli.command()
@click.argument("name")
@pass_app
def start(app: AppContext, name: str) -> None:
    """Start a codespace."""
    app.manager.start(name)
    click.secho(f"Started {name}", fg="green")


@cli.command()
@click.argument("name")
@pass_app
def stop(app: AppContext, name: str) -> None:
    """Stop a codespace."""
    app.manager.stop(name)
    click.secho(f"Stopped {name}", fg="green")


@cli.command()
@click.argument("name")
@pass_app
def restart(app: AppContext, name: str) -> None:
    """Restart a codespace."""
    app.manager.restart(name)
    click.secho(f"Restarted {name}", fg="green")


@cli.command()
@click.argument("name")
@click.option("--force", "-f", is_flag=True, default=False, help="Do not ask for confirmation.")
@click.option("--backup", is_flag=True, default=False, help="Back up the codespace directory first.")
@pass_app
def remove(app: AppContext, name: str, force: bool, backup: bool) -> None:
    """Remove a codespace, its container and its files."""
    app.manager.get(name)
    if not force:
        click.confirm(f"Remove codespace '{name}' and all of its files?", abort=True)
    backup_id = app.manager.remove(name, backup=backup)
    if backup_id:
        click.echo(f"Backup: {backup_id}")
    elif backup:
        click.secho("Backup failed; codespace removed without a backup.", fg="yellow", err=True)
    click.secho(f"Removed {name}", fg="green")


@cli.command()
@click.argument("name")
@click.option("--tail", "-n", type=int, default=100, show_default=True, help="Number of lines.")
@pass_app
def logs(app: AppContext, name: str, tail: int) -> None:
    """Show container logs for a codespace."""
    click.echo(app.manager.logs(name, tail=tail), nl=False)


@cli.command()
@click.option("--prune", is_flag=True, default=False, help="Also prune unused Docker resources.")
@click.option("--yes", "-y", is_flag=True, default=False, help="Do not ask for confirmation.")
@pass_app
def cleanup(app: AppContext, prune: bool, yes: bool) -> None:
    """Stop and remove every container managed by mcs."""
    if not yes:
        click.confirm("Remove all mcs-managed containers?", abort=True)
    report = cleanup_owned(app.manager.client, app.settings.stop_timeout_seconds)
    click.secho(f"Containers: {report.summary()}", fg="green")
    if prune:
        results = prune_unused(app.manager.client)
        click.echo(f"Pruned unused resources, reclaimed {format_size(results['space_reclaimed'])}")


@cli.command()
@click.option("--skip-backup", is_flag=True, default=False, help="Do not back up the codespaces directory.")
@pass_app
def destroy(app: AppContext, skip_backup: bool) -> None:
    """Remove every codespace and every mcs-managed container."""
    click.secho("This removes ALL codespaces, their files and their containers.", fg="red", bold=True)
    if not confirm_word("Type 'destroy' to continue: ", "destroy"):
        raise click.ClickException("Aborted.")

    report = app.manager.destroy_all(backup=not skip_backup)
    if report.backup_id:
        click.echo(f"Backup: {report.backup_id}")
    if report.backup_error:
        click.secho(f"Backup failed, continued anyway: {report.backup_error}", fg="yellow", err=True)
    click.echo(f"Containers: {report.containers.summary()}")
    click.secho("Destroy complete.", fg="green")


# ---------------------------------------------------------------------------
# Backups
# ---------------------------------------------------------------------------


@cli.group()
def backup() -> None:
    """Manage backups."""


@backup.command(name="create")
@click.argument("path", type=click.Path(exists=True, file_okay=False))
@click.option(
    "--type",
    "backup_type",
    type=click.Choice([t.value for t in BackupType]),
    default=BackupType.manual.value,
    show_default=True,
)
@click.option("--description", "-d", default=None)
@pass_app
def backup_create(app: AppContext, path: str, backup_type: str, description: Optional[str]) -> None:
    """Back up a directory."""
    info = app.backups.create(path, BackupType(backup_type), description)
    click.secho(f"Created backup {info.id} ({format_size(info.size)})", fg="green")


@backup.command(name="list")
@pass_app
def backup_list(app: AppContext) -> None:
    """List backups, newest first."""
    items = app.backups.list()
    if not items:
        click.echo("No backups found.")
        return
    for b in items:
        line = f"{b.id}  {b.timestamp:%Y-%m-%d %H:%M}  {format_size(b.size):>9}  {b.source_path}"
        if b.description:
            line += f"  ({b.description})"
        click.echo(line)


@backup.command(name="restore")
@click.argument("backup_id")
@click.option("--target", default=None, help="Destination directory (default: original parent).")
@click.option("--force", is_flag=True, default=False, help="Overwrite existing data at the destination.")
@pass_app
def backup_restore(app: AppContext, backup_id: str, target: Optional[str], force: bool) -> None:
    """Restore a backup."""
    dest = app.backups.restore(backup_id, target, force=force)
    click.secho(f"Restored {backup_id} to {dest}", fg="green")


@backup.command(name="delete")
@click.argument("backup_id")
@pass_app
def backup_delete(app: AppContext, backup_id: str) -> None:
    """Delete a backup."""
    app.backups.delete(backup_id)
    click.secho(f"Deleted {backup_id}", fg="green")


@backup.command(name="cleanup")
@click.option("--keep", type=int, default=None, help="Number of newest backups to keep.")
@click.option("--dry-run", is_flag=True, default=False, help="Show what would be deleted.")
@pass_app
def backup_cleanup(app: AppContext, keep: Optional[int], dry_run: bool) -> None:
    """Delete all but the newest backups."""
    keep_count = app.settings.backup_keep if keep is None else keep
    if keep_count < 0:
        raise click.BadParameter("must be >= 0", param_hint="--keep")
    doomed = app.backups.cleanup_old(keep_count, dry_run=dry_run)
    if not doomed:
        click.echo(f"Nothing to delete (keeping {keep_count}).")
        return
    verb = "Would delete" if dry_run else "Deleted"
    for b in doomed:
        click.echo(f"{verb} {b.id} ({format_size(b.size)})")


# ---------------------------------------------------------------------------
# Preferences and updates
# ---------------------------------------------------------------------------


@cli.command(name="update-ip")
@click.argument("mode", type=click.Choice([m.value for m in IPMode]))
@click.argument("address", required=False)
@pass_app
def update_ip(app: AppContext, mode: str, address: Optional[str]) -> None:
    """Set the host address used in codespace URLs."""
    prefs = app.preferences.set_ip_mode(IPMode(mode), address)
    click.secho(f"Host IP set to {prefs.host_ip} ({prefs.ip_mode.value})", fg="green")
    click.echo("Existing codespaces keep their recorded URLs until recreated.")


@cli.command(name="check-updates")
@pass_app
def check_updates(app: AppContext) -> None:
    """Check for a newer release now."""
    try:
        newer = check_for_updates(app.settings, app.preferences, __version__, force=True)
    except (requests.RequestException, ValueError) as e:
        raise click.ClickException(f"Update check failed: {e}") from e
    if newer:
        click.secho(f"Version {newer} is available (installed: {__version__}).", fg="cyan")
    else:
        click.echo(f"mcs {__version__} is up to date.")


@cli.command()
def version() -> None:
    """Print the installed version."""
    click.echo(f"mcs {__version__}")


def main() -> None:
    cli(prog_name="mcs")


if __name__ == "__main__":
    main()
