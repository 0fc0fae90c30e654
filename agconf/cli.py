"""agconf CLI — sync canonical agent configuration into a repository."""

import sys
import tempfile

import click
from rich.console import Console
from rich.table import Table

from agconf import __version__

console = Console()


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.option("--dir", "repo_dir", default=".", type=click.Path(file_okay=False), help="Downstream repository")
@click.pass_context
def main(ctx: click.Context, verbose: bool, repo_dir: str):
    """agconf — propagate agent configuration from a canonical repository.

    Syncs a global AGENTS.md, skills, rules, and sub-agents into this
    repository while keeping its own instructions intact, and detects
    hand-edits to anything it manages.
    """
    from agconf.log import configure_logging

    configure_logging("DEBUG" if verbose else "WARNING")
    ctx.obj = {"repo_dir": repo_dir}


# ── Sync ─────────────────────────────────────────────────────────────


@main.command()
@click.option("--source", "-s", "source_path", default=None, help="Local canonical repository path")
@click.option("--repo", "-r", default=None, help="GitHub repository (owner/name)")
@click.option("--ref", default=None, help="Git ref to sync from (with --repo)")
@click.option("--target", "-t", "targets", multiple=True, help="Target(s), comma-separated: claude, codex")
@click.option("--override", is_flag=True, help="Discard local instructions instead of merging them")
@click.option("--pin", "pinned_version", default=None, help="Version to record as pinned (defaults to --ref when it is a release tag)")
@click.option("--timeout", default=120.0, show_default=True, help="Clone timeout in seconds")
@click.pass_context
def sync(
    ctx: click.Context,
    source_path: str | None,
    repo: str | None,
    ref: str | None,
    targets: tuple,
    override: bool,
    pinned_version: str | None,
    timeout: float,
):
    """Sync canonical content into the repository."""
    from agconf.config.settings import EngineConfig
    from agconf.errors import AgconfError
    from agconf.sources.resolver import (
        format_tag,
        is_version_ref,
        parse_version,
        resolve_github_source,
        resolve_local_source,
    )
    from agconf.sync.orchestrator import SyncOrchestrator

    if bool(source_path) == bool(repo):
        raise click.UsageError("Specify exactly one of --source or --repo")

    if repo and is_version_ref(ref):
        ref = format_tag(ref)
        pinned_version = pinned_version or parse_version(ref)

    config = EngineConfig()
    orchestrator = SyncOrchestrator(ctx.obj["repo_dir"], config)

    try:
        with tempfile.TemporaryDirectory(prefix="agconf_") as tmp:
            if repo:
                resolved = resolve_github_source(repo, ref, tmp, config, timeout=timeout)
            else:
                resolved = resolve_local_source(source_path, config)

            console.print(f"\n[bold blue]agconf[/] — Syncing from {resolved.source.display}\n")
            result = orchestrator.sync(
                resolved,
                targets=list(targets) or None,
                override=override,
                pinned_version=pinned_version,
            )
    except AgconfError as e:
        console.print(f"[red]Sync failed:[/] {e}")
        sys.exit(1)

    if result.schema_warning:
        console.print(f"[yellow]Warning:[/] {result.schema_warning}")

    merge = result.agents_md
    label = "updated" if merge.changed else "unchanged"
    if merge.preserved_repo_content:
        label += ", repository content preserved"
    console.print(f"  [green]v[/] AGENTS.md {label}")

    _print_outcome("Skills", result.skills)
    if result.rules is not None:
        _print_outcome("Rules", result.rules)
    if result.agents is not None:
        _print_outcome("Agents", result.agents)
    if result.agents_skipped:
        console.print("  [yellow]![/] Agents skipped: no selected target supports sub-agents")

    for kind, report in result.orphans.items():
        for name in report.deleted:
            console.print(f"  [dim]-[/] Removed orphaned {kind[:-1]}: {name}")
        for name in report.skipped:
            console.print(f"  [yellow]![/] Kept orphaned {kind[:-1]} (not managed or modified): {name}")

    console.print(f"\n[green]Synced to:[/] {', '.join(result.lockfile.content.targets)}")


def _print_outcome(label: str, outcome) -> None:
    console.print(
        f"  [green]v[/] {label}: {len(outcome.items)} synced, "
        f"{len(outcome.written)} written, {len(outcome.unchanged)} unchanged"
    )
    for error in outcome.validation_errors:
        console.print(f"    [yellow]![/] {error.item}: {'; '.join(error.errors)}")


# ── Check ────────────────────────────────────────────────────────────


@main.command()
@click.option("--quiet", "-q", is_flag=True, help="No output, only the exit code")
@click.pass_context
def check(ctx: click.Context, quiet: bool):
    """Check managed files for hand-edits.

    Exits 1 if any managed file or block was modified, or if the lockfile
    comes from an incompatible schema version.
    """
    from agconf.errors import AgconfError, SchemaIncompatibleError
    from agconf.sync.orchestrator import SyncOrchestrator

    try:
        report = SyncOrchestrator(ctx.obj["repo_dir"]).check()
    except SchemaIncompatibleError as e:
        if not quiet:
            console.print(f"[red]Schema error:[/] {e}")
        sys.exit(1)
    except AgconfError as e:
        if not quiet:
            console.print(f"[red]Check failed:[/] {e}")
        sys.exit(1)

    if not report.synced:
        if not quiet:
            console.print("[yellow]Not synced.[/] Run 'agconf sync' first.")
        return

    if not report.files:
        if not quiet:
            console.print("[red]x[/] No managed files found. Run 'agconf sync' to restore them.")
        sys.exit(1)

    if quiet:
        if report.modified:
            sys.exit(1)
        return

    if report.schema_warning:
        console.print(f"[yellow]Warning:[/] {report.schema_warning}")

    if not report.modified:
        console.print(f"[green]v[/] All {len(report.files)} managed item(s) are unchanged")
        return

    table = Table(title=f"Modified managed content ({len(report.modified)})")
    table.add_column("Path", style="cyan")
    table.add_column("Kind")
    table.add_column("Expected hash", style="dim")
    table.add_column("Current hash", style="dim")
    for item in report.modified:
        table.add_row(item.path, item.kind, item.expected_hash or "", item.current_hash)
    console.print(table)
    console.print("Run 'agconf sync' to restore them to the expected state.")
    sys.exit(1)


# ── Status ───────────────────────────────────────────────────────────


@main.command()
@click.pass_context
def status(ctx: click.Context):
    """Show the sync state of the repository."""
    from agconf.sync.orchestrator import SyncOrchestrator

    state = SyncOrchestrator(ctx.obj["repo_dir"]).status()

    if not state.has_synced:
        console.print("[yellow]Not synced.[/]")
        return
    if state.schema_error:
        console.print(f"[red]Schema error:[/] {state.schema_error}")
        return

    lockfile = state.lockfile
    table = Table(title="agconf status", show_header=False)
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("Source", lockfile.source.display)
    if lockfile.source.commit_sha:
        table.add_row("Commit", lockfile.source.commit_sha[:12])
    if lockfile.pinned_version:
        table.add_row("Pinned", lockfile.pinned_version)
    table.add_row("Synced at", lockfile.synced_at)
    table.add_row("Targets", ", ".join(lockfile.content.targets))
    table.add_row("Skills", str(len(lockfile.content.skills)))
    if lockfile.content.rules:
        table.add_row("Rules", str(len(lockfile.content.rules.files)))
    if lockfile.content.agents:
        table.add_row("Agents", str(len(lockfile.content.agents.files)))
    table.add_row("AGENTS.md", "present" if state.agents_md_exists else "[red]missing[/]")
    console.print(table)

    if state.schema_warning:
        console.print(f"[yellow]Warning:[/] {state.schema_warning}")


# ── Propose ──────────────────────────────────────────────────────────


@main.command()
@click.option("--title", default=None, help="Proposal title (branch name, commit message, PR title)")
@click.option("--message", "-m", default=None, help="Description added to the pull request body")
@click.option("--file", "-f", "files", multiple=True, help="Only propose paths containing this text")
@click.option("--dry-run", is_flag=True, help="List the changes without cloning or pushing")
@click.pass_context
def propose(ctx: click.Context, title: str | None, message: str | None, files: tuple, dry_run: bool):
    """Propose hand-edits of managed content to the canonical repository.

    Edited skills, rules, agents, and the global AGENTS.md block are
    committed to a new branch of the canonical repository and pushed.
    """
    from agconf.errors import AgconfError
    from agconf.sync.propose import apply_proposed_changes, detect_proposed_changes

    if not dry_run and not title:
        raise click.UsageError("--title is required unless --dry-run is given")

    try:
        result = detect_proposed_changes(ctx.obj["repo_dir"], files=list(files) or None)
    except AgconfError as e:
        console.print(f"[red]Propose failed:[/] {e}")
        sys.exit(1)

    for item in result.skipped:
        console.print(f"  [yellow]![/] {item.path} ({item.kind}) cannot be proposed; edit the canonical rules instead")

    if not result.changes:
        console.print("No modified managed files found. Nothing to propose.")
        return

    console.print(f"\n[bold blue]agconf[/] — {len(result.changes)} modified file(s)\n")
    for change in result.changes:
        console.print(f"  {change.downstream_path} [dim]-> {change.canonical_path}[/]")
    console.print(f"\nCanonical source: [cyan]{result.source.display}[/]")

    if dry_run:
        console.print("\nDry run: nothing was cloned or pushed.")
        return

    try:
        applied = apply_proposed_changes(result, title, message=message)
    except AgconfError as e:
        console.print(f"[red]Propose failed:[/] {e}")
        sys.exit(1)

    console.print(f"\n[green]Branch:[/] {applied.branch}")
    if not applied.pushed:
        console.print("[yellow]Push failed.[/] Run these commands to finish:\n")
        console.print(applied.manual_commands, markup=False, highlight=False)
        sys.exit(1)

    if applied.pr_command:
        console.print("Branch pushed. Open the pull request with:\n")
        console.print(applied.pr_command, markup=False, highlight=False)
    else:
        console.print(f"Branch pushed to {result.source.display}")
    console.print(f"[dim]Clone: {applied.clone_dir}[/]")


# ── Canonical ────────────────────────────────────────────────────────


@main.group()
def canonical():
    """Manage a canonical repository."""


@canonical.command("init")
@click.argument("directory", required=False, type=click.Path(file_okay=False))
@click.option("--name", default=None, help="Repository name (default: directory name)")
@click.option("--org", "organization", default=None, help="Organization name")
@click.option("--prefix", "marker_prefix", default=None, help="Marker prefix (default: the name)")
@click.option("--rules-dir", default=None, help="Also create and declare a rules directory")
@click.option("--no-examples", is_flag=True, help="Skip the example skill")
@click.option("--force", is_flag=True, help="Overwrite an existing agconf.yaml")
@click.pass_context
def canonical_init(
    ctx: click.Context,
    directory: str | None,
    name: str | None,
    organization: str | None,
    marker_prefix: str | None,
    rules_dir: str | None,
    no_examples: bool,
    force: bool,
):
    """Scaffold a canonical repository in DIRECTORY (default: --dir)."""
    from agconf.errors import AgconfError
    from agconf.sources.canonical import init_canonical_repo

    try:
        result = init_canonical_repo(
            directory or ctx.obj["repo_dir"],
            name=name,
            organization=organization,
            marker_prefix=marker_prefix,
            rules_dir=rules_dir,
            include_examples=not no_examples,
            force=force,
        )
    except AgconfError as e:
        console.print(f"[red]Init failed:[/] {e}")
        sys.exit(1)

    console.print(f"\n[bold blue]agconf[/] — Canonical repository in {result.root}\n")
    for rel in result.created:
        console.print(f"  [green]+[/] {rel}")
    for rel in result.kept:
        console.print(f"  [dim]= {rel} (already exists, kept)[/]")


if __name__ == "__main__":
    main()
