#!/usr/bin/env python3
"""
Agent Skills - one canonical skill store, linked into every AI coding agent.

Skills live once in ~/.agents/skills and are symlinked into each agent's
own skills directory (Claude Code, Cursor, Codex, ...). Projects get links
to global skills, or copies of project-local ones.

Usage:
    uv tool install agent-skills
    agent-skills install vercel-labs/agent-skills@react-best-practices -a Cursor
    agent-skills link react-best-practices -a Cursor -a "Claude Code"
    agent-skills check
"""

import json
import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional

import readchar
import typer
from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from agent_skills.errors import AgentDirectoryNotEmptyError, SkillsError
from agent_skills.fetch import is_remote_source
from agent_skills.manager import SkillsManager
from agent_skills.paths import load_config, save_config
from agent_skills.store import SkillUpdateInfo
from agent_skills.sync import SyncReport
from agent_skills.transfer import export_config, import_config, read_export, write_export

# Package version - keep in sync with pyproject.toml
__version__ = "0.1.0"

console = Console()
app = typer.Typer(
    name="agent-skills",
    help="Manage AI agent skills from one canonical store",
    add_completion=False,
)

agents_app = typer.Typer(
    help="Manage the agent registry",
    no_args_is_help=True,
)
app.add_typer(agents_app, name="agents")

project_app = typer.Typer(
    help="Manage skills inside a project directory",
    no_args_is_help=True,
)
app.add_typer(project_app, name="project")


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """
    Manage AI agent skills from one canonical store.
    """
    setup_logging(verbose)
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


# =============================================================================
# Utility Functions
# =============================================================================

def setup_logging(verbose: bool = False):
    """Route engine logs through the shared Rich console."""
    logger = logging.getLogger("agent_skills")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = RichHandler(console=console, show_time=False, show_path=False)
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


def get_manager(token: Optional[str] = None) -> SkillsManager:
    return SkillsManager.from_env(token=token)


@contextmanager
def handle_errors():
    """Turn engine errors into a red message and exit code 1."""
    try:
        yield
    except (SkillsError, OSError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


def print_json(data: Any):
    typer.echo(json.dumps(data, indent=2))


def print_sync_report(report: SyncReport):
    for name in report.added:
        console.print(f"  [green]✓[/green] Linked {escape(name)}")
    for name in report.removed:
        console.print(f"  [yellow]-[/yellow] Unlinked {escape(name)}")
    for name in report.skipped:
        console.print(f"  [dim]Skipped {escape(name)} (a real directory is in the way)[/dim]")
    for name, reason in report.failed.items():
        console.print(f"  [red]✗[/red] {escape(name)}: {escape(reason)}")
    if not (report.added or report.removed or report.skipped or report.failed):
        console.print("  [dim]Links already up to date[/dim]")


def print_update_check(results: List[SkillUpdateInfo], json_output: bool = False):
    if json_output:
        print_json([{
            "name": r.name,
            "source": r.source,
            "hasUpdate": r.has_update,
            "latestSHA": r.latest_sha,
            "latestDate": r.latest_date,
            "error": r.error,
        } for r in results])
        return

    if not results:
        console.print("[dim]No remote skills to check[/dim]")
        return
    for r in results:
        if r.error:
            console.print(f"  [yellow]?[/yellow] {escape(r.name)}: {escape(r.error)}")
        elif r.has_update:
            console.print(f"  [cyan]↑[/cyan] {escape(r.name)} [dim]({escape(r.source)} {r.latest_sha[:7]})[/dim]")
        else:
            console.print(f"  [green]✓[/green] {escape(r.name)} [dim]up to date[/dim]")
    pending = sum(1 for r in results if r.has_update)
    if pending:
        console.print(f"\n[cyan]{pending} update(s) available.[/cyan] Run: agent-skills update --all")


# =============================================================================
# Interactive Selection Helpers
# =============================================================================

def get_key() -> str:
    """Get a single keypress in a cross-platform way using readchar."""
    try:
        key = readchar.readkey()

        if key == readchar.key.UP or key == readchar.key.CTRL_P:
            return 'up'
        if key == readchar.key.DOWN or key == readchar.key.CTRL_N:
            return 'down'
        if key == readchar.key.ENTER:
            return 'enter'
        if key == readchar.key.ESC:
            return 'esc'
        if key == readchar.key.CTRL_C:
            raise KeyboardInterrupt
        if key == ' ':
            return 'space'
        if key.lower() == 'a':
            return 'a'
        return key
    except KeyboardInterrupt:
        raise
    except Exception:
        return 'esc'


def select_agents_interactive(
    manager: SkillsManager,
    prompt_text: str = "Select agents",
    preselected: Optional[List[str]] = None,
) -> List[str]:
    """
    Interactive multi-select over the agent registry.

    Controls:
    - ↑/↓: Navigate
    - Space: Toggle selection
    - A: Select/deselect all
    - Enter: Confirm
    - Esc: Cancel

    Agents whose global directory is the canonical store are not offered.
    Returns the selected agent names, in registry order.
    """
    option_keys = linkable_agents(manager)
    installed = set(get_installed_agents(manager))
    selected = set(preselected or [])
    cursor_index = 0

    def create_selection_panel():
        lines = []
        for i, key in enumerate(option_keys):
            cursor = "→" if i == cursor_index else " "
            check = "✓" if key in selected else " "
            mark = "✓" if key in installed else " "

            if i == cursor_index:
                line = f"[bold cyan]{cursor} \\[{check}] {escape(key)}[/bold cyan] [dim](installed: {mark})[/dim]"
            else:
                line = f"[white]{cursor} \\[{check}] {escape(key)}[/white] [dim](installed: {mark})[/dim]"
            lines.append(line)

        lines.append("")
        lines.append("[dim]↑/↓: navigate  Space: toggle  A: all  Enter: confirm  Esc: cancel[/dim]")

        return Panel(
            "\n".join(lines),
            title=f"[bold cyan]{escape(prompt_text)}[/bold cyan]",
            border_style="cyan"
        )

    with Live(create_selection_panel(), console=console, transient=True, refresh_per_second=10) as live:
        while True:
            try:
                key = get_key()
            except KeyboardInterrupt:
                console.print("\n[yellow]Selection cancelled[/yellow]")
                raise typer.Exit(1)

            if key == 'up':
                cursor_index = (cursor_index - 1) % len(option_keys)
            elif key == 'down':
                cursor_index = (cursor_index + 1) % len(option_keys)
            elif key == 'space':
                current_key = option_keys[cursor_index]
                if current_key in selected:
                    selected.remove(current_key)
                else:
                    selected.add(current_key)
            elif key == 'a':
                if len(selected) == len(option_keys):
                    selected.clear()
                else:
                    selected = set(option_keys)
            elif key == 'enter':
                break
            elif key == 'esc':
                console.print("\n[yellow]Selection cancelled[/yellow]")
                raise typer.Exit(1)

            live.update(create_selection_panel())

    return [k for k in option_keys if k in selected]


def linkable_agents(manager: SkillsManager) -> List[str]:
    """Agent names that can receive global links, in registry order."""
    return [a.name for _, group in manager.store.links.groups() for a in group]


def get_installed_agents(manager: SkillsManager) -> List[str]:
    """Linkable agents whose config directory exists in the home directory."""
    return [
        name for name in linkable_agents(manager)
        if manager.registry.get(name).global_dir(manager.paths.home).parent.exists()
    ]


def resolve_agents(manager: SkillsManager, agents: Optional[List[str]]) -> List[str]:
    """Explicit --agent values, else the configured default agents."""
    if agents:
        return list(agents)
    return manager.default_agents


# =============================================================================
# Setup
# =============================================================================

@app.command()
def init(
    agent: Optional[List[str]] = typer.Option(
        None, "--agent", "-a",
        help="Default agent (repeatable). If not specified, shows interactive selector."
    ),
    all_agents: bool = typer.Option(False, "--all", help="Use every agent as a default"),
):
    """
    Create the canonical store and choose the default agents.

    Default agents are linked whenever install or create is run without --agent.

    Examples:
        agent-skills init                          # Interactive agent selection
        agent-skills init --all                    # Every agent
        agent-skills init -a Cursor -a "Claude Code"
    """
    manager = get_manager()

    with handle_errors():
        if agent:
            selected = [a.name for a in manager.registry.resolve_names(agent)]
        elif all_agents:
            selected = linkable_agents(manager)
        elif sys.stdin.isatty():
            console.print("")
            selected = select_agents_interactive(
                manager,
                prompt_text="Select default agents (installed agents pre-selected)",
                preselected=manager.default_agents or get_installed_agents(manager),
            )
            console.print("")
        else:
            raise SkillsError("pass --agent or --all when not running in a terminal")

    if not selected:
        console.print("[yellow]No agents selected. Exiting.[/yellow]")
        raise typer.Exit(1)

    manager.paths.store_dir.mkdir(parents=True, exist_ok=True)
    console.print(f"[green]✓[/green] Created {manager.paths.store_dir}")

    config = load_config(manager.paths)
    config["default_agents"] = selected
    save_config(manager.paths, config)
    console.print(f"[green]✓[/green] Saved default agents: {escape(', '.join(selected))}")


# =============================================================================
# Skill Commands
# =============================================================================

@app.command(name="list")
def list_skills(
    project: Optional[Path] = typer.Option(
        None, "--project", "-p",
        help="List the skills of a project directory instead of the global store"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    List installed skills and the agents that see them.

    Examples:
        agent-skills list
        agent-skills list --project .
        agent-skills list --json
    """
    manager = get_manager()
    with handle_errors():
        if project is not None:
            records = manager.projects.skills(project)
        else:
            records = manager.store.list()

    if json_output:
        print_json([r.to_dict() for r in records])
        return

    if not records:
        console.print("[dim]No skills installed[/dim]")
        return

    title = f"Skills in {project}" if project is not None else "Installed Skills"
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Name", style="green")
    table.add_column("Description", style="dim")
    table.add_column("Agents")
    if project is not None:
        table.add_column("Origin")
    else:
        table.add_column("Source", style="dim")

    for record in records:
        desc = record.description
        if len(desc) > 50:
            desc = desc[:47] + "..."
        agents = ", ".join(record.agents) or "[dim]none[/dim]"
        if project is not None:
            extra = "global" if record.is_global else "local"
        else:
            extra = record.source or "-"
        table.add_row(escape(record.name), escape(desc), agents, extra)

    console.print(table)


@app.command(name="show")
def show_skill(
    name: str = typer.Argument(..., help="Skill name"),
    files: bool = typer.Option(False, "--files", "-f", help="Show the skill's file tree"),
    raw: bool = typer.Option(False, "--raw", "-r", help="Print SKILL.md only"),
):
    """Show a skill's manifest, provenance and links."""
    manager = get_manager()
    with handle_errors():
        detail = manager.store.detail(name)
        skill_files = manager.store.files(name) if files else []

    if raw:
        typer.echo(detail.content)
        return

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="cyan", justify="right")
    table.add_column("Value", style="white")
    table.add_row("Name", escape(detail.name))
    table.add_row("Description", escape(detail.description) or "[dim]-[/dim]")
    if detail.language:
        table.add_row("Language", escape(detail.language))
    if detail.framework:
        table.add_row("Framework", escape(detail.framework))
    table.add_row("Path", str(detail.path))
    table.add_row("Source", escape(detail.source) or "[dim]unknown[/dim]")
    if detail.installed_at:
        table.add_row("Installed", detail.installed_at)
    if detail.updated_at:
        table.add_row("Updated", detail.updated_at)
    table.add_row("Agents", escape(", ".join(detail.agents)) or "[dim]none[/dim]")

    console.print(Panel(table, title=f"[bold cyan]{escape(detail.name)}[/bold cyan]", border_style="cyan"))

    if files:
        tree = Tree(f"[bold]{escape(detail.name)}/[/bold]")
        nodes = {"": tree}
        for f in skill_files:
            parent_key, _, leaf = f.name.rpartition("/")
            parent = nodes.get(parent_key, tree)
            if f.is_dir:
                nodes[f.name] = parent.add(f"[cyan]{escape(leaf)}/[/cyan]")
            else:
                parent.add(f"{escape(leaf)} [dim]({f.size} bytes)[/dim]")
        console.print(tree)


@app.command()
def install(
    source: str = typer.Argument(..., help="owner/repo@skill, or a local skill directory or SKILL.md"),
    agent: Optional[List[str]] = typer.Option(
        None, "--agent", "-a",
        help="Agent to link the skill to (repeatable; defaults to config default_agents)"
    ),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Skill name for a local directory"),
    token: Optional[str] = typer.Option(None, "--token", help="GitHub token for private repositories"),
):
    """
    Install a skill into the canonical store and link it to agents.

    Examples:
        agent-skills install vercel-labs/agent-skills@react-best-practices -a Cursor
        agent-skills install ./my-skill --name my-skill
    """
    manager = get_manager(token)
    agents = resolve_agents(manager, agent)

    with handle_errors():
        local = Path(source).expanduser()
        if local.is_dir() or local.is_file():
            result = manager.store.install_local(local, name=name, agents=agents)
        elif is_remote_source(source):
            console.print(f"[cyan]Fetching {escape(source)}...[/cyan]")
            result = manager.store.install_remote(source, agents=agents)
        else:
            raise SkillsError(f"not a local directory or owner/repo@skill source: {source}")

    console.print(f"[green]✓[/green] Installed skill: {escape(result.name)} [dim]({escape(result.source)})[/dim]")
    print_sync_report(result.links)
    if not result.links.ok:
        raise typer.Exit(1)


@app.command()
def create(
    name: str = typer.Argument(..., help="Name of the new skill"),
    description: str = typer.Option("", "--description", "-d", help="One-line description"),
    agent: Optional[List[str]] = typer.Option(None, "--agent", "-a", help="Agent to link to (repeatable)"),
):
    """Create a new local skill from the blank template."""
    manager = get_manager()
    with handle_errors():
        result = manager.store.create(name, description, resolve_agents(manager, agent))

    console.print(f"[green]✓[/green] Created skill: {escape(result.name)}")
    console.print(f"  [dim]{manager.paths.skill_dir(result.name)}[/dim]")
    print_sync_report(result.links)


@app.command()
def update(
    name: Optional[str] = typer.Argument(None, help="Skill to update"),
    all_skills: bool = typer.Option(False, "--all", help="Update every remote skill"),
    check: bool = typer.Option(False, "--check", help="Only report which skills have upstream changes"),
    json_output: bool = typer.Option(False, "--json", help="Output --check results as JSON"),
    token: Optional[str] = typer.Option(None, "--token", help="GitHub token for private repositories"),
):
    """
    Re-fetch skills from their recorded source.

    Examples:
        agent-skills update react-best-practices
        agent-skills update --all
        agent-skills update --check
    """
    manager = get_manager(token)
    if check:
        with handle_errors():
            results = manager.store.check_updates([name] if name else None)
        print_update_check(results, json_output)
        return

    if not name and not all_skills:
        console.print("[red]Error:[/red] Pass a skill name, --all or --check")
        raise typer.Exit(1)

    if name:
        with handle_errors():
            source = manager.store.update(name)
        console.print(f"[green]✓[/green] Updated {escape(name)} from {escape(source)}")
        return

    result = manager.store.update_all()
    for skill in result.succeeded:
        console.print(f"  [green]✓[/green] {escape(skill)}")
    for skill, reason in result.failed.items():
        console.print(f"  [red]✗[/red] {escape(skill)}: {escape(reason)}")
    console.print(f"\n[green]Updated {len(result.succeeded)} skills[/green]")
    if result.failed:
        raise typer.Exit(1)


@app.command()
def remove(
    names: List[str] = typer.Argument(..., help="Skills to delete"),
):
    """Delete skills: every agent link, the canonical copy and the ledger entry."""
    manager = get_manager()
    if len(names) == 1:
        with handle_errors():
            report = manager.store.delete(names[0])
        console.print(f"[green]✓[/green] Removed skill: {escape(names[0])}")
        if report.removed:
            console.print(f"  [dim]Unlinked from {escape(', '.join(report.removed))}[/dim]")
        return

    result = manager.store.batch_delete(names)
    for skill in result.succeeded:
        console.print(f"[green]✓[/green] Removed skill: {escape(skill)}")
    for skill, reason in result.failed.items():
        console.print(f"[red]Error:[/red] {escape(skill)}: {escape(reason)}")
    if result.failed:
        raise typer.Exit(1)


@app.command()
def link(
    name: str = typer.Argument(..., help="Skill name"),
    agent: Optional[List[str]] = typer.Option(
        None, "--agent", "-a",
        help="Agent that should see the skill (repeatable); omitted agents are unlinked"
    ),
    none: bool = typer.Option(False, "--none", help="Unlink the skill from every agent"),
):
    """
    Set exactly which agents see a skill.

    Without --agent an interactive selector is shown.

    Examples:
        agent-skills link react-best-practices -a Cursor -a "Claude Code"
        agent-skills link react-best-practices --none
    """
    manager = get_manager()
    with handle_errors():
        if none:
            desired: List[str] = []
        elif agent:
            desired = list(agent)
        elif sys.stdin.isatty():
            current = manager.store.linked_agents(name)
            desired = select_agents_interactive(manager, f"Agents for {name}", current)
        else:
            raise SkillsError("pass --agent (or --none) when not running in a terminal")
        report = manager.store.set_agents(name, desired)

    console.print(f"[cyan]{escape(name)}[/cyan]")
    print_sync_report(report)
    if not report.ok:
        raise typer.Exit(1)


@app.command()
def links(
    name: str = typer.Argument(..., help="Skill name"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show which agents currently link to a skill."""
    manager = get_manager()
    with handle_errors():
        agents = manager.store.linked_agents(name)

    if json_output:
        print_json(agents)
        return
    if not agents:
        console.print(f"[dim]{escape(name)} is not linked to any agent[/dim]")
        return
    for agent_name in agents:
        console.print(f"  [green]✓[/green] {escape(agent_name)}")


# =============================================================================
# Health Commands
# =============================================================================

@app.command()
def check(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Find broken links, orphan skills and stray files in agent directories."""
    manager = get_manager()
    report = manager.health.check()

    if json_output:
        print_json(report.to_dict())
        return

    console.print(f"Links: [green]{report.healthy_links}[/green] healthy / {report.total_links} total")

    if report.broken_links:
        table = Table(title="Broken Links", show_header=True, header_style="bold red")
        table.add_column("Agent", style="cyan")
        table.add_column("Skill")
        table.add_column("Target", style="dim")
        table.add_column("Reason", style="red")
        for broken in report.broken_links:
            table.add_row(
                escape(broken.agent_name), escape(broken.skill_name),
                escape(broken.target), escape(broken.reason),
            )
        console.print(table)
        console.print("[dim]Run 'agent-skills repair' to remove broken links[/dim]")

    if report.orphan_skills:
        console.print(f"\n[yellow]Orphan skills[/yellow] (not linked to any agent): "
                      f"{escape(', '.join(report.orphan_skills))}")

    if report.unknown_files:
        console.print("\n[yellow]Unknown files[/yellow] in agent directories:")
        for unknown in report.unknown_files:
            console.print(f"  [dim]{escape(unknown.agent_name)}:[/dim] {escape(unknown.file_path)}")

    if report.healthy and not report.orphan_skills and not report.unknown_files:
        console.print("[green]✓ Everything looks healthy[/green]")

    if not report.healthy:
        raise typer.Exit(1)


@app.command()
def repair():
    """Remove every broken agent link. Orphans and stray files are left alone."""
    manager = get_manager()
    repaired = manager.health.repair()
    if repaired:
        console.print(f"[green]✓[/green] Removed {repaired} broken links")
    else:
        console.print("[dim]No broken links found[/dim]")


# =============================================================================
# Export / Import
# =============================================================================

@app.command(name="export")
def export_cmd(
    path: Path = typer.Argument(..., help="Target file (.json, or .yaml/.yml)"),
):
    """Export installed skills, their agent links and custom agents."""
    manager = get_manager()
    data = export_config(manager.store)
    try:
        write_export(data, path)
    except OSError as e:
        console.print(f"[red]Error:[/red] cannot write {path}: {escape(str(e))}")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Exported {len(data['skills'])} skills to {path}")


@app.command(name="import")
def import_cmd(
    path: Path = typer.Argument(..., help="File produced by 'agent-skills export'"),
    token: Optional[str] = typer.Option(None, "--token", help="GitHub token for private repositories"),
):
    """Restore an exported setup: custom agents, links and missing skills."""
    manager = get_manager(token)
    with handle_errors():
        data = read_export(path)
    result = import_config(manager.store, data)

    console.print(f"[green]✓[/green] Installed: {len(result.installed)}  "
                  f"Skipped: {len(result.skipped)}  Failed: {len(result.failed)}")
    for skill, reason in result.failed.items():
        console.print(f"  [red]✗[/red] {escape(skill)}: {escape(reason)}")


# =============================================================================
# Agent Registry Commands
# =============================================================================

@agents_app.command("list")
def agents_list(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List every known agent and its skills directories."""
    manager = get_manager()
    if json_output:
        print_json([dict(a.to_dict(), isCustom=a.is_custom) for a in manager.registry])
        return

    table = Table(title="Agents", show_header=True, header_style="bold cyan")
    table.add_column("Agent", style="cyan")
    table.add_column("Global", style="dim")
    table.add_column("Project", style="dim")
    table.add_column("Custom", justify="center")
    for a in manager.registry:
        table.add_row(
            escape(a.name), f"~/{a.global_path}", a.local_path,
            "✓" if a.is_custom else "",
        )
    console.print(table)


@agents_app.command("add")
def agents_add(
    name: str = typer.Argument(..., help="Agent display name"),
    global_path: Optional[str] = typer.Option(
        None, "--global-path",
        help="Skills directory relative to home (default: .<name>/skills)"
    ),
    local_path: Optional[str] = typer.Option(
        None, "--local-path",
        help="Skills directory relative to a project (default: .<name>/skills)"
    ),
):
    """Register a custom agent."""
    manager = get_manager()
    with handle_errors():
        agent = manager.registry.add_custom(name, global_path, local_path)
    console.print(f"[green]✓[/green] Added agent: {escape(agent.name)} "
                  f"[dim](~/{agent.global_path}, {agent.local_path})[/dim]")


@agents_app.command("remove")
def agents_remove(
    name: str = typer.Argument(..., help="Custom agent name"),
):
    """Remove a custom agent. Built-in agents cannot be removed."""
    manager = get_manager()
    with handle_errors():
        manager.registry.remove_custom(name)
    console.print(f"[green]✓[/green] Removed agent: {escape(name)}")


@agents_app.command("check-updates")
def agents_check_updates():
    """Check the upstream agent catalog for agents not known locally."""
    manager = get_manager()
    console.print("[dim]Checking for new agents...[/dim]")
    with handle_errors():
        info = manager.catalog().check_updates()

    if not info.has_update:
        console.print("[green]✓ Agent list is up to date[/green]")
        return
    console.print(f"[yellow]{len(info.new_agents)} new agents available:[/yellow]")
    for a in info.new_agents:
        console.print(f"  [cyan]{escape(a.name)}[/cyan] [dim](~/{a.global_path}, {a.local_path})[/dim]")
    console.print("\n[dim]Run 'agent-skills agents apply-updates' to add them[/dim]")


@agents_app.command("apply-updates")
def agents_apply_updates():
    """Adopt every new upstream agent."""
    manager = get_manager()
    with handle_errors():
        added = manager.catalog().apply_updates()
    for a in added:
        console.print(f"  [green]+[/green] {escape(a.name)} [dim](~/{a.global_path}, {a.local_path})[/dim]")
    console.print(f"[green]✓[/green] Added {len(added)} agents")


@agents_app.command("dismiss-updates")
def agents_dismiss_updates():
    """Forget the pending new-agent notice."""
    manager = get_manager()
    manager.catalog().dismiss()
    console.print("[green]✓[/green] Update notice dismissed")


# =============================================================================
# Project Commands
# =============================================================================

@project_app.command("list")
def project_list(
    path: Path = typer.Argument(Path("."), help="Project directory"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List the agents enabled in a project and their skills."""
    manager = get_manager()
    enabled = manager.projects.agents(path)
    records = manager.projects.skills(path)

    if json_output:
        data: Dict[str, Any] = {
            "agents": [
                {"name": a.name, "localPath": a.local_path, "isCustom": a.is_custom,
                 "skillCount": a.skill_count}
                for a in enabled
            ],
            "skills": [r.to_dict() for r in records],
        }
        print_json(data)
        return

    if not enabled:
        console.print(f"[dim]No agents enabled in {path}[/dim]")
        return

    table = Table(title=f"Agents in {path}", show_header=True, header_style="bold cyan")
    table.add_column("Agent", style="cyan")
    table.add_column("Directory", style="dim")
    table.add_column("Skills", justify="right")
    for a in enabled:
        table.add_row(escape(a.name), a.local_path, str(a.skill_count))
    console.print(table)

    for record in records:
        origin = "[cyan]global[/cyan]" if record.is_global else "[yellow]local[/yellow]"
        console.print(f"  [green]{escape(record.name)}[/green] {origin} "
                      f"[dim]{escape(', '.join(record.agents))}[/dim]")


@project_app.command("install")
def project_install(
    skill: str = typer.Argument(..., help="Global skill name, or owner/repo@skill to copy in"),
    path: Path = typer.Option(Path("."), "--path", "-p", help="Project directory"),
    agent: Optional[List[str]] = typer.Option(
        None, "--agent", "-a",
        help="Agent to install for (repeatable; defaults to the project's enabled agents)"
    ),
    token: Optional[str] = typer.Option(None, "--token", help="GitHub token for private repositories"),
):
    """
    Add a skill to a project.

    Global skills are linked; owner/repo@skill sources are copied in.
    """
    manager = get_manager(token)
    with handle_errors():
        if manager.store.exists(skill):
            report = manager.projects.install(path, skill, agent or [])
        elif is_remote_source(skill):
            console.print(f"[cyan]Fetching {escape(skill)}...[/cyan]")
            report = manager.projects.install_remote(path, skill, agent or [])
        else:
            raise SkillsError(f"skill not found in canonical store: {skill}")

    console.print(f"[cyan]{escape(report.skill)}[/cyan] → {path}")
    print_sync_report(report)
    if not report.ok:
        raise typer.Exit(1)


@project_app.command("remove")
def project_remove(
    name: str = typer.Argument(..., help="Skill name"),
    path: Path = typer.Option(Path("."), "--path", "-p", help="Project directory"),
):
    """Remove a skill from every agent directory of a project."""
    manager = get_manager()
    with handle_errors():
        report = manager.projects.remove(path, name)
    console.print(f"[green]✓[/green] Removed {escape(name)} from {escape(', '.join(report.removed))}")


@project_app.command("link")
def project_link(
    name: str = typer.Argument(..., help="Skill name"),
    agent: Optional[List[str]] = typer.Option(
        None, "--agent", "-a",
        help="Agent that should have the skill (repeatable); omitted agents lose it"
    ),
    path: Path = typer.Option(Path("."), "--path", "-p", help="Project directory"),
):
    """Set exactly which project agents have a skill."""
    manager = get_manager()
    with handle_errors():
        report = manager.projects.set_skill_agents(path, name, agent or [])
    console.print(f"[cyan]{escape(name)}[/cyan]")
    print_sync_report(report)
    if not report.ok:
        raise typer.Exit(1)


@project_app.command("enable")
def project_enable(
    agent: str = typer.Argument(..., help="Agent name"),
    path: Path = typer.Option(Path("."), "--path", "-p", help="Project directory"),
):
    """Enable an agent in a project and give it the project's existing skills."""
    manager = get_manager()
    with handle_errors():
        report = manager.projects.enable_agent(path, agent)
    console.print(f"[green]✓[/green] Enabled {escape(agent)}")
    for name in report.added:
        console.print(f"  [green]✓[/green] {escape(name)}")
    for name, reason in report.failed.items():
        console.print(f"  [red]✗[/red] {escape(name)}: {escape(reason)}")


@project_app.command("disable")
def project_disable(
    agent: str = typer.Argument(..., help="Agent name"),
    path: Path = typer.Option(Path("."), "--path", "-p", help="Project directory"),
    force: bool = typer.Option(False, "--force", "-f", help="Delete the agent's skills too"),
):
    """Disable an agent in a project by removing its skills directory."""
    manager = get_manager()
    try:
        result = manager.projects.disable_agent(path, agent, force=force)
    except AgentDirectoryNotEmptyError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        console.print("[dim]Use --force to delete its skills as well[/dim]")
        raise typer.Exit(1)
    except (SkillsError, OSError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Disabled {escape(result.agent)}")
    if result.removed_entries:
        console.print(f"  [dim]Removed {result.removed_entries} skills[/dim]")


@project_app.command("clone")
def project_clone(
    source: Path = typer.Argument(..., help="Project to copy skills from"),
    target: Path = typer.Argument(..., help="Project to copy skills into"),
):
    """Reproduce one project's skills in another."""
    manager = get_manager()
    with handle_errors():
        report = manager.projects.clone(source, target)
    for entry in report.added:
        console.print(f"  [green]✓[/green] {escape(entry)}")
    for entry in report.skipped:
        console.print(f"  [dim]Skipped {escape(entry)} (already present)[/dim]")
    for entry, reason in report.failed.items():
        console.print(f"  [red]✗[/red] {escape(entry)}: {escape(reason)}")
    console.print(f"[green]✓[/green] Cloned {len(report.added)} skill entries into {escape(str(target))}")
    if not report.ok:
        raise typer.Exit(1)


# =============================================================================
# Version
# =============================================================================

def get_installed_version() -> str:
    """Get the currently installed version."""
    try:
        import importlib.metadata
        return importlib.metadata.version("agent-skills")
    except Exception:
        return __version__


@app.command()
def version():
    """Display version and storage locations."""
    import platform

    manager = get_manager()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="cyan", justify="right")
    table.add_column("Value", style="white")

    table.add_row("Version", get_installed_version())
    table.add_row("Python", platform.python_version())
    table.add_row("Platform", platform.system())
    table.add_row("Store", str(manager.paths.store_dir))
    table.add_row("Config", str(manager.paths.config_file))

    panel = Panel(
        table,
        title="[bold cyan]Agent Skills[/bold cyan]",
        border_style="cyan",
        padding=(1, 2)
    )
    console.print(panel)


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
