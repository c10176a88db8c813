from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import bundle_root, global_root, module_labels, project_root
from .deploy import (
    CopyOutcome,
    DeployError,
    OutcomeKind,
    install_all,
    install_global,
    install_project,
    validate_source,
)
from .logs import configure_logging
from .status import ModuleStatus, StatusReport, collect_status

app = typer.Typer(help="Deploy the bundled Cursor rules, skills, agents and commands.", add_completion=False)
console = Console()

EXIT_OK = 0
EXIT_ERROR = 1

MENU_CHOICES = {"1": "global", "2": "project", "3": "all", "4": "status"}

MODULE_LABELS = module_labels()


class OutputFormat(str, Enum):
    table = "table"
    json = "json"
    md = "md"
    yaml = "yaml"


@dataclass(frozen=True)
class RunContext:
    source: Path
    target: Path
    force: bool
    output_format: OutputFormat


def _json_print(payload: dict) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=True, sort_keys=True))


def _yaml_print(payload: dict) -> None:
    typer.echo(yaml.safe_dump(payload, sort_keys=True).rstrip())


def _emit_success(
    command: str,
    output_format: OutputFormat,
    data: dict,
    md_renderer: Callable[[dict], str] | None = None,
    table_renderer: Callable[[dict], None] | None = None,
) -> None:
    envelope = {
        "ok": True,
        "command": command,
        "exit_code": EXIT_OK,
        "data": data,
    }
    if output_format == OutputFormat.json:
        _json_print(envelope)
        return

    if output_format == OutputFormat.yaml:
        _yaml_print(envelope)
        return

    if output_format == OutputFormat.md and md_renderer is not None:
        console.print(md_renderer(data), markup=False)
        return

    if table_renderer is not None:
        table_renderer(data)


def _emit_error(
    command: str,
    output_format: OutputFormat,
    exit_code: int,
    code: str,
    message: str,
) -> None:
    envelope = {
        "ok": False,
        "command": command,
        "exit_code": exit_code,
        "error": {
            "code": code,
            "message": message,
        },
    }
    if output_format == OutputFormat.json:
        _json_print(envelope)
    elif output_format == OutputFormat.yaml:
        _yaml_print(envelope)
    elif output_format == OutputFormat.md:
        console.print(f"# {command}\n\n- **status**: error\n- **code**: {code}\n- **message**: {message}", markup=False)
    else:
        console.print(f"  [red][ERROR][/red]   {message}")
        console.print("  Make sure you run this from the everything-cursor checkout or pass --source.")

    raise typer.Exit(code=exit_code)


def _outcome_data(outcome: CopyOutcome) -> dict:
    return {
        "module": outcome.module,
        "label": MODULE_LABELS.get(outcome.module, outcome.module),
        "result": outcome.result.value,
        "ok": outcome.ok,
        "path": str(outcome.path),
        "file_count": outcome.file_count,
        "reason": outcome.reason,
    }


def _module_status_data(row: ModuleStatus) -> dict:
    return {
        "module": row.module,
        "label": MODULE_LABELS.get(row.module, row.module),
        "scope": row.scope.value,
        "path": str(row.path),
        "present": row.present,
        "state": row.state,
        "file_count": row.file_count,
    }


def _scope_data(root: Path, outcomes: list[CopyOutcome] | tuple[CopyOutcome, ...]) -> dict:
    return {"root": str(root), "outcomes": [_outcome_data(item) for item in outcomes]}


def _status_data(report: StatusReport) -> dict:
    return {
        "global_root": str(report.global_root),
        "project_root": str(report.project_root),
        "global": [_module_status_data(row) for row in report.global_modules],
        "project": [_module_status_data(row) for row in report.project_modules],
        "global_agents": report.global_agents,
        "staging_leftovers": [str(path) for path in report.staging_leftovers],
    }


def _describe_outcome(item: dict) -> str:
    if item["result"] == OutcomeKind.skipped.value:
        files = f" ({item['file_count']} files)" if item["file_count"] is not None else ""
        return f"already exists{files}. Use --force to overwrite."
    if item["result"] in (OutcomeKind.source_missing.value, OutcomeKind.failed.value):
        return item["reason"]
    files = f" ({item['file_count']} files)" if item["file_count"] is not None else ""
    return f"{item['result']}{files}"


def _render_scope_table(title: str, payload: dict, footer: str) -> None:
    table = Table(title=f"{title} -> {payload['root']}")
    table.add_column("Result")
    table.add_column("Module")
    table.add_column("Files", justify="right")
    table.add_column("Details")
    for item in payload["outcomes"]:
        if item["result"] == OutcomeKind.skipped.value:
            style, label = "yellow", "SKIP"
        elif item["ok"]:
            style, label = "green", "OK"
        else:
            style, label = "red", "ERROR"
        files = "-" if item["file_count"] is None else str(item["file_count"])
        table.add_row(f"[{style}]{label}[/{style}]", item["label"], files, _describe_outcome(item))
    console.print(table)
    console.print(f"  [green][OK][/green]      {footer}")
    console.print()


def _render_scope_md(title: str, payload: dict) -> str:
    lines = [f"# {title}: `{payload['root']}`", ""]
    for item in payload["outcomes"]:
        lines.append(f"- **{item['module']}**: `{item['result']}` | {_describe_outcome(item)}")
    return "\n".join(lines)


def _render_status_table(payload: dict) -> None:
    table = Table(title="Installation Status")
    table.add_column("Scope")
    table.add_column("Module")
    table.add_column("State")
    table.add_column("Files", justify="right")
    table.add_column("Path")
    for row in payload["global"] + payload["project"]:
        style = "green" if row["present"] else "red"
        files = "-" if row["file_count"] is None else str(row["file_count"])
        table.add_row(row["scope"], row["label"], f"[{style}]{row['state']}[/{style}]", files, row["path"])
    console.print(table)
    if payload["global_agents"] is not None:
        console.print(
            f"  [dim][INFO][/dim]    agents: {payload['global_agents']} files "
            "(global, NOTE: Cursor only reads agents per-project)"
        )
    for path in payload["staging_leftovers"]:
        console.print(f"  [dim][INFO][/dim]    leftover staging folder from an interrupted overwrite: {path}")
    console.print()


def _render_status_md(payload: dict) -> str:
    lines = ["# Installation status", ""]
    lines.append(f"## Global (`{payload['global_root']}`)")
    for row in payload["global"]:
        files = f", {row['file_count']} files" if row["file_count"] is not None else ""
        lines.append(f"- **{row['module']}**: {row['state']}{files}")
    if payload["global_agents"] is not None:
        lines.append(f"- **agents** (info): {payload['global_agents']} files; Cursor only reads agents per-project")
    lines.append("")
    lines.append(f"## Project (`{payload['project_root']}`)")
    for row in payload["project"]:
        files = f", {row['file_count']} files" if row["file_count"] is not None else ""
        lines.append(f"- **{row['module']}**: {row['state']}{files}")
    for path in payload["staging_leftovers"]:
        lines.append(f"- **leftover staging folder** (info): `{path}`")
    return "\n".join(lines)


GLOBAL_FOOTER = "Global install complete. Rules + Skills apply to ALL projects."
PROJECT_FOOTER = "Project init complete. @orchestrator and /commands are now available."


def _run_global(ctx: RunContext) -> None:
    outcomes = install_global(ctx.source, force=ctx.force)
    root = global_root()
    data = _scope_data(root, outcomes)
    _emit_success(
        command="global",
        output_format=ctx.output_format,
        data=data,
        md_renderer=lambda payload: _render_scope_md("Global install", payload),
        table_renderer=lambda payload: _render_scope_table("Global Install", payload, GLOBAL_FOOTER),
    )


def _run_project(ctx: RunContext) -> None:
    outcomes = install_project(ctx.source, ctx.target, force=ctx.force)
    root = project_root(ctx.target)
    data = _scope_data(root, outcomes)
    _emit_success(
        command="project",
        output_format=ctx.output_format,
        data=data,
        md_renderer=lambda payload: _render_scope_md("Project init", payload),
        table_renderer=lambda payload: _render_scope_table("Project Init", payload, PROJECT_FOOTER),
    )


def _run_status(ctx: RunContext) -> None:
    report = collect_status(ctx.target)
    _emit_success(
        command="status",
        output_format=ctx.output_format,
        data=_status_data(report),
        md_renderer=_render_status_md,
        table_renderer=_render_status_table,
    )


def _run_all(ctx: RunContext) -> None:
    report = install_all(ctx.source, ctx.target, force=ctx.force)
    status = collect_status(ctx.target)

    data = {
        "global": _scope_data(global_root(), report.global_outcomes),
        "project": _scope_data(project_root(ctx.target), report.project_outcomes),
        "status": _status_data(status),
    }

    def render_md(payload: dict) -> str:
        return "\n\n".join(
            [
                _render_scope_md("Global install", payload["global"]),
                _render_scope_md("Project init", payload["project"]),
                _render_status_md(payload["status"]),
            ]
        )

    def render_table(payload: dict) -> None:
        _render_scope_table("Global Install", payload["global"], GLOBAL_FOOTER)
        _render_scope_table("Project Init", payload["project"], PROJECT_FOOTER)
        _render_status_table(payload["status"])

    _emit_success(command="all", output_format=ctx.output_format, data=data, md_renderer=render_md, table_renderer=render_table)


ACTIONS: dict[str, Callable[[RunContext], None]] = {
    "global": _run_global,
    "project": _run_project,
    "all": _run_all,
    "status": _run_status,
}


def _show_menu() -> str:
    console.print("  [bold]What would you like to do?[/bold]")
    console.print()
    console.print("  [bold]\\[1][/bold] Global Install    - Rules + Skills for all projects")
    console.print("  [bold]\\[2][/bold] Project Init      - Agents + Commands for this project")
    console.print("  [bold]\\[3][/bold] Full Setup        - Both global + project")
    console.print("  [bold]\\[4][/bold] Check Status      - See what's installed")
    console.print("  [dim]\\[0][/dim] Exit")
    console.print()
    choice = typer.prompt("  Enter choice (0-4)")
    console.print()
    return choice.strip()


def _interactive(ctx: RunContext) -> None:
    while True:
        choice = _show_menu()
        if choice == "0":
            console.print("  [dim]Bye![/dim]")
            return
        action = MENU_CHOICES.get(choice)
        if action is None:
            console.print("  [red]Invalid choice. Try again.[/red]")
            console.print()
            continue
        ACTIONS[action](ctx)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.command()
def deploy(
    global_: bool = typer.Option(False, "--global", help="Install rules + skills into ~/.cursor, then exit."),
    project: bool = typer.Option(False, "--project", help="Install agents, commands, hooks and mcp.json into the target project."),
    all_: bool = typer.Option(False, "--all", help="Global install, project install, then print status."),
    force: bool = typer.Option(False, "--force", help="Overwrite modules that already exist."),
    status: bool = typer.Option(False, "--status", help="Show what is installed, without copying anything."),
    target: Path = typer.Option(Path("."), "--target", help="Project root to initialise (default: current directory)."),
    source: Optional[Path] = typer.Option(None, "--source", help="Install root holding the bundled .cursor/ tree."),
    output_format: OutputFormat = typer.Option(OutputFormat.table, "--format", help="Output format."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug events to stderr."),
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True, help="Print version."),
):
    """Copy the bundled configuration into the global and project .cursor folders.

    Without a mode flag an interactive menu is shown until you choose Exit.
    """
    configure_logging(verbose=verbose)

    install_root = (source or bundle_root()).resolve()
    try:
        source_path = validate_source(install_root)
    except DeployError as error:
        _emit_error(
            command="deploy",
            output_format=output_format,
            exit_code=EXIT_ERROR,
            code="source_not_found",
            message=str(error),
        )
        raise

    ctx = RunContext(
        source=source_path,
        target=target.resolve(),
        force=force,
        output_format=output_format,
    )

    if output_format == OutputFormat.table:
        console.print()
        console.print("  [cyan]Everything Cursor - Deploy Script[/cyan]")
        console.print("  [cyan]==================================[/cyan]")
        console.print()

    # Mode precedence: status, all, global, project.
    for selected, action in ((status, "status"), (all_, "all"), (global_, "global"), (project, "project")):
        if selected:
            ACTIONS[action](ctx)
            return

    _interactive(ctx)


if __name__ == "__main__":
    app()
