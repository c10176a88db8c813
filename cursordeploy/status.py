from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import structlog

from .config import (
    GLOBAL_AGENTS_PATTERN,
    GLOBAL_MODULES,
    PROJECT_MODULES,
    STAGING_MARKER,
    Module,
    ModuleKind,
    Scope,
    global_root,
    project_root,
)
from .deploy import count_files

logger = structlog.get_logger()


@dataclass(frozen=True)
class ModuleStatus:
    module: str
    scope: Scope
    kind: ModuleKind
    path: Path
    present: bool
    file_count: int | None

    @property
    def state(self) -> str:
        if self.kind == ModuleKind.FILE:
            return "configured" if self.present else "not configured"
        return "installed" if self.present else "not installed"


@dataclass(frozen=True)
class StatusReport:
    global_root: Path
    project_root: Path
    global_modules: tuple[ModuleStatus, ...]
    project_modules: tuple[ModuleStatus, ...]
    # Set when a stray agents folder sits in the global root.
    global_agents: int | None = None
    # Staging folders left behind by an interrupted forced overwrite.
    staging_leftovers: tuple[Path, ...] = ()


def _inspect(modules: Iterable[Module], root: Path) -> tuple[ModuleStatus, ...]:
    rows: list[ModuleStatus] = []
    for module in modules:
        path = root / module.destination
        if module.kind == ModuleKind.FILE:
            present = path.is_file()
            file_count = None
        else:
            present = path.is_dir()
            file_count = count_files(path, module.pattern) if present else None
        rows.append(
            ModuleStatus(
                module=module.name,
                scope=module.scope,
                kind=module.kind,
                path=path,
                present=present,
                file_count=file_count,
            )
        )
    return tuple(rows)


def _staging_leftovers(root: Path) -> list[Path]:
    if not root.is_dir():
        return []
    return sorted(path for path in root.glob(f".*{STAGING_MARKER}*") if path.is_dir())


def collect_status(target: Path, home: Path | None = None) -> StatusReport:
    """Inventory both destination roots without touching the filesystem."""
    global_dir = global_root(home)
    project_dir = project_root(target)

    stray_agents = global_dir / "agents"
    global_agents = count_files(stray_agents, GLOBAL_AGENTS_PATTERN) if stray_agents.is_dir() else None

    report = StatusReport(
        global_root=global_dir,
        project_root=project_dir,
        global_modules=_inspect(GLOBAL_MODULES, global_dir),
        project_modules=_inspect(PROJECT_MODULES, project_dir),
        global_agents=global_agents,
        staging_leftovers=tuple(_staging_leftovers(global_dir) + _staging_leftovers(project_dir)),
    )
    logger.debug(
        "status_collected",
        global_root=str(global_dir),
        project_root=str(project_dir),
        global_agents=global_agents,
    )
    return report
