from __future__ import annotations

import shutil
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable

import structlog

from .config import (
    GLOBAL_MODULES,
    PROJECT_MODULES,
    STAGING_MARKER,
    Module,
    ModuleKind,
    global_root,
    project_root,
    source_dir,
)

logger = structlog.get_logger()

SKIP_REASON = "exists, no force"


class OutcomeKind(str, Enum):
    installed = "installed"
    skipped = "skipped"
    overwritten = "overwritten"
    source_missing = "source_missing"
    failed = "failed"


class DeployError(RuntimeError):
    pass


@dataclass(frozen=True)
class CopyOutcome:
    module: str
    result: OutcomeKind
    path: Path
    file_count: int | None = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.result not in (OutcomeKind.source_missing, OutcomeKind.failed)


@dataclass(frozen=True)
class InstallReport:
    global_outcomes: tuple[CopyOutcome, ...]
    project_outcomes: tuple[CopyOutcome, ...]


def count_files(path: Path, pattern: str = "*") -> int:
    """Recursive count of regular files under ``path`` whose name matches ``pattern``."""
    if path.is_file():
        return 1
    if not path.is_dir():
        return 0
    return sum(1 for item in path.rglob(pattern) if item.is_file())


def validate_source(install_root: Path) -> Path:
    source = source_dir(install_root)
    if not source.is_dir():
        raise DeployError(f"Source .cursor/ not found at {install_root}")
    return source


def _matches_kind(path: Path, kind: ModuleKind) -> bool:
    if kind == ModuleKind.FILE:
        return path.is_file()
    return path.is_dir()


def _count_for(path: Path, kind: ModuleKind) -> int | None:
    # File modules only report presence.
    if kind == ModuleKind.FILE:
        return None
    return count_files(path)


def _copy(source: Path, destination: Path, kind: ModuleKind) -> None:
    if kind == ModuleKind.FILE:
        shutil.copy2(source, destination)
    else:
        shutil.copytree(source, destination)


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def _replace(source: Path, destination: Path, kind: ModuleKind) -> None:
    staging = Path(tempfile.mkdtemp(prefix=f".{destination.name}{STAGING_MARKER}", dir=destination.parent))
    try:
        staged = staging / destination.name
        _copy(source, staged, kind)
        _remove(destination)
        staged.rename(destination)
    finally:
        shutil.rmtree(staging, ignore_errors=True)


def copy_module(
    name: str,
    source: Path,
    destination: Path,
    force: bool = False,
    kind: ModuleKind = ModuleKind.DIRECTORY,
) -> CopyOutcome:
    """Place one module at ``destination`` following the exists/force policy.

    An existing destination is left alone unless ``force`` is set, in which case
    it is replaced wholesale; old and new trees are never merged.
    """
    if not _matches_kind(source, kind):
        logger.warning("module_source_missing", module=name, source=str(source))
        return CopyOutcome(
            module=name,
            result=OutcomeKind.source_missing,
            path=destination,
            reason=f"source not found: {source}",
        )

    if destination.exists() or destination.is_symlink():
        if not force:
            count = _count_for(destination, kind)
            logger.debug("module_skipped", module=name, path=str(destination), files=count)
            return CopyOutcome(
                module=name,
                result=OutcomeKind.skipped,
                path=destination,
                file_count=count,
                reason=SKIP_REASON,
            )

        _replace(source, destination, kind)
        count = _count_for(destination, kind)
        logger.info("module_overwritten", module=name, path=str(destination), files=count)
        return CopyOutcome(module=name, result=OutcomeKind.overwritten, path=destination, file_count=count)

    destination.parent.mkdir(parents=True, exist_ok=True)
    _copy(source, destination, kind)
    count = _count_for(destination, kind)
    logger.info("module_installed", module=name, path=str(destination), files=count)
    return CopyOutcome(module=name, result=OutcomeKind.installed, path=destination, file_count=count)


def _install_modules(modules: Iterable[Module], source: Path, root: Path, force: bool) -> list[CopyOutcome]:
    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError as error:
        logger.error("scope_root_failed", root=str(root), error=str(error))
        return [
            CopyOutcome(
                module=module.name,
                result=OutcomeKind.failed,
                path=root / module.destination,
                reason=f"cannot create {root}: {error}",
            )
            for module in modules
        ]

    outcomes: list[CopyOutcome] = []
    for module in modules:
        destination = root / module.destination
        try:
            outcome = copy_module(
                name=module.name,
                source=source / module.source,
                destination=destination,
                force=force,
                kind=module.kind,
            )
        except OSError as error:
            logger.error("module_failed", module=module.name, path=str(destination), error=str(error))
            outcome = CopyOutcome(
                module=module.name,
                result=OutcomeKind.failed,
                path=destination,
                reason=str(error),
            )
        outcomes.append(outcome)
    return outcomes


def install_global(source: Path, home: Path | None = None, force: bool = False) -> list[CopyOutcome]:
    """Copy the global-scope modules (rules, skills) into ``<home>/.cursor``."""
    return _install_modules(GLOBAL_MODULES, source, global_root(home), force)


def install_project(source: Path, target: Path, force: bool = False) -> list[CopyOutcome]:
    """Copy the project-scope modules (agents, commands, hooks, mcp.json) into ``<target>/.cursor``."""
    return _install_modules(PROJECT_MODULES, source, project_root(target), force)


def install_all(source: Path, target: Path, home: Path | None = None, force: bool = False) -> InstallReport:
    global_outcomes = install_global(source, home=home, force=force)
    project_outcomes = install_project(source, target, force=force)
    return InstallReport(
        global_outcomes=tuple(global_outcomes),
        project_outcomes=tuple(project_outcomes),
    )
