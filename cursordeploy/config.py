from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

SOURCE_DIRNAME = ".cursor"
MCP_FILENAME = "mcp.json"
GLOBAL_AGENTS_PATTERN = "*.md"
STAGING_MARKER = ".deploy-"


class Scope(str, Enum):
    GLOBAL = "global"
    PROJECT = "project"


class ModuleKind(str, Enum):
    DIRECTORY = "directory"
    FILE = "file"


@dataclass(frozen=True)
class Module:
    name: str
    label: str
    source: str
    scope: Scope
    destination: str
    kind: ModuleKind = ModuleKind.DIRECTORY
    pattern: str = "*"


GLOBAL_MODULES = (
    Module("rules", "Rules", "rules", Scope.GLOBAL, "rules", pattern="*.mdc"),
    Module("skills", "Skills", "skills", Scope.GLOBAL, "skills", pattern="SKILL.md"),
)

PROJECT_MODULES = (
    Module("agents", "Agents", "agents", Scope.PROJECT, "agents"),
    Module("commands", "Commands", "commands", Scope.PROJECT, "commands"),
    Module("hooks", "Hooks", "hooks", Scope.PROJECT, "hooks"),
    Module("mcp-config", "MCP config", MCP_FILENAME, Scope.PROJECT, MCP_FILENAME, kind=ModuleKind.FILE),
)


def bundle_root() -> Path:
    """Install root holding the bundled `.cursor/` tree.

    A source checkout keeps `.cursor/` next to the package. An installed
    package ships none, so the current directory is used instead.
    """
    checkout = Path(__file__).resolve().parent.parent
    if (checkout / SOURCE_DIRNAME).is_dir():
        return checkout
    return Path.cwd()


def source_dir(install_root: Path) -> Path:
    return install_root / SOURCE_DIRNAME


def global_root(home: Path | None = None) -> Path:
    return (home or Path.home()) / SOURCE_DIRNAME


def project_root(target: Path) -> Path:
    return target / SOURCE_DIRNAME


def module_labels() -> dict[str, str]:
    return {module.name: module.label for module in GLOBAL_MODULES + PROJECT_MODULES}
