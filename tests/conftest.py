from pathlib import Path

import pytest
import structlog


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.setenv("USERPROFILE", str(home_dir))
    return home_dir


@pytest.fixture
def bundle(tmp_path: Path) -> Path:
    """Install root with a small .cursor/ tree: 3 rules, 2 skills, 2 agents, 1 command, 1 hook, mcp.json."""
    root = tmp_path / "bundle"
    cursor = root / ".cursor"

    for name in ("python.mdc", "testing.mdc", "security.mdc"):
        path = cursor / "rules" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"---\ndescription: {name}\n---\n", encoding="utf-8")

    for skill in ("tdd", "refactor"):
        path = cursor / "skills" / skill / "SKILL.md"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"# {skill}\n", encoding="utf-8")

    (cursor / "agents").mkdir()
    (cursor / "agents" / "orchestrator.md").write_text("# orchestrator\n", encoding="utf-8")
    (cursor / "agents" / "reviewer.md").write_text("# reviewer\n", encoding="utf-8")
    (cursor / "commands").mkdir()
    (cursor / "commands" / "plan.md").write_text("# plan\n", encoding="utf-8")
    (cursor / "hooks").mkdir()
    (cursor / "hooks" / "hooks.json").write_text("{}\n", encoding="utf-8")
    (cursor / "mcp.json").write_text('{"mcpServers": {}}\n', encoding="utf-8")
    return root


@pytest.fixture
def project(tmp_path: Path) -> Path:
    target = tmp_path / "proj"
    target.mkdir()
    return target
