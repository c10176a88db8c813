from pathlib import Path

from cursordeploy.deploy import install_global, install_project, validate_source
from cursordeploy.status import collect_status


def _tree(root: Path) -> list[tuple[str, bytes | None]]:
    return [
        (str(path.relative_to(root)), path.read_bytes() if path.is_file() else None)
        for path in sorted(root.rglob("*"))
    ]


def test_status_on_empty_roots(project: Path, home: Path):
    report = collect_status(project)

    assert report.global_root == home / ".cursor"
    assert report.project_root == project / ".cursor"
    assert [(row.module, row.present, row.state) for row in report.global_modules] == [
        ("rules", False, "not installed"),
        ("skills", False, "not installed"),
    ]
    assert [(row.module, row.state) for row in report.project_modules] == [
        ("agents", "not installed"),
        ("commands", "not installed"),
        ("hooks", "not installed"),
        ("mcp-config", "not configured"),
    ]
    assert report.global_agents is None
    assert not (home / ".cursor").exists()
    assert not (project / ".cursor").exists()


def test_status_counts_by_module_pattern(bundle: Path, project: Path, home: Path):
    source = validate_source(bundle)
    install_global(source)
    install_project(source, project)
    (home / ".cursor" / "rules" / "notes.txt").write_text("not a rule", encoding="utf-8")
    (home / ".cursor" / "skills" / "tdd" / "example.py").write_text("pass\n", encoding="utf-8")

    report = collect_status(project)

    assert {row.module: row.file_count for row in report.global_modules} == {"rules": 3, "skills": 2}
    assert {row.module: row.file_count for row in report.project_modules} == {
        "agents": 2,
        "commands": 1,
        "hooks": 1,
        "mcp-config": None,
    }
    mcp = report.project_modules[-1]
    assert mcp.present is True
    assert mcp.state == "configured"


def test_status_flags_global_agents_without_removing_them(project: Path, home: Path):
    agents = home / ".cursor" / "agents"
    agents.mkdir(parents=True)
    (agents / "planner.md").write_text("# planner\n", encoding="utf-8")
    (agents / "notes.txt").write_text("ignored\n", encoding="utf-8")

    report = collect_status(project)

    assert report.global_agents == 1
    assert (agents / "planner.md").exists()


def test_status_is_read_only(bundle: Path, project: Path, home: Path):
    source = validate_source(bundle)
    install_global(source)
    install_project(source, project)
    home_before = _tree(home)
    project_before = _tree(project)

    collect_status(project)
    collect_status(project)

    assert _tree(home) == home_before
    assert _tree(project) == project_before


def test_status_reports_leftover_staging_folders(bundle: Path, project: Path, home: Path):
    install_project(validate_source(bundle), project)
    leftover = project / ".cursor" / ".agents.deploy-k2j4x9"
    (leftover / "agents").mkdir(parents=True)

    report = collect_status(project)

    assert report.staging_leftovers == (leftover,)
    assert {row.module: row.file_count for row in report.project_modules}["agents"] == 2
    assert leftover.is_dir()


def test_status_with_global_root_as_file(project: Path, home: Path):
    (home / ".cursor").write_text("oops", encoding="utf-8")

    report = collect_status(project)

    assert not any(row.present for row in report.global_modules)
    assert report.global_agents is None
    assert report.staging_leftovers == ()
