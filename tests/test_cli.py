"""Tests for the command line interface."""

import json

import pytest
from typer.testing import CliRunner

from rigger import __version__
from rigger.cli.main import app

runner = CliRunner()


def flat(output):
    """Collapse console line wrapping so phrases can be matched."""
    return " ".join(output.split())

SCENARIO_MODULE = '''
from rigger.core.errors import SkipScenario


def passes(ctx):
    ctx.set("value", 1)


def fails(ctx):
    assert ctx.get("value") == 1, "value was not set"


def skipped(ctx):
    raise SkipScenario("not today")
'''

SUITE_YAML = """
suite: cli smoke
scenarios:
  - name: passes
    run: rigger_cli_scenarios:passes
  - name: fails
    run: rigger_cli_scenarios:fails
    tags: ["@smoke"]
  - name: skipped
    run: rigger_cli_scenarios:skipped
"""


@pytest.fixture
def project(tmp_path, monkeypatch):
    """Empty project directory used as the working directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("RIGGER_ENV", raising=False)
    return tmp_path


@pytest.fixture
def suite_file(project):
    (project / "rigger_cli_scenarios.py").write_text(SCENARIO_MODULE)
    path = project / "suite.yaml"
    path.write_text(SUITE_YAML)
    return path


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_route(project):
    """route prints the resources and profile selected by the tags."""
    result = runner.invoke(app, ["route", "@api", "@db", "@prod"])

    assert result.exit_code == 0
    assert "api_context, db_connection" in result.output
    assert "prod" in result.output


def test_route_conflict(project):
    result = runner.invoke(app, ["route", "@qa", "@prod"])

    assert result.exit_code == 1
    assert "Conflicting environment tags" in flat(result.output)


def test_config_init_and_validate(project):
    result = runner.invoke(app, ["config", "init"])
    assert result.exit_code == 0
    assert (project / ".rigger.yaml").exists()

    result = runner.invoke(app, ["config", "init"])
    assert result.exit_code == 1
    assert "already exists" in flat(result.output)

    result = runner.invoke(app, ["config", "validate"])
    assert result.exit_code == 0
    assert "Configuration is valid" in flat(result.output)


def test_config_validate_unknown_environment(project):
    config_file = project / "custom.yaml"
    config_file.write_text("environment: uat\n")

    result = runner.invoke(app, ["--config", str(config_file), "config", "validate"])

    assert result.exit_code == 1
    assert "uat" in result.output


def test_config_show_hides_passwords(project):
    (project / ".rigger.yaml").write_text(
        "profiles:\n  qa:\n    username: bob\n    password: hunter2\n"
    )

    result = runner.invoke(app, ["config", "show"])

    assert result.exit_code == 0
    assert "hunter2" not in result.output
    assert "bob" in result.output


def test_config_show_table(project):
    result = runner.invoke(app, ["config", "show", "--format", "table"])

    assert result.exit_code == 0
    assert "Workers" in result.output


def test_suite_list(suite_file):
    result = runner.invoke(app, ["suite", "list", str(suite_file), "--tag", "smoke"])

    assert result.exit_code == 0
    assert "fails" in result.output
    assert "Total: 1 scenarios" in result.output


def test_suite_validate(suite_file):
    result = runner.invoke(app, ["suite", "validate", str(suite_file)])

    assert result.exit_code == 0
    assert "Suite is valid" in flat(result.output)


def test_suite_run_reports_failure(suite_file, project):
    """A failing scenario makes the run exit 1 and lands in the results file."""
    result = runner.invoke(
        app,
        ["suite", "run", str(suite_file), "--workers", "2", "--max-retries", "0"],
    )

    assert result.exit_code == 1
    data = json.loads((project / "reports" / "results.json").read_text(encoding="utf-8"))
    statuses = {s["scenario"]: s["status"] for s in data["scenarios"]}
    assert statuses == {"passes": "passed", "fails": "failed", "skipped": "skipped"}
    assert data["summary"]["attempts"] == 3


def test_suite_run_filtered_passes(suite_file, project):
    output = project / "out.json"

    result = runner.invoke(
        app,
        ["suite", "run", str(suite_file), "--tag", "nothing-matches", "--output", str(output)],
    )

    assert result.exit_code == 0
    assert json.loads(output.read_text(encoding="utf-8"))["summary"]["total"] == 0


def test_suite_list_by_name(suite_file):
    result = runner.invoke(app, ["suite", "list", str(suite_file), "--name", "PASS"])

    assert result.exit_code == 0
    assert "Total: 1 scenarios" in flat(result.output)


def test_suite_run_by_name(suite_file, project):
    """--name keeps only matching scenarios, so the failing one never runs."""
    result = runner.invoke(app, ["suite", "run", str(suite_file), "-n", "pass"])

    assert result.exit_code == 0
    data = json.loads((project / "reports" / "results.json").read_text(encoding="utf-8"))
    assert [s["scenario"] for s in data["scenarios"]] == ["passes"]


@pytest.mark.parametrize("option", ["--max-retries=-1", "--retry-delay=-0.5"])
def test_suite_run_rejects_negative_retry_options(suite_file, project, option):
    result = runner.invoke(app, ["suite", "run", str(suite_file), option])

    assert result.exit_code == 2
    assert not (project / "reports" / "results.json").exists()
