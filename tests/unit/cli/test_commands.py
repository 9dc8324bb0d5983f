"""
Unit tests for CLI functionality
"""

import json

import yaml
from typer.testing import CliRunner

from crawlflow.cli.main import app
from crawlflow.hooks import register_hook

runner = CliRunner()


def write_job(tmp_path, job):
    job_file = tmp_path / "job.yaml"
    job_file.write_text(yaml.safe_dump(job))
    return job_file


def make_job(tmp_path, hooks=None):
    return {
        "id": "grid",
        "store": {
            "id": "grid-store",
            "type": "fs",
            "options": {"path": str(tmp_path / "out")},
        },
        "taskTemplate": {"id": "{{ jobId }}-{{ taskId }}"},
        "tasks": [{"id": "0"}, {"id": "1"}],
        "hooks": hooks or {"tasks": {"after": {"writeJson": {"dataPath": "data"}}}},
    }


def test_version_command():
    """
    Test version command
    """
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "CrawlFlow" in result.output
    assert "memory" in result.output


def test_help_command():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "orchestration" in result.stdout


def test_hooks_command():
    result = runner.invoke(app, ["hooks"])
    assert result.exit_code == 0
    assert "writeJson" in result.output
    assert "clearOutputs" in result.output


def test_run_command(tmp_path):
    job_file = write_job(tmp_path, make_job(tmp_path))
    output = tmp_path / "result.json"

    result = runner.invoke(
        app, ["run", str(job_file), "--workers", "1", "--output", str(output)]
    )

    assert result.exit_code == 0, result.output
    assert (tmp_path / "out" / "grid-0.json").exists()
    assert (tmp_path / "out" / "grid-1.json").exists()

    data = json.loads(output.read_text())
    assert data["job_id"] == "grid"
    assert data["state"] == "completed"
    assert [task["id"] for task in data["tasks"]] == ["grid-0", "grid-1"]


def test_run_command_with_failed_tasks(tmp_path):
    def fail(options):
        def hook(context):
            raise RuntimeError("no coverage")

        return hook

    register_hook("fail", fail)
    job_file = write_job(
        tmp_path, make_job(tmp_path, {"tasks": {"before": {"fail": {}}}})
    )

    result = runner.invoke(app, ["run", str(job_file)])

    assert result.exit_code == 1
    assert "no coverage" in result.output


def test_run_command_job_error(tmp_path):
    job_file = write_job(
        tmp_path, make_job(tmp_path, {"jobs": {"before": {"writeJson": {}}}})
    )

    result = runner.invoke(app, ["run", str(job_file)])

    assert result.exit_code == 1
    assert "Job failed in before hooks (writeJson)" in result.output


def test_run_command_unknown_hook(tmp_path):
    job_file = write_job(
        tmp_path, make_job(tmp_path, {"tasks": {"after": {"writeParquet": {}}}})
    )

    result = runner.invoke(app, ["run", str(job_file)])

    assert result.exit_code == 1
    assert "Job rejected" in result.output


def test_run_command_missing_file(tmp_path):
    result = runner.invoke(app, ["run", str(tmp_path / "missing.yaml")])
    assert result.exit_code == 1
    assert "Error loading job file" in result.output
