"""
Unit tests for the command line interface.
"""

import json
import logging
from collections.abc import Generator

import pytest
import structlog
from click.testing import CliRunner

from queuectl.cli import cli


@pytest.fixture
def runner() -> Generator[CliRunner]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level

    yield CliRunner()

    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def invoke(runner: CliRunner, *args: str):
    return runner.invoke(cli, list(args), catch_exceptions=False)


class TestCli:
    """Tests for the click commands against a real store."""

    def test_enqueue_and_list(self, runner: CliRunner):
        result = invoke(runner, "enqueue", '{"id": "job-1", "command": "echo hi"}')

        assert result.exit_code == 0
        assert "Enqueued job-1" in result.output

        result = invoke(runner, "list", "--state", "pending")
        assert result.exit_code == 0
        assert "job-1 | pending | attempts=0/3" in result.output

    def test_enqueue_generates_id(self, runner: CliRunner):
        result = invoke(runner, "enqueue", '{"command": "true", "max_retries": 1}')

        assert result.exit_code == 0
        assert "Enqueued " in result.output

    @pytest.mark.parametrize(
        "payload",
        ["not json", '{"id": "x"}', '{"command": ""}', '{"command": "true", "max_retries": 0}'],
    )
    def test_enqueue_invalid(self, runner: CliRunner, payload: str):
        result = invoke(runner, "enqueue", payload)

        assert result.exit_code == 1
        assert "Invalid job" in result.output

    def test_enqueue_duplicate(self, runner: CliRunner):
        invoke(runner, "enqueue", '{"id": "job-1", "command": "true"}')

        result = invoke(runner, "enqueue", '{"id": "job-1", "command": "true"}')

        assert result.exit_code == 1
        assert "Job already exists: job-1" in result.output

    def test_status(self, runner: CliRunner):
        invoke(runner, "enqueue", '{"command": "true"}')

        result = invoke(runner, "status", "--json")

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["counts"]["pending"] == 1
        assert data["counts"]["dead"] == 0
        assert data["workers"] == []

    def test_list_empty(self, runner: CliRunner):
        result = invoke(runner, "list", "--state", "completed")

        assert result.exit_code == 0
        assert "No jobs." in result.output

    def test_dlq_empty_and_retry_unknown(self, runner: CliRunner):
        assert "DLQ is empty." in invoke(runner, "dlq", "list").output

        result = invoke(runner, "dlq", "retry", "missing")

        assert result.exit_code == 1
        assert "Job not found: missing" in result.output

    def test_dlq_retry_not_dead(self, runner: CliRunner):
        invoke(runner, "enqueue", '{"id": "job-1", "command": "true"}')

        result = invoke(runner, "dlq", "retry", "job-1")

        assert result.exit_code == 1
        assert "not in the DLQ" in result.output

    def test_config_set_and_get(self, runner: CliRunner):
        result = invoke(runner, "config", "set", "max_retries", "5")
        assert result.exit_code == 0
        assert "max_retries=5" in result.output

        result = invoke(runner, "config", "get")
        assert json.loads(result.stdout)["max_retries"] == 5

    def test_config_set_invalid(self, runner: CliRunner):
        result = invoke(runner, "config", "set", "backoff_base", "zero")
        assert result.exit_code == 1

        result = invoke(runner, "config", "set", "colour", "blue")
        assert result.exit_code == 2

    def test_worker_stop_without_workers(self, runner: CliRunner):
        result = invoke(runner, "worker", "stop")

        assert result.exit_code == 0
        assert "No running workers." in result.output
