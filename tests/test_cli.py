"""Tests for CLI interface"""

from __future__ import annotations

import logging
import subprocess
import sys
from unittest.mock import MagicMock, patch

import click
import pytest
from click.testing import CliRunner

from retryop.cli import _die, _resolve_retry_settings, cli, setup_logging
from retryop.domain.errors import RetryFailure
from retryop.domain.models.time_unit import TimeUnit


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("tenacity.nap.sleep", lambda *_: None)


class TestSetupLogging:
    """Tests for setup_logging function"""

    def test_setup_logging_info_level(self):
        setup_logging(verbose=False)
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_debug_level(self):
        setup_logging(verbose=True)
        assert logging.getLogger().level == logging.DEBUG


class TestDie:
    """Tests for _die function"""

    def test_die_without_exception(self):
        with pytest.raises(click.ClickException, match="Test error"):
            _die("Test error", verbose=False)

    def test_die_with_exception_verbose(self):
        exc = ValueError("Test exception")
        with pytest.raises(click.ClickException, match="Test error"):
            _die("Test error", verbose=True, exc=exc)


class TestResolveRetrySettings:
    """Tests for merging CLI overrides into config"""

    def test_overrides_applied(self):
        manager = MagicMock()
        from retryop.domain.config.retry import RetrySettings

        manager.get_retry_settings.return_value = RetrySettings(max_attempts=3)
        settings = _resolve_retry_settings(manager, 5, 2.0, "SECONDS", ("TimeoutError",))

        assert settings.max_attempts == 5
        assert settings.delay == 2.0
        assert settings.unit is TimeUnit.SECONDS
        assert settings.retry_on == ["TimeoutError"]

    def test_no_overrides_keeps_config(self):
        manager = MagicMock()
        from retryop.domain.config.retry import RetrySettings

        manager.get_retry_settings.return_value = RetrySettings(max_attempts=4, delay=9)
        settings = _resolve_retry_settings(manager, None, None, None, ())

        assert settings.max_attempts == 4
        assert settings.delay == 9


class TestExecCommand:
    """Tests for the exec command"""

    def test_exec_succeeds_first_time(self):
        runner = CliRunner()
        with patch("retryop.cli.subprocess.run") as mock_run:
            mock_run.return_value = subprocess.CompletedProcess(["true"], 0)
            result = runner.invoke(cli, ["exec", "--max-attempts", "3", "--", "true"], obj={})

        assert result.exit_code == 0
        assert mock_run.call_count == 1

    def test_exec_retries_until_accepted(self):
        runner = CliRunner()
        with patch("retryop.cli.subprocess.run") as mock_run:
            mock_run.side_effect = [
                subprocess.CompletedProcess(["job"], 1),
                subprocess.CompletedProcess(["job"], 1),
                subprocess.CompletedProcess(["job"], 0),
            ]
            result = runner.invoke(cli, ["exec", "--max-attempts", "5", "--", "job"], obj={})

        assert result.exit_code == 0
        assert mock_run.call_count == 3

    def test_exec_exhausted_returns_last_exit_code(self):
        runner = CliRunner()
        with patch("retryop.cli.subprocess.run") as mock_run:
            mock_run.return_value = subprocess.CompletedProcess(["job"], 2)
            result = runner.invoke(cli, ["exec", "--max-attempts", "2", "--", "job"], obj={})

        assert result.exit_code == 2
        assert mock_run.call_count == 2

    def test_exec_accept_exit(self):
        runner = CliRunner()
        with patch("retryop.cli.subprocess.run") as mock_run:
            mock_run.return_value = subprocess.CompletedProcess(["job"], 3)
            result = runner.invoke(
                cli, ["exec", "--max-attempts", "4", "--accept-exit", "3", "--", "job"], obj={}
            )

        assert result.exit_code == 3
        assert mock_run.call_count == 1

    def test_exec_timeout_is_retried(self):
        runner = CliRunner()
        with patch("retryop.cli.subprocess.run") as mock_run:
            mock_run.side_effect = [
                subprocess.TimeoutExpired(["job"], 1),
                subprocess.CompletedProcess(["job"], 0),
            ]
            result = runner.invoke(
                cli, ["exec", "--max-attempts", "2", "--timeout", "1", "--", "job"], obj={}
            )

        assert result.exit_code == 0
        assert mock_run.call_count == 2

    def test_exec_missing_command_fails_immediately(self):
        runner = CliRunner()
        with patch("retryop.cli.subprocess.run") as mock_run:
            mock_run.side_effect = FileNotFoundError("no such file: nope")
            result = runner.invoke(cli, ["exec", "--max-attempts", "5", "--", "nope"], obj={})

        assert result.exit_code == 1
        assert "Command failed" in result.output
        assert mock_run.call_count == 1

    def test_exec_invalid_unit(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["exec", "--unit", "weeks", "--", "true"], obj={})
        assert result.exit_code != 0

    def test_exec_real_process(self):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["exec", "--", sys.executable, "-c", "import sys; sys.exit(0)"], obj={}
        )
        assert result.exit_code == 0


class TestHttpCommand:
    """Tests for the http command"""

    def _response(self, status_code: int, reason: str):
        response = MagicMock()
        response.status_code = status_code
        response.reason = reason
        response.ok = status_code < 400
        return response

    def test_http_ok(self):
        runner = CliRunner()
        with patch("retryop.cli.get_with_retries") as mock_get:
            mock_get.return_value = self._response(200, "OK")
            result = runner.invoke(
                cli, ["http", "--max-attempts", "2", "http://example.test"], obj={}
            )

        assert result.exit_code == 0
        assert "200 OK" in result.output
        assert mock_get.call_args.kwargs["retry"].max_attempts == 2

    def test_http_error_status(self):
        runner = CliRunner()
        with patch("retryop.cli.get_with_retries") as mock_get:
            mock_get.return_value = self._response(503, "Service Unavailable")
            result = runner.invoke(cli, ["http", "http://example.test"], obj={})

        assert result.exit_code == 1
        assert "HTTP 503" in result.output

    def test_http_retry_failure(self):
        runner = CliRunner()
        with patch("retryop.cli.get_with_retries") as mock_get:
            mock_get.side_effect = RetryFailure(ConnectionError("down"), attempts=3)
            result = runner.invoke(cli, ["http", "http://example.test"], obj={})

        assert result.exit_code == 1
        assert "Request failed" in result.output

    def test_http_invalid_config(self, tmp_path):
        config_file = tmp_path / "bad.yml"
        config_file.write_text("retry:\n  delay: -1\n", encoding="utf-8")
        runner = CliRunner()
        result = runner.invoke(
            cli, ["--config", str(config_file), "http", "http://example.test"], obj={}
        )

        assert result.exit_code == 1
        assert "retry.delay" in result.output
