"""Tests for the watch entry point."""

from __future__ import annotations

import asyncio
import os
import stat
import sys
from unittest.mock import patch

import pytest

import main
from stackwatch.core.config import Settings
from stackwatch.domain import Outcome, WatchResult
from stackwatch.services.monitor import ConvergenceMonitor


def config(**overrides) -> Settings:
    values = {"stack_name": "shop", "result_format": "log"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestWatch:
    @pytest.mark.asyncio
    async def test_missing_stack_name_fails(self, sink):
        result = await main.watch(config(stack_name=""), sink)

        assert result.outcome == Outcome.FAILED
        assert "stack_name" in result.message
        assert sink.result is result

    @pytest.mark.asyncio
    async def test_missing_docker_fails(self, sink, tmp_path):
        result = await main.watch(config(docker_path=str(tmp_path / "docker")), sink)

        assert result.outcome == Outcome.FAILED
        assert "Unable to locate executable" in result.message

    @pytest.mark.asyncio
    async def test_runs_monitor(self, sink):
        verdict = WatchResult(outcome=Outcome.SUCCEEDED, message="Nothing to do")

        async def fake_run(self):
            return verdict

        with patch("main.DockerCLITransport.open"), patch.object(
            ConvergenceMonitor, "run", fake_run
        ):
            result = await main.watch(config(), sink)

        assert result is verdict

    @pytest.mark.asyncio
    async def test_timeout_fails(self, sink):
        async def never_converges(self):
            await asyncio.sleep(10)

        with patch("main.DockerCLITransport.open"), patch.object(
            ConvergenceMonitor, "run", never_converges
        ):
            result = await main.watch(config(watch_timeout=0.01), sink)

        assert result.outcome == Outcome.FAILED
        assert "did not converge" in result.message
        assert sink.completions == 1

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="uses a shell script as docker")
    async def test_timeout_kills_running_docker_command(self, sink, tmp_path):
        """A timed-out watch leaves no docker process behind."""
        pid_file = tmp_path / "docker.pid"
        script = tmp_path / "docker"
        script.write_text(f'#!/bin/sh\necho $$ > "{pid_file}"\nexec sleep 30\n')
        script.chmod(script.stat().st_mode | stat.S_IEXEC)

        result = await main.watch(config(docker_path=str(script), watch_timeout=0.5), sink)

        assert result.outcome == Outcome.FAILED
        assert "did not converge" in result.message
        pid = int(pid_file.read_text())
        with pytest.raises(ProcessLookupError):
            os.kill(pid, 0)


class TestMain:
    def test_exit_codes(self):
        async def fake_watch(settings):
            return WatchResult(outcome=Outcome.SUCCEEDED_WITH_ISSUES, message="No service")

        with patch("main.setup_logging"), patch("main.watch", fake_watch):
            assert main.main() == 0

        async def failing_watch(settings):
            return WatchResult.failed("boom")

        with patch("main.setup_logging"), patch("main.watch", failing_watch):
            assert main.main() == 1
