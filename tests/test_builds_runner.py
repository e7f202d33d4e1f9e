"""Tests for builds/runner.py module.

Tests command composition and process execution. Execution tests run the
current Python interpreter instead of a container CLI.
"""

import subprocess
import sys
import time
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from deploy_imagegen.builds.context import BuildContext
from deploy_imagegen.builds.runner import ContainerToolchain, ToolResult, run_tool
from deploy_imagegen.errors import (
    BuildCancelledError,
    BuildError,
    BuildTimeoutError,
    PushError,
)
from deploy_imagegen.types import BuildPhase


def python_cmd(code: str) -> list[str]:
    return [sys.executable, "-c", code]


class TestContainerToolchainCommands:
    """Tests for ContainerToolchain command composition."""

    def test_build_command(self):
        """Should compose `docker build <ctx> -t <tag>`."""
        cmd = ContainerToolchain().build_command(Path("/tmp/ws"), "myrepo/app:abcdef12")
        assert cmd == ["docker", "build", "/tmp/ws", "-t", "myrepo/app:abcdef12"]

    def test_push_command(self):
        """Should compose `docker push <tag>`."""
        cmd = ContainerToolchain().push_command("myrepo/app:abcdef12")
        assert cmd == ["docker", "push", "myrepo/app:abcdef12"]

    def test_custom_executable(self):
        """Should use the configured executable."""
        cmd = ContainerToolchain("podman").push_command("app:1")
        assert cmd[0] == "podman"

    def test_build_runs_build_command(self):
        """build should run the build command in the build phase."""
        ctx = BuildContext.background()
        with patch("deploy_imagegen.builds.runner.run_tool") as mock_run:
            ContainerToolchain().build(ctx, Path("/tmp/ws"), "app:1")

        mock_run.assert_called_once_with(
            ["docker", "build", "/tmp/ws", "-t", "app:1"],
            ctx,
            BuildPhase.BUILD,
            stdout=None,
        )

    def test_push_runs_push_command(self):
        """push should run the push command in the push phase."""
        ctx = BuildContext.background()
        with patch("deploy_imagegen.builds.runner.run_tool") as mock_run:
            ContainerToolchain().push(ctx, "app:1")

        mock_run.assert_called_once_with(
            ["docker", "push", "app:1"], ctx, BuildPhase.PUSH, stdout=None
        )

    def test_output_stream(self, tmp_path):
        """Tool output should go to the configured stream."""
        out_path = tmp_path / "out.log"
        with open(out_path, "w") as out:
            toolchain = ContainerToolchain("echo", output=out)
            toolchain.push(BuildContext.background(), "app:1")
            toolchain.build(BuildContext.background(), Path("/tmp/ws"), "app:1")

        assert out_path.read_text() == "push app:1\nbuild /tmp/ws -t app:1\n"


class TestRunTool:
    """Tests for run_tool function."""

    def test_success(self):
        """Should report a zero exit code as success."""
        result = run_tool(
            python_cmd("pass"), BuildContext.background(), BuildPhase.BUILD
        )

        assert isinstance(result, ToolResult)
        assert result.success is True
        assert result.exit_code == 0
        assert result.duration >= 0

    def test_failure_returns_exit_code(self):
        """Should return non-zero exit codes without raising."""
        result = run_tool(
            python_cmd("raise SystemExit(3)"),
            BuildContext.background(),
            BuildPhase.BUILD,
        )
        assert result.success is False
        assert result.exit_code == 3

    def test_streams_output_unmodified(self, capfd):
        """Tool output should go straight to the caller's console."""
        run_tool(
            python_cmd(
                "import sys; print('step 1/3'); print('warn', file=sys.stderr)"
            ),
            BuildContext.background(),
            BuildPhase.BUILD,
        )

        out, err = capfd.readouterr()
        assert "step 1/3\n" in out
        assert "warn\n" in err

    def test_command_recorded(self):
        """Should record the shell-quoted command."""
        result = run_tool(
            python_cmd("pass"), BuildContext.background(), BuildPhase.PUSH
        )
        assert "-c pass" in result.command

    def test_timeout_terminates_process(self):
        """A hung process should be terminated at the deadline."""
        ctx = BuildContext.background().with_timeout(0.3)
        started = time.monotonic()

        with pytest.raises(BuildTimeoutError) as exc_info:
            run_tool(python_cmd("import time; time.sleep(30)"), ctx, BuildPhase.BUILD)

        assert time.monotonic() - started < 10
        assert exc_info.value.phase is BuildPhase.BUILD
        assert exc_info.value.timeout == 0.3

    def test_cancel_terminates_process(self):
        """Cancelling the context should terminate the process."""
        ctx = BuildContext.background()
        proc = MagicMock()
        proc.poll.return_value = None

        def cancel_then_poll():
            ctx.cancel()
            return None

        proc.poll.side_effect = cancel_then_poll
        with patch("subprocess.Popen", return_value=proc):
            with pytest.raises(BuildCancelledError):
                run_tool(["docker", "push", "app:1"], ctx, BuildPhase.PUSH)

        proc.terminate.assert_called_once()

    def test_interrupt_terminates_process(self):
        """An interrupt while waiting should terminate the process."""
        proc = MagicMock()
        proc.poll.side_effect = KeyboardInterrupt

        with patch("subprocess.Popen", return_value=proc):
            with pytest.raises(KeyboardInterrupt):
                run_tool(
                    ["docker", "build"], BuildContext.background(), BuildPhase.BUILD
                )

        proc.terminate.assert_called_once()
        proc.wait.assert_called()

    def test_kill_after_grace(self):
        """Processes ignoring SIGTERM should be killed."""
        ctx = BuildContext.background()
        proc = MagicMock()
        proc.poll.side_effect = lambda: ctx.cancel()
        proc.wait.side_effect = [subprocess.TimeoutExpired("docker", 5), 0]

        with patch("subprocess.Popen", return_value=proc):
            with pytest.raises(BuildCancelledError):
                run_tool(["docker", "build"], ctx, BuildPhase.BUILD)

        proc.terminate.assert_called_once()
        proc.kill.assert_called_once()

    def test_expired_context_does_not_start(self):
        """An expired context should fail before spawning a process."""
        ctx = BuildContext.background().with_timeout(0.01)
        time.sleep(0.05)

        with patch("subprocess.Popen") as mock_popen:
            with pytest.raises(BuildTimeoutError):
                run_tool(["docker", "build"], ctx, BuildPhase.BUILD)
        mock_popen.assert_not_called()

    def test_missing_executable_build(self):
        """A missing build executable should raise BuildError."""
        with pytest.raises(BuildError) as exc_info:
            run_tool(
                ["definitely-not-a-container-cli", "build"],
                BuildContext.background(),
                BuildPhase.BUILD,
            )
        assert isinstance(exc_info.value.cause, OSError)

    def test_missing_executable_push(self):
        """A missing push executable should raise PushError."""
        with pytest.raises(PushError):
            run_tool(
                ["definitely-not-a-container-cli", "push"],
                BuildContext.background(),
                BuildPhase.PUSH,
            )
