"""Container toolchain runner.

This module handles:
- Composing container CLI `build` and `push` commands
- Executing them with output streamed to the caller's console
- Enforcing the context deadline and cancellation on the running process
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any

from deploy_imagegen.errors import (
    BuildCancelledError,
    BuildTimeoutError,
    tool_error,
)
from deploy_imagegen.types import BuildPhase

if TYPE_CHECKING:
    from deploy_imagegen.builds.context import BuildContext

logger = logging.getLogger(__name__)

# Seconds between process polls
POLL_INTERVAL = 0.05
# Seconds to wait after SIGTERM before SIGKILL
TERMINATE_GRACE = 5.0


@dataclass
class ToolResult:
    """Result of a toolchain command.

    Attributes:
        exit_code: Process exit code.
        command: The command that was executed.
        started_at: Start time.
        finished_at: Finish time.
    """

    exit_code: int
    command: str
    started_at: datetime
    finished_at: datetime

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def duration(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()


def _terminate(proc: subprocess.Popen[Any]) -> None:
    proc.terminate()
    try:
        proc.wait(timeout=TERMINATE_GRACE)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait()


def run_tool(
    cmd: list[str],
    ctx: BuildContext,
    phase: BuildPhase,
    stdout: IO[Any] | None = None,
    stderr: IO[Any] | None = None,
) -> ToolResult:
    """Run a toolchain command bound to a build context.

    Output is not captured: by default the process inherits the caller's
    stdout and stderr.

    Args:
        cmd: Command as list of strings.
        ctx: Context whose deadline and cancellation bound the process.
        phase: Phase the command belongs to (used for errors).
        stdout: Optional stream for standard output.
        stderr: Optional stream for standard error.

    Returns:
        ToolResult for a process that ran to completion.

    Raises:
        BuildTimeoutError: If the deadline passes while the process runs.
        BuildCancelledError: If the context is cancelled while it runs.
        BuildError: If a build command cannot be started.
        PushError: If a push command cannot be started.
    """
    ctx.check(phase)

    cmd_str = shlex.join(cmd)
    logger.info("Executing %s: %s", phase.value, cmd_str)
    started_at = datetime.now(timezone.utc)

    try:
        proc = subprocess.Popen(cmd, stdout=stdout, stderr=stderr)
    except OSError as e:
        logger.error("Failed to execute %s: %s", phase.value, e)
        raise tool_error(phase, f"Failed to execute {cmd_str}: {e}") from e

    try:
        while proc.poll() is None:
            if ctx.cancelled:
                logger.error("%s cancelled: %s", phase.value, cmd_str)
                raise BuildCancelledError(f"{phase.value} cancelled", phase)
            if ctx.expired:
                message = f"{phase.value} timed out after {ctx.timeout} seconds"
                logger.error("%s: %s", message, cmd_str)
                raise BuildTimeoutError(message, phase, timeout=ctx.timeout)
            time.sleep(POLL_INTERVAL)
    except BaseException:
        # Never leave the child running, including on KeyboardInterrupt
        _terminate(proc)
        raise

    finished_at = datetime.now(timezone.utc)
    result = ToolResult(
        exit_code=proc.returncode,
        command=cmd_str,
        started_at=started_at,
        finished_at=finished_at,
    )
    if not result.success:
        logger.error(
            "%s failed with exit code %d: %s", phase.value, result.exit_code, cmd_str
        )
    return result


@dataclass(frozen=True)
class ContainerToolchain:
    """Container CLI (docker-compatible) build and push capability.

    Attributes:
        executable: Container CLI executable.
        output: Stream the toolchain's standard output goes to; inherited
            from the caller when None.
    """

    executable: str = "docker"
    output: IO[Any] | None = None

    def build_command(self, context_dir: Path, tag: str) -> list[str]:
        """Compose the `build` command for a build context."""
        return [self.executable, "build", str(context_dir), "-t", tag]

    def push_command(self, tag: str) -> list[str]:
        """Compose the `push` command for a tag."""
        return [self.executable, "push", tag]

    def build(self, ctx: BuildContext, context_dir: Path, tag: str) -> ToolResult:
        return run_tool(
            self.build_command(context_dir, tag),
            ctx,
            BuildPhase.BUILD,
            stdout=self.output,
        )

    def push(self, ctx: BuildContext, tag: str) -> ToolResult:
        return run_tool(
            self.push_command(tag), ctx, BuildPhase.PUSH, stdout=self.output
        )


__all__ = [
    "POLL_INTERVAL",
    "ContainerToolchain",
    "ToolResult",
    "run_tool",
]
