"""Tests for builds/driver.py module."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from deploy_imagegen.builds.context import BuildContext
from deploy_imagegen.builds.driver import drive_build, drive_push
from deploy_imagegen.builds.runner import ToolResult
from deploy_imagegen.errors import BuildCancelledError, BuildError, PushError
from deploy_imagegen.types import BuildPhase


def tool_result(exit_code: int) -> ToolResult:
    now = datetime.now(timezone.utc)
    return ToolResult(
        exit_code=exit_code, command="fake", started_at=now, finished_at=now
    )


class FakeToolchain:
    """Toolchain double recording calls and returning fixed exit codes."""

    def __init__(self, build_exit: int = 0, push_exit: int = 0) -> None:
        self.build_exit = build_exit
        self.push_exit = push_exit
        self.calls: list[tuple] = []

    def build(self, ctx, context_dir, tag):
        self.calls.append(("build", context_dir, tag))
        return tool_result(self.build_exit)

    def push(self, ctx, tag):
        self.calls.append(("push", tag))
        return tool_result(self.push_exit)


class TestDriveBuild:
    """Tests for drive_build function."""

    def test_success(self, tmp_path):
        """Should invoke the toolchain with workspace and tag."""
        toolchain = FakeToolchain()
        result = drive_build(
            BuildContext.background(), tmp_path, "myrepo/app:abcdef12", toolchain
        )

        assert result.success is True
        assert toolchain.calls == [("build", tmp_path, "myrepo/app:abcdef12")]

    def test_failure(self, tmp_path):
        """Should raise BuildError carrying the exit code."""
        with pytest.raises(BuildError) as exc_info:
            drive_build(
                BuildContext.background(),
                tmp_path,
                "app:1",
                FakeToolchain(build_exit=1),
            )
        assert exc_info.value.exit_code == 1
        assert exc_info.value.phase is BuildPhase.BUILD

    def test_cancelled_does_not_invoke(self):
        """A cancelled context should fail before the toolchain runs."""
        ctx = BuildContext.background()
        ctx.cancel()
        toolchain = FakeToolchain()

        with pytest.raises(BuildCancelledError):
            drive_build(ctx, Path("/tmp/ws"), "app:1", toolchain)
        assert toolchain.calls == []


class TestDrivePush:
    """Tests for drive_push function."""

    def test_success(self):
        """Should invoke the toolchain push with the tag."""
        toolchain = FakeToolchain()
        drive_push(BuildContext.background(), "myrepo/app:abcdef12", toolchain)
        assert toolchain.calls == [("push", "myrepo/app:abcdef12")]

    def test_failure(self):
        """Should raise PushError carrying the exit code."""
        with pytest.raises(PushError) as exc_info:
            drive_push(BuildContext.background(), "app:1", FakeToolchain(push_exit=2))
        assert exc_info.value.exit_code == 2
        assert exc_info.value.phase is BuildPhase.PUSH

    def test_cancelled(self):
        """A cancelled context should fail with the push phase."""
        ctx = BuildContext.background()
        ctx.cancel()
        with pytest.raises(BuildCancelledError) as exc_info:
            drive_push(ctx, "app:1", FakeToolchain())
        assert exc_info.value.phase is BuildPhase.PUSH
