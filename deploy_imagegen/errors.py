"""Error definitions for image builds.

Every failure surfaced by the build pipeline is an ImageBuildError carrying
the phase it happened in, a stable error code and, when there is one, the
underlying cause chained through ``raise ... from``.
"""

from __future__ import annotations

from typing import Any

from deploy_imagegen.types import BuildPhase

# Stable error codes
INVALID_INPUT = "invalid_input"
WORKSPACE_CREATE_ERROR = "workspace_create_error"
FILE_COPY_ERROR = "file_copy_error"
MANIFEST_WRITE_ERROR = "manifest_write_error"
TIMEOUT = "timeout"
CANCELLED = "cancelled"
BUILD_ERROR = "build_failed"
PUSH_ERROR = "push_failed"


class ImageBuildError(Exception):
    """Base error for image build operations.

    Attributes:
        phase: Build phase the error is attributed to.
        code: Stable error code for programmatic handling.
        details: Optional additional error details.
    """

    default_code = "image_build_error"

    def __init__(
        self,
        message: str,
        phase: BuildPhase,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.phase = phase
        self.code = code or self.default_code
        self.details = details

    @property
    def cause(self) -> BaseException | None:
        """Underlying exception this error wraps, if any."""
        return self.__cause__

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "code": self.code,
            "phase": self.phase.value,
            "message": self.message,
        }
        if self.details is not None:
            result["details"] = self.details
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result


class InvalidInputError(ImageBuildError):
    """Raised when a deployment descriptor or build input is malformed."""

    default_code = INVALID_INPUT

    def __init__(
        self,
        message: str,
        phase: BuildPhase = BuildPhase.SPEC,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, phase, details=details)


class WorkspaceCreateError(ImageBuildError):
    """Raised when the staging workspace cannot be created."""

    default_code = WORKSPACE_CREATE_ERROR

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(
            message,
            BuildPhase.STAGE,
            details={"path": path} if path else None,
        )
        self.path = path


class FileCopyError(ImageBuildError):
    """Raised when a file cannot be staged into the workspace."""

    default_code = FILE_COPY_ERROR

    def __init__(self, message: str, path: str) -> None:
        super().__init__(message, BuildPhase.STAGE, details={"path": path})
        self.path = path


class ManifestWriteError(ImageBuildError):
    """Raised when the build manifest cannot be rendered or written."""

    default_code = MANIFEST_WRITE_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message, BuildPhase.STAGE)


class BuildTimeoutError(ImageBuildError):
    """Raised when a phase runs past its deadline."""

    default_code = TIMEOUT

    def __init__(
        self, message: str, phase: BuildPhase, timeout: float | None = None
    ) -> None:
        super().__init__(
            message,
            phase,
            details={"timeout": timeout} if timeout is not None else None,
        )
        self.timeout = timeout


class BuildCancelledError(ImageBuildError):
    """Raised when the caller cancelled the build context."""

    default_code = CANCELLED

    def __init__(self, message: str, phase: BuildPhase) -> None:
        super().__init__(message, phase)


class BuildError(ImageBuildError):
    """Raised when the external image build fails."""

    default_code = BUILD_ERROR

    def __init__(self, message: str, exit_code: int | None = None) -> None:
        super().__init__(
            message,
            BuildPhase.BUILD,
            details={"exit_code": exit_code} if exit_code is not None else None,
        )
        self.exit_code = exit_code


class PushError(ImageBuildError):
    """Raised when the external image push fails."""

    default_code = PUSH_ERROR

    def __init__(self, message: str, exit_code: int | None = None) -> None:
        super().__init__(
            message,
            BuildPhase.PUSH,
            details={"exit_code": exit_code} if exit_code is not None else None,
        )
        self.exit_code = exit_code


def tool_error(
    phase: BuildPhase, message: str, exit_code: int | None = None
) -> BuildError | PushError:
    """Create the failure error for an external tool phase.

    Args:
        phase: Either BuildPhase.BUILD or BuildPhase.PUSH.
        message: Human-readable message.
        exit_code: Exit code of the tool, if it ran.

    Returns:
        PushError for the push phase, BuildError otherwise.
    """
    if phase is BuildPhase.PUSH:
        return PushError(message, exit_code=exit_code)
    return BuildError(message, exit_code=exit_code)


__all__ = [
    "BUILD_ERROR",
    "CANCELLED",
    "FILE_COPY_ERROR",
    "INVALID_INPUT",
    "MANIFEST_WRITE_ERROR",
    "PUSH_ERROR",
    "TIMEOUT",
    "WORKSPACE_CREATE_ERROR",
    "BuildCancelledError",
    "BuildError",
    "BuildTimeoutError",
    "FileCopyError",
    "ImageBuildError",
    "InvalidInputError",
    "ManifestWriteError",
    "PushError",
    "WorkspaceCreateError",
    "tool_error",
]
