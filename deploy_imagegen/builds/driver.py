"""Build driver for the external image toolchain.

Drives the two-verb toolchain capability (build, push) against a staged
workspace and turns unsuccessful runs into phase errors.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from deploy_imagegen.errors import BuildError, PushError
from deploy_imagegen.types import BuildPhase

if TYPE_CHECKING:
    from deploy_imagegen.builds.context import BuildContext
    from deploy_imagegen.builds.runner import ToolResult

logger = logging.getLogger(__name__)


class ImageToolchain(Protocol):
    """External capability that builds and pushes container images."""

    def build(self, ctx: BuildContext, context_dir: Path, tag: str) -> ToolResult:
        """Build an image from a build context and tag it."""
        ...

    def push(self, ctx: BuildContext, tag: str) -> ToolResult:
        """Push a tagged image to its registry."""
        ...


def drive_build(
    ctx: BuildContext,
    workspace: Path,
    image_tag: str,
    toolchain: ImageToolchain,
) -> ToolResult:
    """Build the image from a staged workspace.

    Args:
        ctx: Context carrying the build deadline.
        workspace: Staged workspace used as build context.
        image_tag: Tag of the image to build.
        toolchain: Toolchain to invoke.

    Returns:
        ToolResult of the successful build.

    Raises:
        BuildCancelledError: If the context is cancelled.
        BuildTimeoutError: If the deadline passes.
        BuildError: If the build fails.
    """
    ctx.check(BuildPhase.BUILD)
    logger.info("Building image %s...", image_tag)

    result = toolchain.build(ctx, workspace, image_tag)
    if not result.success:
        raise BuildError(
            f"Image build failed with exit code {result.exit_code}",
            exit_code=result.exit_code,
        )

    logger.info("Built image %s in %.1fs", image_tag, result.duration)
    return result


def drive_push(
    ctx: BuildContext,
    image_tag: str,
    toolchain: ImageToolchain,
) -> ToolResult:
    """Push a built image to its registry.

    Args:
        ctx: Caller context (the build deadline does not apply).
        image_tag: Tag of the image to push.
        toolchain: Toolchain to invoke.

    Returns:
        ToolResult of the successful push.

    Raises:
        BuildCancelledError: If the context is cancelled.
        BuildTimeoutError: If the caller's deadline passes.
        PushError: If the push fails.
    """
    ctx.check(BuildPhase.PUSH)
    logger.info("Uploading image %s...", image_tag)

    result = toolchain.push(ctx, image_tag)
    if not result.success:
        raise PushError(
            f"Image push failed with exit code {result.exit_code}",
            exit_code=result.exit_code,
        )

    logger.info("Uploaded image %s in %.1fs", image_tag, result.duration)
    return result


__all__ = ["ImageToolchain", "drive_build", "drive_push"]
