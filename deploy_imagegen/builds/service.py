"""Image build service module.

This module provides the high-level build API:
- build_and_upload_image(): Main entry point - build and push an image
- ImageBuildRun: One build invocation and its state machine

A run moves through init -> spec_built -> staged -> built -> pushed -> done,
or to failed from any state. The staging workspace only lives for the
build phase and is removed before push, whatever the outcome.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from deploy_imagegen.builds.context import BuildContext
from deploy_imagegen.builds.driver import ImageToolchain, drive_build, drive_push
from deploy_imagegen.builds.runner import ContainerToolchain
from deploy_imagegen.builds.specs import (
    DEFAULT_INSTALL_TARGETS,
    BuildSpec,
    build_image_specs,
)
from deploy_imagegen.builds.workspace import stage_workspace
from deploy_imagegen.config import get_settings
from deploy_imagegen.errors import ImageBuildError
from deploy_imagegen.types import BuildPhase, BuildState

if TYPE_CHECKING:
    from deploy_imagegen.config import Settings
    from deploy_imagegen.descriptor import DeploymentDescriptor

logger = logging.getLogger(__name__)


class ImageBuildRun:
    """A single build-and-push invocation.

    Instances are not shared between invocations; concurrent builds each
    use their own run, context and workspace.

    Attributes:
        descriptor: Deployment being built.
        image_base_name: Registry/repository the image is tagged under.
        state: Current state.
        history: States visited, in order.
        spec: Build spec once derived.
        workspace: Workspace path once created.
    """

    def __init__(
        self,
        descriptor: DeploymentDescriptor,
        image_base_name: str,
        settings: Settings | None = None,
        toolchain: ImageToolchain | None = None,
        install_targets: Sequence[str] = DEFAULT_INSTALL_TARGETS,
    ) -> None:
        self.descriptor = descriptor
        self.image_base_name = image_base_name
        self.settings = settings or get_settings()
        self.toolchain = toolchain or ContainerToolchain(self.settings.container_cli)
        self.install_targets = tuple(install_targets)
        self.state = BuildState.INIT
        self.history: list[BuildState] = [BuildState.INIT]
        self.spec: BuildSpec | None = None
        self.workspace: Path | None = None

    def _transition(self, state: BuildState) -> None:
        logger.debug(
            "Build %s: %s -> %s", self.descriptor.id, self.state.value, state.value
        )
        self.state = state
        self.history.append(state)

    def run(self, ctx: BuildContext | None = None) -> str:
        """Build and push the image.

        Args:
            ctx: Caller context; push runs under it and the build deadline
                is derived from it.

        Returns:
            The published image tag.

        Raises:
            ImageBuildError: On any failure, attributed to its phase.
        """
        if ctx is None:
            ctx = BuildContext.background()

        try:
            self.spec = build_image_specs(
                self.descriptor, self.image_base_name, self.install_targets
            )
            self._transition(BuildState.SPEC_BUILT)

            self.build_image(ctx, self.spec)
            self.upload_image(ctx, self.spec.image_tag)
        except ImageBuildError as e:
            logger.error(
                "Image build for deployment %s failed in %s phase: %s",
                self.descriptor.id,
                e.phase.value,
                e,
            )
            self._transition(BuildState.FAILED)
            raise
        except BaseException:
            logger.exception(
                "Image build for deployment %s aborted", self.descriptor.id
            )
            self._transition(BuildState.FAILED)
            raise

        self._transition(BuildState.DONE)
        return self.spec.image_tag

    def build_image(self, ctx: BuildContext, spec: BuildSpec) -> None:
        """Stage a workspace and build the image under the build deadline.

        Args:
            ctx: Caller context.
            spec: Build spec.

        Raises:
            ImageBuildError: If staging or building fails.
        """
        build_ctx = ctx.with_timeout(self.settings.build_timeout)
        # An already-cancelled caller must not create a workspace
        build_ctx.check(BuildPhase.BUILD)

        with stage_workspace(
            spec,
            root=self.settings.tmp_dir,
            prefix=self.settings.workspace_prefix,
            manifest_filename=self.settings.manifest_filename,
        ) as workspace:
            self.workspace = workspace
            self._transition(BuildState.STAGED)
            drive_build(build_ctx, workspace, spec.image_tag, self.toolchain)

        self._transition(BuildState.BUILT)

    def upload_image(self, ctx: BuildContext, image_tag: str) -> None:
        """Push the built image under the caller's context."""
        drive_push(ctx, image_tag, self.toolchain)
        self._transition(BuildState.PUSHED)


def build_and_upload_image(
    descriptor: DeploymentDescriptor,
    image_base_name: str,
    ctx: BuildContext | None = None,
    settings: Settings | None = None,
    toolchain: ImageToolchain | None = None,
    install_targets: Sequence[str] = DEFAULT_INSTALL_TARGETS,
) -> str:
    """Build a container image for a deployment and push it.

    Args:
        descriptor: Deployment providing `id` and `binary_path`.
        image_base_name: Registry/repository to tag the image under.
        ctx: Optional caller context for cancellation and deadlines.
        settings: Optional settings; loaded from the environment if omitted.
        toolchain: Optional toolchain; the container CLI if omitted.
        install_targets: Package identifiers installed in the builder stage.

    Returns:
        The published image tag.

    Raises:
        ImageBuildError: On any failure, attributed to its phase.
    """
    run = ImageBuildRun(
        descriptor,
        image_base_name,
        settings=settings,
        toolchain=toolchain,
        install_targets=install_targets,
    )
    return run.run(ctx)


__all__ = ["ImageBuildRun", "build_and_upload_image"]
