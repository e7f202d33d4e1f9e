"""Build spec derivation for container images.

This module handles:
- Deriving the image tag from a deployment id and image base name
- Selecting the files staged into the build context
- Selecting the install targets fetched inside the builder stage
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from deploy_imagegen.errors import InvalidInputError

if TYPE_CHECKING:
    from deploy_imagegen.descriptor import DeploymentDescriptor

# Number of deployment id characters appended to the image base name
TAG_ID_LENGTH = 8

# Tool installed in the builder stage and used as the image entrypoint
DEFAULT_INSTALL_TARGETS: tuple[str, ...] = (
    "github.com/ServiceWeaver/weaver-kube/cmd/weaver-kube@latest",
)

# Install targets are single tokens so they cannot break manifest lines
INSTALL_TARGET_PATTERN = re.compile(r"^[A-Za-z0-9._~/@+\-]+$")


@dataclass(frozen=True)
class BuildSpec:
    """Immutable specification of one container image build.

    Attributes:
        image_tag: Fully qualified tag of the image to build and push.
        staged_files: Host files copied into the build context, in order.
        install_targets: Package identifiers installed in the builder stage.
    """

    image_tag: str
    staged_files: tuple[Path, ...]
    install_targets: tuple[str, ...]


def validate_install_target(target: str) -> str:
    """Validate a single install target identifier.

    Args:
        target: Package identifier, e.g. 'example.com/cmd/tool@latest'.

    Returns:
        The target unchanged.

    Raises:
        ValueError: If the target is empty or contains unsupported characters.
    """
    if not INSTALL_TARGET_PATTERN.match(target):
        raise ValueError(f"Invalid install target: {target!r}")
    return target


def compose_image_tag(image_base_name: str, deployment_id: str) -> str:
    """Compose the image tag for a deployment.

    Args:
        image_base_name: Registry/repository name, e.g. 'myrepo/app'.
        deployment_id: Deployment identifier.

    Returns:
        Tag of the form '<image_base_name>:<first 8 id characters>'.

    Raises:
        InvalidInputError: If the base name is empty or the id is too short.
    """
    if not image_base_name:
        raise InvalidInputError("Image base name must not be empty")
    if len(deployment_id) < TAG_ID_LENGTH:
        raise InvalidInputError(
            f"Deployment id {deployment_id!r} is shorter than "
            f"{TAG_ID_LENGTH} characters",
            details={"deployment_id": deployment_id},
        )
    return f"{image_base_name}:{deployment_id[:TAG_ID_LENGTH]}"


def build_image_specs(
    descriptor: DeploymentDescriptor,
    image_base_name: str,
    install_targets: tuple[str, ...] | list[str] = DEFAULT_INSTALL_TARGETS,
) -> BuildSpec:
    """Build the image spec for an application deployment.

    Args:
        descriptor: Deployment providing `id` and `binary_path`.
        image_base_name: Registry/repository the image is tagged under.
        install_targets: Package identifiers to install in the builder stage.

    Returns:
        BuildSpec for the deployment.

    Raises:
        InvalidInputError: If the id, base name or an install target is invalid.
    """
    image_tag = compose_image_tag(image_base_name, descriptor.id)

    targets = tuple(install_targets)
    for target in targets:
        try:
            validate_install_target(target)
        except ValueError as e:
            raise InvalidInputError(str(e), details={"target": target}) from e

    return BuildSpec(
        image_tag=image_tag,
        staged_files=(Path(descriptor.binary_path),),
        install_targets=targets,
    )


__all__ = [
    "DEFAULT_INSTALL_TARGETS",
    "INSTALL_TARGET_PATTERN",
    "TAG_ID_LENGTH",
    "BuildSpec",
    "build_image_specs",
    "compose_image_tag",
    "validate_install_target",
]
