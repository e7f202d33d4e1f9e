"""Build manifest (Dockerfile) rendering.

The manifest is a pure function of the install targets: with no targets the
staged files are copied straight into the runtime image; otherwise a builder
stage installs each target and the runtime stage copies the installed
binaries next to the staged files.
"""

from __future__ import annotations

from collections.abc import Sequence

from deploy_imagegen.builds.specs import validate_install_target

BUILDER_BASE_IMAGE = "golang:1.20-bullseye"
RUNTIME_BASE_IMAGE = "gcr.io/distroless/base-debian11"
BUILDER_STAGE_NAME = "builder"
BUILDER_INSTALL_DIR = "/go/bin/"
IMAGE_WORKDIR = "/weaver/"
ENTRYPOINT = "/weaver/weaver-kube"


def render_install_stage(install_targets: Sequence[str]) -> list[str]:
    """Render the builder stage lines, one install step per target."""
    lines = [f"FROM {BUILDER_BASE_IMAGE} AS {BUILDER_STAGE_NAME}"]
    lines.extend(f"RUN go install {target}" for target in install_targets)
    return lines


def render_runtime_stage(with_installs: bool) -> list[str]:
    """Render the runtime stage lines."""
    lines = [
        f"FROM {RUNTIME_BASE_IMAGE}",
        f"WORKDIR {IMAGE_WORKDIR}",
        "COPY . .",
    ]
    if with_installs:
        lines.append(
            f"COPY --from={BUILDER_STAGE_NAME} {BUILDER_INSTALL_DIR} {IMAGE_WORKDIR}"
        )
    lines.append(f'ENTRYPOINT ["{ENTRYPOINT}"]')
    return lines


def render_manifest(install_targets: Sequence[str]) -> str:
    """Render the build manifest for a set of install targets.

    Args:
        install_targets: Package identifiers to install, in order.

    Returns:
        Manifest text, newline terminated.

    Raises:
        ValueError: If an install target is invalid.
    """
    for target in install_targets:
        validate_install_target(target)

    lines: list[str] = []
    if install_targets:
        lines.extend(render_install_stage(install_targets))
        lines.append("")
    lines.extend(render_runtime_stage(with_installs=bool(install_targets)))
    return "\n".join(lines) + "\n"


__all__ = [
    "BUILDER_BASE_IMAGE",
    "BUILDER_INSTALL_DIR",
    "ENTRYPOINT",
    "IMAGE_WORKDIR",
    "RUNTIME_BASE_IMAGE",
    "render_manifest",
]
