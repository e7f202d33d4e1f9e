"""Workspace staging for image builds.

This module handles:
- Creating a uniquely named, owner-only build workspace
- Copying staged files into it under their base names
- Writing the build manifest the container toolchain discovers
- Removing the workspace on every exit path

Layout of a staged workspace:

    <tmp>/<prefix><uuid>/
        file1
        ...
        fileN
        Dockerfile
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import uuid
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from deploy_imagegen.builds.manifest import render_manifest
from deploy_imagegen.errors import (
    FileCopyError,
    ManifestWriteError,
    WorkspaceCreateError,
)

if TYPE_CHECKING:
    from deploy_imagegen.builds.specs import BuildSpec

logger = logging.getLogger(__name__)

DEFAULT_WORKSPACE_PREFIX = "weaver"
DEFAULT_MANIFEST_FILENAME = "Dockerfile"
WORKSPACE_DIR_MODE = 0o700


def create_workspace(
    root: Path | None = None,
    prefix: str = DEFAULT_WORKSPACE_PREFIX,
) -> Path:
    """Create a new, uniquely named workspace directory.

    Args:
        root: Parent directory (defaults to the system temp directory).
        prefix: Directory name prefix.

    Returns:
        Path to the created workspace.

    Raises:
        WorkspaceCreateError: If the directory cannot be created.
    """
    if root is None:
        root = Path(tempfile.gettempdir())
    workspace = root / f"{prefix}{uuid.uuid4()}"

    try:
        # exist_ok=False: a collision of uuid names is treated as fatal
        workspace.mkdir(mode=WORKSPACE_DIR_MODE)
    except OSError as e:
        raise WorkspaceCreateError(
            f"Failed to create workspace {workspace}: {e}",
            path=str(workspace),
        ) from e

    logger.debug("Created workspace: %s", workspace)
    return workspace


def staged_name(source: Path | str) -> str:
    """Return the name a source file is staged under.

    Only the base name of the normalised path is kept, so the copy always
    lands directly inside the workspace.

    Args:
        source: Source file path.

    Returns:
        Base name of the source path.

    Raises:
        FileCopyError: If the path has no usable base name.
    """
    name = os.path.basename(os.path.normpath(str(source)))
    if name in ("", ".", ".."):
        raise FileCopyError(f"Cannot stage {source}: no file name", path=str(source))
    return name


def copy_staged_files(
    workspace: Path,
    files: Sequence[Path],
    manifest_filename: str = DEFAULT_MANIFEST_FILENAME,
) -> list[Path]:
    """Copy files into the workspace under their base names.

    Args:
        workspace: Workspace directory.
        files: Source files to copy, in order.
        manifest_filename: Reserved name of the build manifest.

    Returns:
        Paths of the staged copies, in order.

    Raises:
        FileCopyError: If a file cannot be copied or two names collide.
    """
    staged: list[Path] = []
    seen: dict[str, Path] = {}

    for source in files:
        name = staged_name(source)
        if name == manifest_filename:
            raise FileCopyError(
                f"Cannot stage {source}: name clashes with the build manifest",
                path=str(source),
            )
        if name in seen:
            raise FileCopyError(
                f"Cannot stage {source}: {seen[name]} is already staged as {name}",
                path=str(source),
            )
        seen[name] = Path(source)

        dest = workspace / name
        logger.debug("Staging file: %s -> %s", source, dest)
        try:
            shutil.copy2(source, dest)
        except OSError as e:
            raise FileCopyError(
                f"Failed to stage file {source} -> {dest}: {e}",
                path=str(source),
            ) from e
        staged.append(dest)

    return staged


def write_manifest(
    workspace: Path,
    install_targets: Sequence[str],
    filename: str = DEFAULT_MANIFEST_FILENAME,
) -> Path:
    """Render the build manifest into the workspace.

    Args:
        workspace: Workspace directory.
        install_targets: Package identifiers for the builder stage.
        filename: Manifest filename.

    Returns:
        Path to the written manifest.

    Raises:
        ManifestWriteError: If rendering or writing fails.
    """
    path = workspace / filename
    try:
        content = render_manifest(install_targets)
        path.write_text(content, encoding="utf-8")
    except (OSError, ValueError) as e:
        raise ManifestWriteError(f"Failed to write manifest {path}: {e}") from e
    return path


def remove_workspace(workspace: Path) -> bool:
    """Remove a workspace directory, best-effort.

    Errors are logged and never raised.

    Args:
        workspace: Workspace directory.

    Returns:
        True if the workspace is gone, False if removal failed.
    """
    try:
        shutil.rmtree(workspace)
    except FileNotFoundError:
        return True
    except OSError as e:
        logger.warning("Failed to remove workspace %s: %s", workspace, e)
        return False
    logger.debug("Removed workspace: %s", workspace)
    return True


@contextmanager
def stage_workspace(
    spec: BuildSpec,
    root: Path | None = None,
    prefix: str = DEFAULT_WORKSPACE_PREFIX,
    manifest_filename: str = DEFAULT_MANIFEST_FILENAME,
) -> Iterator[Path]:
    """Stage a populated workspace for a build spec.

    The workspace is removed when the block exits, whether it succeeds or
    raises, including when staging itself fails partway.

    Args:
        spec: Build spec providing staged files and install targets.
        root: Parent directory (defaults to the system temp directory).
        prefix: Workspace name prefix.
        manifest_filename: Manifest filename.

    Yields:
        Path to the staged workspace.

    Raises:
        WorkspaceCreateError: If the workspace cannot be created.
        FileCopyError: If a staged file cannot be copied.
        ManifestWriteError: If the manifest cannot be written.
    """
    workspace = create_workspace(root, prefix)
    try:
        copy_staged_files(workspace, spec.staged_files, manifest_filename)
        write_manifest(workspace, spec.install_targets, manifest_filename)
        logger.info(
            "Staged %d file(s) and %s into %s",
            len(spec.staged_files),
            manifest_filename,
            workspace,
        )
        yield workspace
    finally:
        remove_workspace(workspace)


__all__ = [
    "DEFAULT_MANIFEST_FILENAME",
    "DEFAULT_WORKSPACE_PREFIX",
    "WORKSPACE_DIR_MODE",
    "copy_staged_files",
    "create_workspace",
    "remove_workspace",
    "stage_workspace",
    "staged_name",
    "write_manifest",
]
