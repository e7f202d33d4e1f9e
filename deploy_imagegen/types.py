"""Shared type definitions for deploy_imagegen.

This module contains enums shared across subpackages to avoid circular
imports.
"""

from enum import Enum


class BuildPhase(str, Enum):
    """Phase of an image build that an error is attributed to."""

    SPEC = "spec"
    STAGE = "stage"
    BUILD = "build"
    PUSH = "push"


class BuildState(str, Enum):
    """State of a single image build invocation."""

    INIT = "init"
    SPEC_BUILT = "spec_built"
    STAGED = "staged"
    BUILT = "built"
    PUSHED = "pushed"
    DONE = "done"
    FAILED = "failed"


__all__ = ["BuildPhase", "BuildState"]
