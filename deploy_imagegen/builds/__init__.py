"""Image build orchestration module.

This module handles:
- Build spec derivation from deployment descriptors
- Workspace staging and cleanup
- Build manifest rendering
- Running the container toolchain under a deadline
"""

from deploy_imagegen.builds.specs import BuildSpec, build_image_specs

__all__ = ["BuildSpec", "build_image_specs"]

# Lazy imports for submodules to avoid circular imports
# Access via deploy_imagegen.builds.workspace, etc.
