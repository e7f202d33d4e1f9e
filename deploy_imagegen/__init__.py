"""Deploy Image Generator - container image builds for application deployments.

This package stages a hermetic build context for an application binary,
drives the container toolchain to build it, and publishes the result to a
registry.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
