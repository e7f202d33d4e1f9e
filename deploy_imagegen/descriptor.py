"""Deployment descriptor model and loading.

The deployment descriptor is owned by the wider deployment tooling; this
module only models the fields an image build consumes and loads them from
YAML or JSON files.
"""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from deploy_imagegen.errors import InvalidInputError


class DeploymentDescriptor(BaseModel):
    """Deployment fields consumed by an image build.

    Attributes:
        id: Unique deployment identifier (typically a UUID).
        binary_path: Path to the application binary on the host.
        app_name: Optional application name, informational only.
    """

    model_config = ConfigDict(extra="ignore", frozen=True, coerce_numbers_to_str=True)

    id: str = Field(min_length=1, description="Deployment identifier")
    binary_path: str = Field(min_length=1, description="Application binary path")
    app_name: str | None = Field(default=None, description="Application name")


def _read_mapping(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping, got {type(data).__name__}")
    return data


def load_descriptor(path: Path) -> DeploymentDescriptor:
    """Load and validate a deployment descriptor file.

    Files ending in .json are parsed as JSON, anything else as YAML.

    Args:
        path: Path to the descriptor file.

    Returns:
        Validated DeploymentDescriptor.

    Raises:
        InvalidInputError: If the file cannot be read, parsed, or validated.
    """
    try:
        data = _read_mapping(path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        # json.JSONDecodeError is a ValueError
        raise InvalidInputError(
            f"Failed to load deployment descriptor {path}: {e}",
            details={"path": str(path)},
        ) from e

    try:
        return DeploymentDescriptor.model_validate(data)
    except ValidationError as e:
        raise InvalidInputError(
            f"Invalid deployment descriptor {path}: {e.error_count()} error(s)",
            details={
                "path": str(path),
                "errors": e.errors(
                    include_url=False, include_context=False, include_input=False
                ),
            },
        ) from e


__all__ = ["DeploymentDescriptor", "load_descriptor"]
