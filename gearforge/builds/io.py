"""Build file import/export.

Build files are YAML or JSON documents describing a build's parts, used
by the CLI to validate or seed builds offline. Either form is accepted:

    parts:
      - gear_category: frame
        catalog_item_id: frame-123
        catalog_item: {...}

or a bare list of parts. Title and description are optional.
"""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from gearforge.builds.schema import BuildPart, TemporaryBuild


class BuildFileError(Exception):
    """Raised when a build file cannot be read or parsed."""

    def __init__(self, path: Path, message: str, code: str = "build_file_error") -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.code = code


class BuildFile(BaseModel):
    """Contents of a build file."""

    model_config = ConfigDict(extra="forbid")

    title: str = ""
    description: str = ""
    parts: list[BuildPart] = Field(default_factory=list)


def _load_raw(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                return json.load(f)
            # YAML is a superset of JSON, so unknown suffixes go through yaml
            return yaml.safe_load(f)
    except FileNotFoundError:
        raise BuildFileError(path, "file not found", code="file_not_found") from None
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise BuildFileError(path, f"invalid syntax: {e}", code="parse_error") from e


def load_build_file(path: Path) -> BuildFile:
    """Load and validate a build file.

    Args:
        path: Path to a .yaml, .yml or .json file.

    Returns:
        Validated BuildFile.

    Raises:
        BuildFileError: If the file is missing, malformed or fails validation.
    """
    data = _load_raw(path)
    if data is None:
        data = {}
    if isinstance(data, list):
        data = {"parts": data}
    if not isinstance(data, dict):
        raise BuildFileError(
            path, f"expected a mapping or list, got {type(data).__name__}"
        )
    try:
        return BuildFile.model_validate(data)
    except ValidationError as e:
        raise BuildFileError(path, str(e), code="validation") from e


def build_to_yaml_string(build: TemporaryBuild) -> str:
    """Render a build as a YAML build file."""
    data = BuildFile(
        title=build.title, description=build.description, parts=build.parts
    ).model_dump(mode="json", exclude_none=True)
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


__all__ = ["BuildFile", "BuildFileError", "build_to_yaml_string", "load_build_file"]
