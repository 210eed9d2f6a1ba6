"""Build composition and temporary build lifecycle.

This module handles:
- The part assembly model (one part per gear category)
- Completeness validation (required slots, power stack)
- Temporary build persistence and TEMP -> SHARED promotion
- An async client and editing session for the build API
"""

from gearforge.builds.assembly import PartAssembly
from gearforge.builds.errors import BuildNotFoundError, InvalidStateError, TransportError
from gearforge.builds.models import TempBuild, TempBuildPart
from gearforge.builds.schema import (
    BuildPart,
    BuildPatch,
    BuildValidationResult,
    CreateTempBuildParams,
    PromotionResult,
    TempBuildCreated,
    TemporaryBuild,
    ValidationFailure,
)
from gearforge.builds.validation import evaluate, is_build_verified, validation_result

__all__ = [
    # Models
    "TempBuild",
    "TempBuildPart",
    # Schema
    "BuildPart",
    "BuildPatch",
    "BuildValidationResult",
    "CreateTempBuildParams",
    "PromotionResult",
    "TempBuildCreated",
    "TemporaryBuild",
    "ValidationFailure",
    # Assembly and validation
    "PartAssembly",
    "evaluate",
    "is_build_verified",
    "validation_result",
    # Errors
    "BuildNotFoundError",
    "InvalidStateError",
    "TransportError",
]

# Service, client and editor are imported from their submodules:
# gearforge.builds.service, gearforge.builds.client, gearforge.builds.editor
