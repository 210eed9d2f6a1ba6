"""Build validation endpoint."""

from fastapi import APIRouter, Query

from gearforge.builds.assembly import PartAssembly
from gearforge.builds.schema import BuildPart, BuildValidationResult
from gearforge.builds.validation import validation_result

router = APIRouter()


@router.post("/validate")
def validate_build_endpoint(
    parts: list[BuildPart],
    require_published: bool = Query(
        False, description="Also require parts to be published catalog items"
    ),
) -> BuildValidationResult:
    """Validate a parts list against the completeness rules.

    Args:
        parts: Parts of the build; the last part per category wins.
        require_published: Check catalog publication status too.

    Returns:
        Validation result with any failures.
    """
    assembly = PartAssembly.from_parts(parts)
    return validation_result(assembly, require_published=require_published)
