"""Build validation engine.

Validation is a pure function of a PartAssembly snapshot. It is cheap
and is recomputed wholesale after every mutation; nothing is carried
over from a previous pass.

Rules:
- Required slots (frame, motor, receiver, vtx) must each be selected.
- The power stack is complete iff an AIO is selected, or both an FC and
  an ESC are. A single 'power-stack' failure is reported otherwise.
- Optional slots never fail.
- With require_published, selected parts that count toward completeness
  must reference an active catalog entry.

At most one failure is reported per category; the first rule wins.
"""

from __future__ import annotations

from collections.abc import Iterable

from gearforge.builds.assembly import PartAssembly
from gearforge.builds.schema import BuildPart, BuildValidationResult, ValidationFailure
from gearforge.types import (
    CATEGORY_LABELS,
    POWER_STACK,
    GearCategory,
    SlotGroup,
    categories_in,
    slot_group,
)

MISSING_REQUIRED = "missing_required"
NOT_PUBLISHED = "not_published"

POWER_STACK_MESSAGE = "Power stack requires either an AIO or both FC and ESC"


def _category_key(category: GearCategory | str) -> str:
    return category.value if isinstance(category, GearCategory) else category


def _power_stack_complete(assembly: PartAssembly) -> bool:
    has_aio = assembly.has_selection(GearCategory.AIO)
    has_fc = assembly.has_selection(GearCategory.FC)
    has_esc = assembly.has_selection(GearCategory.ESC)
    return has_aio or (has_fc and has_esc)


def _completeness_categories(assembly: PartAssembly) -> list[GearCategory]:
    """Categories whose parts count toward a complete build."""
    counted: list[GearCategory] = []
    for category in GearCategory:
        group = slot_group(category)
        if group is SlotGroup.REQUIRED:
            counted.append(category)
        elif group is SlotGroup.POWER:
            if assembly.has_selection(GearCategory.AIO):
                if category is GearCategory.AIO:
                    counted.append(category)
            elif category is not GearCategory.AIO:
                counted.append(category)
        elif group is SlotGroup.OPTIONAL:
            continue
        else:
            raise AssertionError(f"Unhandled slot group: {group}")
    return counted


def _missing_required(assembly: PartAssembly) -> list[ValidationFailure]:
    return [
        ValidationFailure(
            category=category,
            code=MISSING_REQUIRED,
            message=f"{CATEGORY_LABELS[category]} is required",
        )
        for category in categories_in(SlotGroup.REQUIRED)
        if not assembly.has_selection(category)
    ]


def _missing_power_stack(assembly: PartAssembly) -> list[ValidationFailure]:
    if _power_stack_complete(assembly):
        return []
    return [
        ValidationFailure(
            category=POWER_STACK,
            code=MISSING_REQUIRED,
            message=POWER_STACK_MESSAGE,
        )
    ]


def _not_published(assembly: PartAssembly) -> list[ValidationFailure]:
    failures: list[ValidationFailure] = []
    for category in _completeness_categories(assembly):
        part = assembly.get(category)
        if part is None or not part.catalog_item_id:
            continue
        snapshot = part.catalog_item
        if snapshot is not None and snapshot.is_published():
            continue
        name = (snapshot.display_name() if snapshot else "") or CATEGORY_LABELS[
            category
        ]
        failures.append(
            ValidationFailure(
                category=category,
                code=NOT_PUBLISHED,
                message=f"{name} is not a published catalog item",
            )
        )
    return failures


def evaluate(
    assembly: PartAssembly, require_published: bool = False
) -> list[ValidationFailure]:
    """Evaluate completeness rules against an assembly.

    Args:
        assembly: Parts to validate. Not modified.
        require_published: Also require counted parts to be active catalog items.

    Returns:
        Failures, at most one per category, in rule order.
    """
    rules = [_missing_required, _missing_power_stack]
    if require_published:
        rules.append(_not_published)

    failures: list[ValidationFailure] = []
    seen: set[str] = set()
    for rule in rules:
        for failure in rule(assembly):
            key = _category_key(failure.category)
            if key in seen:
                continue
            seen.add(key)
            failures.append(failure)
    return failures


def validation_result(
    assembly: PartAssembly, require_published: bool = False
) -> BuildValidationResult:
    """Wrap evaluate() in a BuildValidationResult."""
    errors = evaluate(assembly, require_published=require_published)
    return BuildValidationResult(valid=not errors, errors=errors)


def failures_by_category(
    failures: Iterable[ValidationFailure],
) -> dict[str, ValidationFailure]:
    """Index failures by category tag for rendering."""
    indexed: dict[str, ValidationFailure] = {}
    for failure in failures:
        indexed.setdefault(_category_key(failure.category), failure)
    return indexed


def is_build_verified(parts: Iterable[BuildPart]) -> bool:
    """Check whether every part references a published catalog entry.

    An empty build is never verified.
    """
    parts = list(parts)
    if not parts:
        return False
    for part in parts:
        if not part.catalog_item_id or part.catalog_item is None:
            return False
        if not part.catalog_item.is_published():
            return False
    return True


__all__ = [
    "MISSING_REQUIRED",
    "NOT_PUBLISHED",
    "POWER_STACK_MESSAGE",
    "evaluate",
    "failures_by_category",
    "is_build_verified",
    "validation_result",
]
