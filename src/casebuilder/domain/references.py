"""
Operations on ordered FieldReference lists, shared by steps and views.
"""

from collections.abc import Iterable
from dataclasses import replace

from casebuilder.domain.models import FieldReference


def add_references(
    existing: tuple[FieldReference, ...], field_ids: Iterable[int]
) -> tuple[FieldReference, ...]:
    """
    Append references for ``field_ids`` not already present.

    Existing references keep their properties and position; new ones are
    optional (``required=False``).
    """
    seen = {ref.field_id for ref in existing}
    added: list[FieldReference] = []
    for field_id in field_ids:
        if field_id in seen:
            continue
        seen.add(field_id)
        added.append(FieldReference(field_id=field_id, required=False))
    return (*existing, *added)


def remove_reference(
    existing: tuple[FieldReference, ...], field_id: int
) -> tuple[FieldReference, ...]:
    return tuple(ref for ref in existing if ref.field_id != field_id)


def reorder_references(
    existing: tuple[FieldReference, ...], field_ids: Iterable[int]
) -> tuple[FieldReference, ...]:
    """
    Reorder references to follow ``field_ids``.

    Ids not yet referenced get a new optional reference. References the
    request omitted are appended in their current order, so nothing is ever
    dropped. ``order`` is rewritten as the 1-based position.
    """
    by_id = {ref.field_id: ref for ref in existing}
    ordered: list[FieldReference] = []
    placed: set[int] = set()
    for field_id in field_ids:
        if field_id in placed:
            continue
        placed.add(field_id)
        ordered.append(by_id.pop(field_id, FieldReference(field_id=field_id)))
    ordered.extend(ref for ref in existing if ref.field_id in by_id)
    return tuple(replace(ref, order=index + 1) for index, ref in enumerate(ordered))
