"""Tests for field reference list operations."""

from casebuilder.domain.identifiers import MonotonicIdGenerator, slugify_label
from casebuilder.domain.models import FieldReference
from casebuilder.domain.references import add_references, remove_reference, reorder_references


class TestAddReferences:
    def test_appends_new_ids_once(self):
        existing = (FieldReference(field_id=1, required=True),)
        result = add_references(existing, [2, 1, 2, 3])
        assert [r.field_id for r in result] == [1, 2, 3]
        assert result[0].required is True
        assert result[1].required is False


class TestRemoveReference:
    def test_removes_only_target(self):
        existing = (FieldReference(field_id=1), FieldReference(field_id=2))
        assert remove_reference(existing, 1) == (FieldReference(field_id=2),)

    def test_missing_id_is_noop(self):
        existing = (FieldReference(field_id=1),)
        assert remove_reference(existing, 9) == existing


class TestReorderReferences:
    def test_follows_requested_order_and_renumbers(self):
        existing = (
            FieldReference(field_id=1, required=True),
            FieldReference(field_id=2),
            FieldReference(field_id=3),
        )
        result = reorder_references(existing, [3, 1])
        assert [r.field_id for r in result] == [3, 1, 2]
        assert [r.order for r in result] == [1, 2, 3]
        assert result[1].required is True

    def test_unknown_ids_become_optional_references(self):
        result = reorder_references((), [5])
        assert result == (FieldReference(field_id=5, required=False, order=1),)


class TestIdentifiers:
    def test_slugify_label(self):
        assert slugify_label("Customer Name") == "customer_name"
        assert slugify_label("Home  Phone\tNumber") == "home_phone_number"

    def test_monotonic_within_same_millisecond(self):
        generator = MonotonicIdGenerator(clock=lambda: 1.0)
        assert [generator() for _ in range(3)] == [1000, 1001, 1002]

    def test_clock_going_backwards(self):
        ticks = iter([2.0, 1.0])
        generator = MonotonicIdGenerator(clock=lambda: next(ticks))
        first = generator()
        assert generator() > first
