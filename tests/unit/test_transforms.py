"""Unit tests for post-parse transforms and the transform engine."""

from pydantic import BaseModel
import pytest

from llm_json_recovery.transforms import (
    REPAIR_TRANSFORMS,
    TransformContext,
    TransformEngine,
    coerce_numeric_strings,
    coerce_strings_to_arrays,
    drop_null_values,
    fix_property_name_typos,
    map_objects,
    merge_objects,
    normalize_singleton_lists,
    transform,
    unwrap_schema_envelope,
)
from llm_json_recovery.validation import PydanticSchema, SchemaMetadata, extract_metadata

pytestmark = pytest.mark.unit


def context_for(**names) -> TransformContext:
    return TransformContext(metadata=SchemaMetadata.from_names(**names))


class TestMapObjects:
    def test_untouched_tree_is_returned_as_is(self):
        value = {"a": [{"b": 1}], "c": "x"}
        assert map_objects(value, lambda obj: obj) is value

    def test_only_changed_branches_are_rebuilt(self):
        def without_nulls(obj):
            if None not in obj.values():
                return obj
            return {k: v for k, v in obj.items() if v is not None}

        value = {"keep": {"x": 1}, "change": {"drop": None}}
        result = map_objects(value, without_nulls)

        assert result == {"keep": {"x": 1}, "change": {}}
        assert result is not value
        assert result["keep"] is value["keep"]

    def test_cycles_terminate(self):
        value: dict = {"name": "loop"}
        value["self"] = value
        assert map_objects(value, lambda obj: obj) is value


class TestSchemaEnvelope:
    def test_collapses_placeholders(self):
        value = {
            "type": "object",
            "properties": {
                "title": {"type": "string", "description": "Quarterly report"},
                "pages": 3,
            },
        }
        assert unwrap_schema_envelope(value, TransformContext()) == {
            "title": "Quarterly report",
            "pages": 3,
        }

    def test_ignores_empty_properties(self):
        value = {"type": "object", "properties": {}}
        assert unwrap_schema_envelope(value, TransformContext()) is value

    def test_nested_properties_field_does_not_block_unwrapping(self):
        class Section(BaseModel):
            properties: dict[str, str]

        class Document(BaseModel):
            title: str
            section: Section

        context = TransformContext(metadata=extract_metadata(PydanticSchema(Document)))
        value = {"type": "object", "properties": {"title": "t", "section": {}}}

        assert unwrap_schema_envelope(value, context) == {"title": "t", "section": {}}

    def test_top_level_properties_field_keeps_the_envelope(self):
        class Listing(BaseModel):
            type: str
            properties: dict[str, int]

        context = TransformContext(metadata=extract_metadata(PydanticSchema(Listing)))
        value = {"type": "object", "properties": {"rooms": 3}}

        assert unwrap_schema_envelope(value, context) is value


class TestRepairs:
    def test_drop_null_values_recurses(self):
        value = {"a": None, "b": {"c": None, "d": 1}, "e": [None]}
        assert drop_null_values(value, TransformContext()) == {"b": {"d": 1}, "e": [None]}

    def test_fixes_trailing_underscore_names(self):
        result = fix_property_name_typos({"name_": "x"}, context_for(known={"name"}))
        assert result == {"name": "x"}

    def test_never_clobbers_the_canonical_key(self):
        value = {"name": "real", "name_": "typo"}
        assert fix_property_name_typos(value, context_for(known={"name"})) is value

    def test_unknown_names_are_left_alone(self):
        value = {"other_": 1}
        assert fix_property_name_typos(value, context_for(known={"name"})) is value

    def test_coerces_descriptive_string_to_empty_array(self):
        value = {"items": "12 items including A, B", "title": "t"}
        assert coerce_strings_to_arrays(value, context_for(arrays={"items"})) == {
            "items": [],
            "title": "t",
        }

    @pytest.mark.parametrize(
        ("author", "expected"),
        [
            ([], {"id": 1}),
            ([{"name": "Ada"}], {"id": 1, "author": {"name": "Ada"}}),
        ],
    )
    def test_singleton_lists(self, author, expected):
        value = {"id": 1, "author": author}
        assert normalize_singleton_lists(value, context_for(objects={"author"})) == expected

    def test_merges_several_objects(self):
        value = {
            "author": [
                {"name": "Ada", "tags": ["x"], "age": 36},
                {"name": "Grace", "tags": ["x", "y"], "age": 85},
                {"name": "Ada"},
            ]
        }
        assert normalize_singleton_lists(value, context_for(objects={"author"})) == {
            "author": {"name": "Ada | Grace", "tags": ["x", "y"], "age": 36}
        }

    def test_merge_uses_configured_separator(self):
        merged = merge_objects([{"a": "x"}, {"a": "y"}], separator="; ")
        assert merged == {"a": "x; y"}

    def test_lists_of_scalars_stay(self):
        value = {"author": ["Ada", "Grace"]}
        assert normalize_singleton_lists(value, context_for(objects={"author"})) is value

    @pytest.mark.parametrize(
        ("raw", "number"),
        [("~150 items", 150), ("1,200.5", 1200.5), ("-3", -3)],
    )
    def test_coerces_numeric_strings(self, raw, number):
        value = {"count": raw}
        assert coerce_numeric_strings(value, context_for(numerics={"count"})) == {
            "count": number
        }

    def test_non_numeric_strings_stay(self):
        value = {"count": "several"}
        assert coerce_numeric_strings(value, context_for(numerics={"count"})) is value

    def test_repairs_without_metadata_change_nothing(self):
        value = {"items": "x", "count": "3", "author": [{"a": 1}], "name_": 1}
        for repair in REPAIR_TRANSFORMS[1:]:
            assert repair(value, TransformContext()) is value

    @pytest.mark.parametrize("repair", REPAIR_TRANSFORMS)
    def test_repairs_are_idempotent(self, repair):
        ctx = context_for(
            known={"name"}, arrays={"items"}, objects={"author"}, numerics={"count"}
        )
        value = {
            "name_": "n",
            "items": "two things",
            "author": [{"a": "x"}, {"a": "y"}],
            "count": "~4",
            "gone": None,
        }
        once = repair(value, ctx)
        assert repair(once, ctx) is once


class TestEngine:
    def test_records_only_transforms_that_changed_the_value(self):
        engine = TransformEngine(REPAIR_TRANSFORMS)
        value, steps = engine.run(
            {"items": "none", "extra": None}, context_for(arrays={"items"})
        )

        assert value == {"items": []}
        assert steps == (
            "Dropped null values",
            "Coerced descriptive strings to empty arrays",
        )

    def test_failing_transform_is_contained(self):
        @transform("Always fails")
        def broken(value, context):
            raise ValueError("nope")

        @transform("Wrapped")
        def wrap(value, context):
            return {"wrapped": value}

        value, steps = TransformEngine([broken, wrap]).run(1)

        assert value == {"wrapped": 1}
        assert steps == ("Wrapped",)
