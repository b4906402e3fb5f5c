"""Schema metadata used to steer the repair transforms.

The repairs need to know, by property name, which fields the schema expects
to be arrays, single objects or numbers. That information is read from the
schema's JSON Schema rendering, so any schema able to produce one gets
schema-aware repairs for free.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import dataclasses
import logging
from typing import Any

log = logging.getLogger(__name__)

_COMBINATORS = ("anyOf", "oneOf", "allOf")


@dataclasses.dataclass(frozen=True, slots=True)
class SchemaMetadata:
    """Property names grouped by the kind of value the schema expects.

    ``top_level`` holds the names the root object itself may carry; the
    other groups span every depth.
    """

    known: frozenset[str] = frozenset()
    arrays: frozenset[str] = frozenset()
    objects: frozenset[str] = frozenset()
    numerics: frozenset[str] = frozenset()
    top_level: frozenset[str] = frozenset()

    def merged_with(self, other: SchemaMetadata) -> SchemaMetadata:
        return SchemaMetadata(
            known=self.known | other.known,
            arrays=self.arrays | other.arrays,
            objects=self.objects | other.objects,
            numerics=self.numerics | other.numerics,
            top_level=self.top_level | other.top_level,
        )

    @classmethod
    def from_names(
        cls,
        *,
        known: Iterable[str] = (),
        arrays: Iterable[str] = (),
        objects: Iterable[str] = (),
        numerics: Iterable[str] = (),
    ) -> SchemaMetadata:
        arrays, objects, numerics = frozenset(arrays), frozenset(objects), frozenset(numerics)
        known = frozenset(known) | arrays | objects | numerics
        # Bare names carry no nesting, so each may sit at the root.
        return cls(
            known=known,
            arrays=arrays,
            objects=objects,
            numerics=numerics,
            top_level=known,
        )

    @classmethod
    def from_json_schema(cls, document: Mapping[str, Any]) -> SchemaMetadata:
        collector = _Collector(document.get("$defs") or document.get("definitions") or {})
        collector.visit(document)
        return cls(
            known=frozenset(collector.known),
            arrays=frozenset(collector.arrays),
            objects=frozenset(collector.objects - collector.arrays),
            numerics=frozenset(collector.numerics),
            top_level=frozenset(collector.root_properties(document)),
        )


EMPTY_METADATA = SchemaMetadata()


class _Collector:
    """Walks a JSON Schema document, resolving local ``$ref`` pointers."""

    def __init__(self, defs: Mapping[str, Any]) -> None:
        self.defs = defs
        self.known: set[str] = set()
        self.arrays: set[str] = set()
        self.objects: set[str] = set()
        self.numerics: set[str] = set()
        self._visited_refs: set[str] = set()

    def resolve(self, node: Mapping[str, Any]) -> Mapping[str, Any]:
        ref = node.get("$ref")
        if not isinstance(ref, str):
            return node
        target = self.defs.get(ref.rsplit("/", 1)[-1])
        return target if isinstance(target, Mapping) else {}

    def kinds(self, node: Mapping[str, Any], depth: int = 0) -> set[str]:
        """The set of JSON types a node admits, ignoring ``null``."""
        if depth > 8:
            return set()
        node = self.resolve(node)
        found: set[str] = set()
        declared = node.get("type")
        if isinstance(declared, str):
            found.add(declared)
        elif isinstance(declared, list):
            found.update(t for t in declared if isinstance(t, str))
        if "properties" in node and not declared:
            found.add("object")
        for key in _COMBINATORS:
            for sub in node.get(key) or ():
                if isinstance(sub, Mapping):
                    found |= self.kinds(sub, depth + 1)
        found.discard("null")
        return found

    def root_properties(self, node: Any, depth: int = 0) -> set[str]:
        """Property names declared directly on ``node`` or its combinators."""
        if depth > 8 or not isinstance(node, Mapping):
            return set()
        node = self.resolve(node)
        properties = node.get("properties")
        names = set(properties) if isinstance(properties, Mapping) else set()
        for key in _COMBINATORS:
            for sub in node.get(key) or ():
                names |= self.root_properties(sub, depth + 1)
        return names

    def visit(self, node: Any) -> None:
        if not isinstance(node, Mapping):
            return
        ref = node.get("$ref")
        if isinstance(ref, str):
            if ref in self._visited_refs:
                return
            self._visited_refs.add(ref)
        node = self.resolve(node)

        for key in _COMBINATORS:
            for sub in node.get(key) or ():
                self.visit(sub)

        properties = node.get("properties")
        if isinstance(properties, Mapping):
            for name, prop in properties.items():
                if not isinstance(prop, Mapping):
                    continue
                self.known.add(name)
                kinds = self.kinds(prop)
                if "array" in kinds:
                    self.arrays.add(name)
                if "object" in kinds:
                    self.objects.add(name)
                if kinds and kinds <= {"number", "integer"}:
                    self.numerics.add(name)
                self.visit(prop)

        items = node.get("items")
        if isinstance(items, Mapping):
            self.visit(items)
        additional = node.get("additionalProperties")
        if isinstance(additional, Mapping):
            self.visit(additional)


def extract_metadata(schema: object) -> SchemaMetadata:
    """Best-effort metadata for any schema object.

    Uses a ``metadata`` attribute when the schema provides one, otherwise
    its ``json_schema()`` rendering; anything else yields empty metadata.
    """
    provided = getattr(schema, "metadata", None)
    if isinstance(provided, SchemaMetadata):
        return provided
    render = getattr(schema, "json_schema", None)
    if not callable(render):
        return EMPTY_METADATA
    try:
        document = render()
    except Exception as e:  # noqa: BLE001
        log.debug("Could not render JSON Schema for %r: %s", schema, e)
        return EMPTY_METADATA
    if not isinstance(document, Mapping):
        return EMPTY_METADATA
    return SchemaMetadata.from_json_schema(document)
