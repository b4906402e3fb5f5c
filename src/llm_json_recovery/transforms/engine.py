"""Post-parse transform contract, tree walker and engine.

Transforms are pure functions over parsed JSON values. They signal "no
change" by returning the very object they were given, which lets the
engine record a step only when a transform actually did something.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
import dataclasses
import logging
from typing import Any, Protocol

from llm_json_recovery.validation.metadata import EMPTY_METADATA, SchemaMetadata

log = logging.getLogger(__name__)

DEFAULT_MERGE_SEPARATOR = " | "


@dataclasses.dataclass(frozen=True, slots=True)
class TransformContext:
    """What a transform may consult besides the value itself."""

    metadata: SchemaMetadata = EMPTY_METADATA
    merge_separator: str = DEFAULT_MERGE_SEPARATOR


class PostParseTransform(Protocol):
    description: str

    def __call__(self, value: Any, context: TransformContext) -> Any: ...  # noqa: D102


def transform(
    description: str,
) -> Callable[[Callable[[Any, TransformContext], Any]], PostParseTransform]:
    """Attach a step description to a transform function."""

    def decorate(fn: Callable[[Any, TransformContext], Any]) -> PostParseTransform:
        fn.description = description  # type: ignore[attr-defined]
        return fn  # type: ignore[return-value]

    return decorate


def map_objects(
    value: Any,
    fn: Callable[[dict[str, Any]], dict[str, Any]],
    _path: set[int] | None = None,
) -> Any:
    """Apply ``fn`` to every object in ``value``, children first.

    Containers are only rebuilt when something beneath them changed, so an
    untouched tree comes back as the same object. A container already on
    the current path is returned as-is, which stops cycles.
    """
    path = set() if _path is None else _path
    if isinstance(value, dict):
        if id(value) in path:
            return value
        path.add(id(value))
        try:
            rebuilt: dict[str, Any] = {}
            changed = False
            for key, child in value.items():
                new_child = map_objects(child, fn, path)
                changed = changed or new_child is not child
                rebuilt[key] = new_child
            return fn(rebuilt if changed else value)
        finally:
            path.discard(id(value))
    if isinstance(value, list):
        if id(value) in path:
            return value
        path.add(id(value))
        try:
            items = [map_objects(child, fn, path) for child in value]
            if all(new is old for new, old in zip(items, value, strict=True)):
                return value
            return items
        finally:
            path.discard(id(value))
    return value


class TransformEngine:
    """Runs a fixed, ordered list of transforms over one value."""

    def __init__(self, transforms: Sequence[PostParseTransform]) -> None:
        self.transforms = tuple(transforms)

    def run(
        self, value: Any, context: TransformContext | None = None
    ) -> tuple[Any, tuple[str, ...]]:
        """Apply every transform in order.

        Returns:
            The transformed value and the descriptions of the transforms
            that changed it.
        """
        ctx = context or TransformContext()
        steps: list[str] = []
        for fn in self.transforms:
            try:
                new_value = fn(value, ctx)
            except Exception as e:  # noqa: BLE001
                log.debug(
                    "Transform '%s' failed, keeping value: %s",
                    fn.description,
                    e,
                    exc_info=True,
                )
                continue
            if new_value is not value:
                steps.append(fn.description)
                value = new_value
        return value, tuple(steps)
