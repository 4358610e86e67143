"""Depth-first traversal over parsed JSON documents."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Collection, Mapping

    # Receives the object owning the field and the field's (dict) value.
    FieldHook = Callable[[dict[str, Any], dict[str, Any]], bool]


def walk(value: Any, hooks: Mapping[str, FieldHook]) -> bool:
    """Walk a JSON value, handing named object fields to their hooks.

    When an object field named in ``hooks`` holds an object, the hook takes
    over that sub-tree and the walker does not descend into it itself. All
    other containers are walked recursively; primitives end the recursion.

    Returns:
        True if any hook reported a change.
    """
    if isinstance(value, dict):
        return walk_fields(value, hooks)

    if isinstance(value, list):
        changed = False
        for child in value:
            changed |= walk(child, hooks)
        return changed

    return False


def walk_fields(
    obj: dict[str, Any],
    hooks: Mapping[str, FieldHook],
    skip: Collection[str] = (),
) -> bool:
    """Walk the fields of one object, except those named in ``skip``.

    Fields are dispatched exactly as :func:`walk` dispatches them, so a hook
    that handles part of an object itself can hand the rest back here.
    """
    changed = False
    for key, child in obj.items():
        if key in skip:
            continue
        hook = hooks.get(key)
        if hook is not None and isinstance(child, dict):
            changed |= hook(obj, child)
        else:
            changed |= walk(child, hooks)
    return changed
