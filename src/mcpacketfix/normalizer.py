"""Normalize entity UUIDs inside chat component hover events.

Some plugins send ``show_entity`` hover events whose tooltip ``id`` is an
int array or a ``most``/``least`` object rather than UUID text. Clients
reject such components, so the offending ids are rewritten to canonical
text before the packet leaves the server. Nothing else in the component is
touched, and a component with nothing to fix is returned byte-for-byte.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from mcpacketfix.uuid_codec import (
    CodecError,
    extract_uuid_from_int_array,
    from_halves,
    to_canonical_text,
)
from mcpacketfix.walker import walk, walk_fields

if TYPE_CHECKING:
    from collections.abc import Callable

log = logging.getLogger(__name__)

HOVER_EVENT_KEY = "hoverEvent"
SHOW_ENTITY_ACTION = "show_entity"
TOOLTIP_KEYS = ("value", "contents")
ID_KEY = "id"

_COMPACT = (",", ":")


@dataclass(frozen=True)
class NormalizationOptions:
    """Which non-canonical id encodings may be rewritten."""

    convert_int_array: bool = True
    convert_uuid_object: bool = True


@dataclass(frozen=True)
class NormalizationRecord:
    """One rewritten id: its original JSON and the UUID text that replaced it."""

    original_payload: str
    normalized_uuid: str


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=_COMPACT)


class _NormalizationPass:
    """State for normalizing a single parsed document."""

    def __init__(
        self,
        options: NormalizationOptions,
        record_sink: Callable[[NormalizationRecord], None] | None,
    ) -> None:
        self.options = options
        self.record_sink = record_sink
        self._hooks = {HOVER_EVENT_KEY: self._hover_event}

    def run(self, document: Any) -> bool:
        return walk(document, self._hooks)

    def _walk(self, value: Any) -> bool:
        return walk(value, self._hooks)

    def _hover_event(
        self, _owner: dict[str, Any], hover_event: dict[str, Any]
    ) -> bool:
        action = hover_event.get("action")
        show_entity = (
            isinstance(action, str) and action.lower() == SHOW_ENTITY_ACTION
        )

        if not show_entity:
            return walk_fields(hover_event, self._hooks)

        changed = False
        for key in TOOLTIP_KEYS:
            if key in hover_event:
                changed |= self._tooltip_payload(hover_event[key])
        changed |= walk_fields(hover_event, self._hooks, skip=TOOLTIP_KEYS)
        return changed

    def _tooltip_payload(self, payload: Any) -> bool:
        """Handle a ``value``/``contents`` payload: one tooltip or a list of them."""
        if isinstance(payload, dict):
            return self._tooltip(payload)

        if isinstance(payload, list):
            changed = False
            for element in payload:
                if isinstance(element, dict):
                    changed |= self._tooltip(element)
                else:
                    changed |= self._walk(element)
            return changed

        return self._walk(payload)

    def _tooltip(self, tooltip: dict[str, Any]) -> bool:
        converted = False

        if ID_KEY in tooltip:
            original = tooltip[ID_KEY]
            text = self._extract_uuid(original)
            if text is not None:
                tooltip[ID_KEY] = text
                converted = True
                self._emit(NormalizationRecord(_dumps(original), text))

        # Tooltips may carry nested components (e.g. "name") or a hover event
        # of their own.
        skip = (ID_KEY,) if converted else ()
        return walk_fields(tooltip, self._hooks, skip) or converted

    def _extract_uuid(self, value: Any) -> str | None:
        # String ids are already canonical, or deliberately opaque.
        if isinstance(value, list):
            if not self.options.convert_int_array:
                return None
            return extract_uuid_from_int_array(value)

        if isinstance(value, dict):
            if not self.options.convert_uuid_object:
                return None
            if "most" in value and "least" in value:
                try:
                    return to_canonical_text(from_halves(value))
                except CodecError:
                    log.debug("Ignoring unreadable UUID object %r", value)

        return None

    def _emit(self, record: NormalizationRecord) -> None:
        if self.record_sink is None:
            return
        try:
            self.record_sink(record)
        except Exception:  # noqa: BLE001
            log.debug("Record sink failed for %s", record, exc_info=True)


def normalize(
    json_text: str,
    options: NormalizationOptions | None = None,
    record_sink: Callable[[NormalizationRecord], None] | None = None,
) -> str:
    """Rewrite non-canonical ``show_entity`` tooltip ids in a chat component.

    Args:
        json_text: The chat component as JSON text.
        options: Which encodings to convert. Defaults to all of them.
        record_sink: Called once for every id that was rewritten.

    Returns:
        The re-serialized component if any id was rewritten, otherwise
        ``json_text`` itself. Unparseable input is returned unchanged.
    """
    if options is None:
        options = NormalizationOptions()

    try:
        document = json.loads(json_text)
    except (ValueError, RecursionError):
        log.debug("Leaving unparseable chat component as-is", exc_info=True)
        return json_text

    if document is None:
        return json_text

    try:
        changed = _NormalizationPass(options, record_sink).run(document)
    except RecursionError:
        log.debug("Chat component nested too deeply, leaving as-is")
        return json_text

    return _dumps(document) if changed else json_text
