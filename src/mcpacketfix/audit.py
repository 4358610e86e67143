"""Append-only XML log of normalized hover event payloads.

Every rewritten tooltip id can be recorded in ``handled-errors.xml`` so server
owners can see which payloads were fixed::

    <handledErrors>
      <handledError timestamp="2024-05-01T12:00:00.000Z">
        <original>[1,2,3,4]</original>
        <normalized>00000001-0000-0002-0000-000300000004</normalized>
      </handledError>
    </handledErrors>
"""

from __future__ import annotations

import logging
import threading
import xml.etree.ElementTree as ET
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from mcpacketfix.config import DEFAULT_AUDIT_FILE

if TYPE_CHECKING:
    from pathlib import Path

    from mcpacketfix.normalizer import NormalizationRecord

log = logging.getLogger(__name__)

ROOT_TAG = "handledErrors"
ENTRY_TAG = "handledError"


def _timestamp() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


class HandledErrorLog:
    """Thread-safe writer for the handled-errors XML file.

    Entries with a blank or missing included field are skipped. I/O failures
    are logged and reported through the boolean return values, never raised.
    """

    def __init__(
        self,
        data_dir: Path,
        file_name: str = DEFAULT_AUDIT_FILE,
        *,
        include_original: bool = True,
        include_normalized: bool = True,
    ) -> None:
        self.data_dir = data_dir
        self.file_name = (file_name or "").strip() or DEFAULT_AUDIT_FILE
        self.include_original = include_original
        self.include_normalized = include_normalized
        self.path: Path | None = None
        self._initialized = False
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> bool:
        """Create (or verify) the log file.

        Returns True if the log is ready for writing.
        """
        if self._initialized:
            return True
        if not self.include_original and not self.include_normalized:
            log.warning(
                "Handled error logging has nothing to record; both payload"
                " fields are excluded"
            )
            return False

        with self._lock:
            if self._initialized:
                return True

            try:
                self.data_dir.mkdir(parents=True, exist_ok=True)
            except OSError:
                log.warning(
                    "Unable to create data directory %s; handled error logging"
                    " disabled",
                    self.data_dir,
                    exc_info=True,
                )
                return False

            path = self.data_dir / self.file_name
            try:
                if not path.exists() or path.stat().st_size == 0:
                    _write(path, ET.ElementTree(ET.Element(ROOT_TAG)))
                else:
                    _parse(path)
            except ET.ParseError:
                log.warning("Failed to verify %s; recreating file", path, exc_info=True)
                try:
                    _write(path, ET.ElementTree(ET.Element(ROOT_TAG)))
                except OSError:
                    log.warning("Unable to recreate %s", path, exc_info=True)
                    return False
            except OSError:
                log.warning("Unable to initialize %s", path, exc_info=True)
                return False

            self.path = path
            self._initialized = True
            return True

    def log_normalization(self, original: str | None, normalized: str | None) -> bool:
        """Append one entry. Returns True if it was written."""
        if not self._initialized or self.path is None:
            return False
        if not self.include_original and not self.include_normalized:
            return False
        if self.include_original and (original is None or not original.strip()):
            return False
        if self.include_normalized and (normalized is None or not normalized.strip()):
            return False

        with self._lock:
            try:
                tree = self._load()
                entry = ET.SubElement(
                    tree.getroot(), ENTRY_TAG, {"timestamp": _timestamp()}
                )
                if self.include_original:
                    ET.SubElement(entry, "original").text = original
                if self.include_normalized:
                    ET.SubElement(entry, "normalized").text = normalized
                _write(self.path, tree)
            except (OSError, ET.ParseError):
                log.warning(
                    "Unable to write handled error entry to %s",
                    self.path,
                    exc_info=True,
                )
                return False
            return True

    def __call__(self, record: NormalizationRecord) -> None:
        """Record sink for :func:`mcpacketfix.normalizer.normalize`."""
        self.log_normalization(record.original_payload, record.normalized_uuid)

    def _load(self) -> ET.ElementTree:
        if self.path is None or not self.path.exists() or self.path.stat().st_size == 0:
            return ET.ElementTree(ET.Element(ROOT_TAG))
        return _parse(self.path)


def _parse(path: Path) -> ET.ElementTree:
    data = path.read_bytes()
    # Entries are plain elements; no DTD or entity declarations are expected
    if b"<!DOCTYPE" in data:
        msg = "DOCTYPE declarations are not allowed"
        raise ET.ParseError(msg)
    tree = ET.ElementTree(ET.fromstring(data))
    if tree.getroot().tag != ROOT_TAG:
        msg = f"Unexpected root element <{tree.getroot().tag}>"
        raise ET.ParseError(msg)
    return tree


def _write(path: Path, tree: ET.ElementTree) -> None:
    ET.indent(tree, space="  ")
    tree.write(path, encoding="utf-8", xml_declaration=True)
