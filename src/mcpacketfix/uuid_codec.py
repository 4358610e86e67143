"""Entity UUID encodings found in chat component payloads.

Minecraft has carried entity UUIDs in several shapes over the years:

* canonical hyphenated hex text (``"d4f90264-12e7-4e12-9d46-9b58a3a1c0ad"``)
* four signed 32-bit integers, as written by NBT ``IntArray`` tags
* sixteen bytes, as written by some plugins that dump the raw UUID bytes
* an object with ``most`` / ``least`` signed 64-bit halves

Only canonical text is ever produced. The other shapes are read here and
never written back.
"""

from __future__ import annotations

import math
import struct
import uuid
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

_QUAD_LENGTH = 4
_BYTES_LENGTH = 16

_MASK_8 = 0xFF
_MASK_32 = 0xFFFFFFFF
_MASK_64 = 0xFFFFFFFFFFFFFFFF


class CodecError(Exception):
    """Base exception for payloads that cannot be read as a UUID."""


class WrongArityError(CodecError):
    """Raised when an encoding has the wrong number of parts."""


class NotNumericError(CodecError):
    """Raised when a part of an encoding is not a number."""


def _as_int(value: Any) -> int:
    """Read a JSON number as an integer, truncating floats toward zero."""
    # bool is an int subclass but true/false are not numbers in JSON
    if isinstance(value, bool):
        msg = f"Expected a number, got {value!r}"
        raise NotNumericError(msg)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            msg = f"Expected a finite number, got {value!r}"
            raise NotNumericError(msg)
        return int(value)
    msg = f"Expected a number, got {type(value).__name__}"
    raise NotNumericError(msg)


def from_int_quad(values: Sequence[Any]) -> uuid.UUID:
    """Build a UUID from four 32-bit integers.

    Each part is masked to its low 32 bits first, so negative values (the
    usual signed NBT form) and out-of-range values combine correctly.

    Raises:
        WrongArityError: If there are not exactly four parts.
        NotNumericError: If any part is not a number.
    """
    if len(values) != _QUAD_LENGTH:
        msg = f"Expected {_QUAD_LENGTH} integers, got {len(values)}"
        raise WrongArityError(msg)
    parts = [_as_int(v) & _MASK_32 for v in values]
    return uuid.UUID(bytes=struct.pack(">4I", *parts))


def from_byte_sequence(values: Sequence[Any]) -> uuid.UUID:
    """Build a UUID from sixteen byte-sized integers, big-endian.

    Each part is masked to its low 8 bits, so signed bytes (-128..127) and
    values shifted by multiples of 256 are accepted.

    Raises:
        WrongArityError: If there are not exactly sixteen parts.
        NotNumericError: If any part is not a number.
    """
    if len(values) != _BYTES_LENGTH:
        msg = f"Expected {_BYTES_LENGTH} bytes, got {len(values)}"
        raise WrongArityError(msg)
    return uuid.UUID(bytes=bytes(_as_int(v) & _MASK_8 for v in values))


def _as_long(value: Any) -> int:
    # Integer-valued strings are accepted, matching what the server's JSON
    # library does for getAsLong().
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as e:
            msg = f"Expected an integer string, got {value!r}"
            raise NotNumericError(msg) from e
    return _as_int(value)


def from_halves(
    obj: Mapping[str, Any],
    most_key: str = "most",
    least_key: str = "least",
) -> uuid.UUID:
    """Build a UUID from an object holding signed 64-bit halves.

    Raises:
        WrongArityError: If either half is missing.
        NotNumericError: If either half is not an integer.
    """
    if most_key not in obj or least_key not in obj:
        msg = f"Expected both {most_key!r} and {least_key!r} fields"
        raise WrongArityError(msg)
    most = _as_long(obj[most_key]) & _MASK_64
    least = _as_long(obj[least_key]) & _MASK_64
    return uuid.UUID(int=(most << 64) | least)


def to_canonical_text(value: uuid.UUID) -> str:
    """Format a UUID as lowercase hyphenated hex."""
    return str(value)


def extract_uuid_from_int_array(values: Sequence[Any]) -> str | None:
    """Convert a 4-integer or 16-byte array to canonical UUID text.

    Returns None when the array has any other length or holds non-numbers.
    """
    try:
        if len(values) == _QUAD_LENGTH:
            return to_canonical_text(from_int_quad(values))
        if len(values) == _BYTES_LENGTH:
            return to_canonical_text(from_byte_sequence(values))
    except CodecError:
        return None
    return None
