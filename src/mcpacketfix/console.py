"""Packet workbench: try normalization and dig decisions by hand.

The workbench keeps a tiny simulated world (a set of unloaded chunks and an
optional player position) so dig packets can be evaluated the same way the
fixer evaluates them on a live server.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from mcpacketfix.normalizer import NormalizationOptions, NormalizationRecord, normalize
from mcpacketfix.sanitizer import BlockPosition, DigType, Verdict, evaluate

if TYPE_CHECKING:
    from collections.abc import Callable

COMMANDS = {
    "normalize": "normalize <json>  Normalize a chat component",
    "dig": "dig <action> <x> <y> <z> | dig <action> none  Evaluate a dig packet",
    "player": "player <x> <y> <z> | player none  Set the player's position",
    "unload": "unload <chunkX> <chunkZ>  Mark a chunk as unloaded",
    "load": "load <chunkX> <chunkZ>  Mark a chunk as loaded",
    "chunks": "chunks  List unloaded chunks",
    "status": "status  Show the simulated world",
    "help": "help  Show this help",
}

DIG_ACTIONS = [dig_type.name.lower() for dig_type in DigType]

_COORDINATE_COUNT = 3
_CHUNK_COORDINATE_COUNT = 2


class ConsoleError(Exception):
    """Raised for malformed workbench commands."""


def parse_dig_type(text: str) -> DigType:
    """Parse a dig action by name (case-insensitive) or wire value."""
    if text.isdigit():
        try:
            return DigType(int(text))
        except ValueError:
            pass
    else:
        try:
            return DigType[text.upper()]
        except KeyError:
            pass
    msg = f"Unknown dig action {text!r} (expected one of: {', '.join(DIG_ACTIONS)})"
    raise ConsoleError(msg)


def _parse_ints(args: list[str], count: int, usage: str) -> list[int]:
    if len(args) != count:
        msg = f"Usage: {usage}"
        raise ConsoleError(msg)
    try:
        return [int(a) for a in args]
    except ValueError as e:
        msg = f"Expected integers: {' '.join(args)}"
        raise ConsoleError(msg) from e


def parse_position(args: list[str]) -> BlockPosition | None:
    """Parse ``x y z`` or ``none``."""
    if len(args) == 1 and args[0].lower() == "none":
        return None
    x, y, z = _parse_ints(args, _COORDINATE_COUNT, "<x> <y> <z> | none")
    return BlockPosition(x, y, z)


@dataclass
class SimulatedWorld:
    """Everything is loaded except the chunks explicitly unloaded."""

    unloaded: set[tuple[int, int]] = field(default_factory=set)

    def is_chunk_loaded(self, chunk_x: int, chunk_z: int) -> bool:
        return (chunk_x, chunk_z) not in self.unloaded


@dataclass
class SimulatedPlayer:
    """A player whose position may be unknown."""

    name: str = "player"
    position: BlockPosition | None = None
    world: SimulatedWorld = field(default_factory=SimulatedWorld)

    def current_position(self) -> BlockPosition | None:
        return self.position


class Workbench:
    """Executes workbench command lines and returns their output text."""

    def __init__(
        self,
        options: NormalizationOptions | None = None,
        record_sink: Callable[[NormalizationRecord], None] | None = None,
    ) -> None:
        self.options = options or NormalizationOptions()
        self.record_sink = record_sink
        self.player = SimulatedPlayer()

    @property
    def world(self) -> SimulatedWorld:
        return self.player.world

    def execute(self, line: str) -> str:
        """Run one command line.

        Raises:
            ConsoleError: If the command is unknown or its arguments are bad.
        """
        line = line.strip()
        if not line:
            return ""

        name, _, rest = line.partition(" ")
        name = name.lower()

        # The JSON argument is taken verbatim, without shell-style splitting
        if name == "normalize":
            return self._normalize(rest.strip())

        try:
            args = shlex.split(rest)
        except ValueError as e:
            msg = f"Could not parse arguments: {e}"
            raise ConsoleError(msg) from e

        handler = {
            "dig": self._dig,
            "player": self._player,
            "unload": self._unload,
            "load": self._load,
            "chunks": self._chunks,
            "status": self._status,
            "help": self._help,
        }.get(name)
        if handler is None:
            msg = f"Unknown command {name!r}. Type 'help' for a list of commands."
            raise ConsoleError(msg)
        return handler(args)

    def _normalize(self, json_text: str) -> str:
        if not json_text:
            msg = f"Usage: {COMMANDS['normalize']}"
            raise ConsoleError(msg)

        records: list[NormalizationRecord] = []

        def _collect(record: NormalizationRecord) -> None:
            records.append(record)
            if self.record_sink is not None:
                self.record_sink(record)

        result = normalize(json_text, self.options, _collect)
        if not records:
            return f"{result}\n(unchanged)"

        lines = [result]
        lines.extend(
            f"  {r.original_payload} -> {r.normalized_uuid}" for r in records
        )
        return "\n".join(lines)

    def _dig(self, args: list[str]) -> str:
        if not args:
            msg = f"Usage: {COMMANDS['dig']}"
            raise ConsoleError(msg)
        dig_type = parse_dig_type(args[0])
        position = parse_position(args[1:])

        decision = evaluate(dig_type, position, self.world, self.player)
        if decision.verdict is Verdict.REPLACE:
            return f"replace {position or 'none'} -> {decision.replacement}"
        return decision.verdict.value

    def _player(self, args: list[str]) -> str:
        self.player.position = parse_position(args)
        return f"player at {self.player.position or 'unknown'}"

    def _unload(self, args: list[str]) -> str:
        chunk_x, chunk_z = _parse_ints(
            args, _CHUNK_COORDINATE_COUNT, "unload <chunkX> <chunkZ>"
        )
        self.world.unloaded.add((chunk_x, chunk_z))
        return f"chunk {chunk_x},{chunk_z} unloaded"

    def _load(self, args: list[str]) -> str:
        chunk_x, chunk_z = _parse_ints(
            args, _CHUNK_COORDINATE_COUNT, "load <chunkX> <chunkZ>"
        )
        self.world.unloaded.discard((chunk_x, chunk_z))
        return f"chunk {chunk_x},{chunk_z} loaded"

    def _chunks(self, _args: list[str]) -> str:
        if not self.world.unloaded:
            return "all chunks loaded"
        return "\n".join(f"{x},{z}" for x, z in sorted(self.world.unloaded))

    def _status(self, _args: list[str]) -> str:
        return "\n".join(
            [
                f"player: {self.player.position or 'unknown'}",
                f"unloaded chunks: {len(self.world.unloaded)}",
                f"convert int arrays: {self.options.convert_int_array}",
                f"convert uuid objects: {self.options.convert_uuid_object}",
            ]
        )

    def _help(self, _args: list[str]) -> str:
        lines = list(COMMANDS.values())
        lines.append("exit | quit  Leave the workbench")
        return "\n".join(lines)
