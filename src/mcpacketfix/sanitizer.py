"""Sanitize inbound block dig (Player Action) packets.

Two kinds of dig packet cause trouble for the server:

* START_DESTROY_BLOCK aimed at a chunk that is not loaded, which makes the
  server load or touch a chunk it should not. These are cancelled.
* Item-drop actions sent with a 0,0,0 placeholder position instead of the
  player's own block. The player's current block is substituted.

World and player lookups are injected and may fail; a failed lookup only
downgrades that one check, it never aborts the decision.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Protocol

log = logging.getLogger(__name__)

# Blocks per chunk side is 16
_CHUNK_SHIFT = 4


class DigType(IntEnum):
    """Player Action packet status values."""

    START_DESTROY_BLOCK = 0
    ABORT_DESTROY_BLOCK = 1
    STOP_DESTROY_BLOCK = 2
    DROP_ALL_ITEMS = 3
    DROP_ITEM = 4
    RELEASE_USE_ITEM = 5
    SWAP_HELD_ITEMS = 6


# Actions that reuse the dig packet but only make sense at the player
_PLAYER_RELATIVE_ACTIONS = frozenset(
    {
        DigType.DROP_ITEM,
        DigType.DROP_ALL_ITEMS,
        DigType.RELEASE_USE_ITEM,
    }
)


@dataclass(frozen=True)
class BlockPosition:
    """An integer block coordinate."""

    x: int
    y: int
    z: int

    def is_origin(self) -> bool:
        """Whether this is the all-zero placeholder position."""
        return self.x == 0 and self.y == 0 and self.z == 0

    def chunk(self) -> tuple[int, int]:
        """Return the (chunk_x, chunk_z) containing this block."""
        return self.x >> _CHUNK_SHIFT, self.z >> _CHUNK_SHIFT

    def __str__(self) -> str:
        return f"({self.x}, {self.y}, {self.z})"


class ChunkLoadChecker(Protocol):
    """Answers whether a chunk of the player's world is loaded."""

    def is_chunk_loaded(self, chunk_x: int, chunk_z: int) -> bool: ...


class PositionProvider(Protocol):
    """Supplies the block the player is currently standing in."""

    def current_position(self) -> BlockPosition | None: ...


class Verdict(Enum):
    """What to do with a dig packet."""

    ALLOW = "allow"
    CANCEL = "cancel"
    REPLACE = "replace"


@dataclass(frozen=True)
class DigDecision:
    """The outcome of evaluating one dig packet."""

    verdict: Verdict
    replacement: BlockPosition | None = None

    @property
    def should_cancel(self) -> bool:
        return self.verdict is Verdict.CANCEL

    @classmethod
    def allow(cls) -> DigDecision:
        return cls(Verdict.ALLOW)

    @classmethod
    def cancel(cls) -> DigDecision:
        return cls(Verdict.CANCEL)

    @classmethod
    def replace(cls, position: BlockPosition) -> DigDecision:
        return cls(Verdict.REPLACE, position)


def _query_chunk_loaded(
    checker: ChunkLoadChecker, position: BlockPosition
) -> bool | None:
    """Ask whether the chunk holding ``position`` is loaded.

    Returns None if the checker failed.
    """
    chunk_x, chunk_z = position.chunk()
    try:
        return bool(checker.is_chunk_loaded(chunk_x, chunk_z))
    except Exception:  # noqa: BLE001
        log.debug(
            "Chunk check failed for chunk %d,%d", chunk_x, chunk_z, exc_info=True
        )
        return None


def _fetch_position(provider: PositionProvider) -> BlockPosition | None:
    """Ask for the player's current block. Returns None if unavailable."""
    try:
        position = provider.current_position()
    except Exception:  # noqa: BLE001
        log.debug("Position lookup failed", exc_info=True)
        return None
    if not isinstance(position, BlockPosition):
        return None
    return position


def evaluate(
    dig_type: DigType | None,
    position: BlockPosition | None,
    chunk_checker: ChunkLoadChecker | None = None,
    position_provider: PositionProvider | None = None,
) -> DigDecision:
    """Decide whether a dig packet should pass, be cancelled, or be rewritten.

    Args:
        dig_type: The packet's action. Unknown actions are always allowed.
        position: The packet's target block, if it has one.
        chunk_checker: Chunk load lookup for the player's world.
        position_provider: Lookup for the player's current block.

    Returns:
        A fresh DigDecision. Only START_DESTROY_BLOCK can be cancelled.
    """
    if dig_type == DigType.START_DESTROY_BLOCK:
        return _evaluate_start_destroy(position, chunk_checker, position_provider)

    if dig_type in _PLAYER_RELATIVE_ACTIONS:
        return _evaluate_player_relative(position, position_provider)

    return DigDecision.allow()


def _evaluate_start_destroy(
    position: BlockPosition | None,
    chunk_checker: ChunkLoadChecker | None,
    position_provider: PositionProvider | None,
) -> DigDecision:
    if position is None:
        return DigDecision.allow()

    target = position
    replacement = None
    if position.is_origin() and position_provider is not None:
        fetched = _fetch_position(position_provider)
        if fetched is not None:
            target = fetched
            replacement = fetched

    if chunk_checker is not None:
        loaded = _query_chunk_loaded(chunk_checker, target)
        if loaded is False:
            return DigDecision.cancel()

    if replacement is not None:
        return DigDecision.replace(replacement)
    return DigDecision.allow()


def _evaluate_player_relative(
    position: BlockPosition | None,
    position_provider: PositionProvider | None,
) -> DigDecision:
    if position is not None and not position.is_origin():
        return DigDecision.allow()
    if position_provider is None:
        return DigDecision.allow()

    fetched = _fetch_position(position_provider)
    if fetched is None:
        return DigDecision.allow()
    return DigDecision.replace(fetched)


class BlockDigSanitizer:
    """Stateless wrapper around :func:`evaluate` for injection into listeners."""

    def evaluate(
        self,
        dig_type: DigType | None,
        position: BlockPosition | None,
        chunk_checker: ChunkLoadChecker | None = None,
        position_provider: PositionProvider | None = None,
    ) -> DigDecision:
        return evaluate(dig_type, position, chunk_checker, position_provider)

    def should_cancel(
        self,
        dig_type: DigType | None,
        position: BlockPosition | None,
        chunk_checker: ChunkLoadChecker | None = None,
    ) -> bool:
        """Whether the packet should be dropped; ignores position replacement."""
        return evaluate(dig_type, position, chunk_checker).should_cancel
