"""Apply normalization and dig sanitization to packets at the transport boundary.

The packet transport itself (the server's protocol layer) is not part of
this package. A host adapts its packets to :class:`ChatPacket` and
:class:`DigPacket`, and its players to the :class:`Player` protocol, and
calls :meth:`PacketFixer.on_packet_sending` / :meth:`on_packet_receiving`
from its listeners.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from mcpacketfix.audit import HandledErrorLog
from mcpacketfix.normalizer import NormalizationRecord, normalize
from mcpacketfix.sanitizer import BlockDigSanitizer, BlockPosition, DigType, Verdict

if TYPE_CHECKING:
    from pathlib import Path

    from mcpacketfix.config import AppConfig

log = logging.getLogger(__name__)


class World(Protocol):
    def is_chunk_loaded(self, chunk_x: int, chunk_z: int) -> bool: ...


class Player(Protocol):
    name: str
    world: World | None

    def current_position(self) -> BlockPosition | None: ...


@dataclass
class ChatPacket:
    """An outbound packet carrying chat components as JSON text."""

    packet_type: str
    components: list[str | None] = field(default_factory=list)


@dataclass
class DigPacket:
    """An inbound Player Action packet."""

    dig_type: DigType | None
    position: BlockPosition | None
    cancelled: bool = False


class PacketFixer:
    """Runs the fixes enabled in the configuration against packets."""

    def __init__(
        self,
        config: AppConfig,
        audit_log: HandledErrorLog | None = None,
    ) -> None:
        self.config = config
        self.audit_log = audit_log
        self.options = config.normalization.options()
        self.sanitizer = BlockDigSanitizer()

    @classmethod
    def from_config(cls, config: AppConfig, data_dir: Path) -> PacketFixer:
        """Build a fixer, setting up the handled-errors log if it is enabled."""
        audit_log = None
        if config.audit_log.active:
            audit_log = HandledErrorLog(
                data_dir,
                config.audit_log.file,
                include_original=config.audit_log.include_original_payload,
                include_normalized=config.audit_log.include_normalized_payload,
            )
            if not audit_log.initialize():
                audit_log = None
        return cls(config, audit_log)

    @property
    def normalization_enabled(self) -> bool:
        return self.config.enabled and self.config.normalization.enabled

    @property
    def sanitization_enabled(self) -> bool:
        return self.config.enabled and self.config.sanitization.prevent_unloaded_chunk_dig

    def record_fix(self, record: NormalizationRecord) -> None:
        """Record sink: write to the handled-errors log and the debug log."""
        if self.audit_log is not None:
            self.audit_log(record)
        log.debug(
            "Normalized hoverEvent UUID %s -> %s",
            record.original_payload,
            record.normalized_uuid,
        )

    def normalize_component(self, json_text: str) -> str:
        return normalize(json_text, self.options, self.record_fix)

    def on_packet_sending(self, packet: ChatPacket | None) -> None:
        """Normalize every chat component of an outbound packet in place.

        Only components whose text actually changed are written back.
        """
        if packet is None or not self.normalization_enabled:
            return
        try:
            for index, component in enumerate(packet.components):
                if not component:
                    continue
                normalized = self.normalize_component(component)
                if normalized != component:
                    packet.components[index] = normalized
        except Exception:
            log.exception("Failed to normalize packet %s", packet.packet_type)

    def on_packet_receiving(
        self, packet: DigPacket | None, player: Player | None
    ) -> None:
        """Cancel or rewrite an inbound dig packet according to the sanitizer."""
        if packet is None or packet.cancelled or not self.sanitization_enabled:
            return

        position = packet.position
        decision = self.sanitizer.evaluate(
            packet.dig_type,
            position,
            _chunk_checker(player),
            player,
        )

        if decision.should_cancel:
            packet.cancelled = True
            log.debug(
                "Cancelled dig packet from %s at %s because the chunk is not loaded",
                _player_name(player),
                position,
            )
            return

        if decision.verdict is Verdict.REPLACE:
            packet.position = decision.replacement
            log.debug(
                "Replaced dig packet position from %s to %s for %s",
                position,
                decision.replacement,
                _player_name(player),
            )


def _chunk_checker(player: Player | None) -> World | None:
    if player is None:
        return None
    try:
        return player.world
    except Exception:  # noqa: BLE001
        log.debug("Unable to resolve world for player", exc_info=True)
        return None


def _player_name(player: Player | None) -> str:
    return getattr(player, "name", None) or "<unknown>"
