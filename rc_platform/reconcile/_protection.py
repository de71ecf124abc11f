# rc_platform/reconcile/_protection.py
# resolve GUIDs that must never be deleted (per-user protection playlists).
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

from ..guid_map import parse_guids
from ._logging import log
from ._types import DeletionPolicy, Protection, ProtectionError

__all__ = ["ProtectionResolver"]


class ProtectionResolver:
    """Fails closed: any playlist or media-server error raises ProtectionError."""

    def __init__(self, collaborator: Protection | None, policy: DeletionPolicy):
        self.collaborator = collaborator
        self.policy = policy

    @property
    def enabled(self) -> bool:
        return bool(self.policy.protection_enabled)

    def resolve(self) -> frozenset[str]:
        if not self.enabled:
            return frozenset()
        name = self.policy.protection_playlist
        if self.collaborator is None:
            raise ProtectionError("Playlist protection is enabled but no media server is configured")

        try:
            playlists = self.collaborator.get_or_create_protection_playlists(create_if_missing=True)
        except ProtectionError:
            raise
        except Exception as e:
            raise ProtectionError(f'Could not prepare "{name}" playlists: {e}') from e
        if not playlists:
            raise ProtectionError(f'No "{name}" playlists found or created for any user')

        try:
            raw = self.collaborator.get_protected_item_guids()
        except ProtectionError:
            raise
        except Exception as e:
            raise ProtectionError(f'Could not read "{name}" playlists: {e}') from e

        guids = frozenset(parse_guids(list(raw or ())))
        log.info(f'Protected {len(guids)} GUIDs across {len(playlists)} "{name}" playlists')
        return guids

    def clear(self) -> None:
        if self.collaborator is None:
            return
        try:
            self.collaborator.clear_caches()
        except Exception as e:
            log.warn(f"Protection cache clear failed: {e}")
