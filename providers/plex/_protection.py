# /providers/plex/_protection.py
# Reclaimarr - per-user "do not delete" playlists on Plex Media Server
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping
from urllib.parse import urlencode

import requests

try:
    from plexapi.myplex import MyPlexAccount
    from plexapi.server import PlexServer
except Exception as e:
    raise RuntimeError("plexapi is required for Plex playlist protection") from e

from _logging import log as _root_log
from rc_platform.guid_map import guids_from_plex, normalize_guid
from rc_platform.reconcile import ProtectionError

__VERSION__ = "1.0.0"
__all__ = ["PlexProtection", "PlexProtectionConfig", "PlexProtectionError"]

log = _root_log.child("PLEX")


class PlexProtectionError(ProtectionError):
    pass


@dataclass
class PlexProtectionConfig:
    server_url: str = ""
    token: str = ""
    playlist_name: str = "Do Not Delete"
    timeout: float = 10.0
    verify_ssl: bool = True

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> PlexProtectionConfig:
        plex = dict(cfg.get("plex") or {})
        ds = dict(cfg.get("delete_sync") or {})
        return cls(
            server_url=str(plex.get("server_url") or "").strip().rstrip("/"),
            token=str(plex.get("account_token") or "").strip(),
            playlist_name=str(ds.get("protection_playlist") or "Do Not Delete").strip() or "Do Not Delete",
            timeout=float(plex.get("timeout") or 10.0),
            verify_ssl=bool(plex.get("verify_ssl", True)),
        )


class PlexProtection:
    """
    Finds or creates the protection playlist for the owner and every user with
    access to the server, then collects the external GUIDs of its members.

    Fails closed: any user whose playlist cannot be prepared or read raises
    PlexProtectionError instead of being left out.
    """

    def __init__(self, cfg: PlexProtectionConfig, *, server: PlexServer | None = None):
        self.cfg = cfg
        self.server = server
        self._account: MyPlexAccount | None = None
        self._playlists: dict[str, str] | None = None
        self._servers: dict[str, PlexServer] = {}
        self._guids: set[str] | None = None

    # Connection
    def connect(self) -> PlexServer:
        if self.server is not None:
            return self.server
        if not self.cfg.server_url or not self.cfg.token:
            raise PlexProtectionError("Plex server_url and account_token are required for playlist protection")
        session = requests.Session()
        session.verify = self.cfg.verify_ssl
        try:
            self.server = PlexServer(self.cfg.server_url, self.cfg.token, session=session, timeout=self.cfg.timeout)
        except Exception as e:
            raise PlexProtectionError(f"Plex connect failed: {e}") from e
        return self.server

    def account(self) -> MyPlexAccount:
        if self._account is None:
            try:
                self._account = self.connect().myPlexAccount()
            except Exception as e:
                raise PlexProtectionError(f"Plex account lookup failed: {e}") from e
        return self._account

    def _user_servers(self) -> dict[str, PlexServer]:
        """username -> server bound to that user's token (owner first)."""
        if self._servers:
            return self._servers
        srv = self.connect()
        acc = self.account()
        out: dict[str, PlexServer] = {str(getattr(acc, "username", None) or "owner"): srv}
        machine_id = srv.machineIdentifier
        for user in acc.users():
            name = str(getattr(user, "username", None) or getattr(user, "title", None) or "").strip()
            if not name or name in out:
                continue
            token = user.get_token(machine_id)
            if not token:
                log.debug(f'User "{name}" has no access to this server; no protection playlist')
                continue
            out[name] = PlexServer(self.cfg.server_url, token, session=srv._session, timeout=self.cfg.timeout)
        self._servers = out
        return out

    # Playlists
    def _find_playlist(self, srv: PlexServer) -> str | None:
        want = self.cfg.playlist_name.strip().lower()
        for pl in srv.playlists() or []:
            if (getattr(pl, "title", None) or "").strip().lower() == want:
                return str(pl.ratingKey)
        return None

    def _create_playlist(self, srv: PlexServer) -> str:
        params = {"type": "video", "title": self.cfg.playlist_name, "smart": 0, "uri": "library://all"}
        data = srv.query(f"/playlists?{urlencode(params)}", method=srv._session.post)
        for el in list(data) if data is not None else []:
            key = el.attrib.get("ratingKey")
            if key:
                return str(key)
        raise PlexProtectionError(f'Plex did not return an id for new playlist "{self.cfg.playlist_name}"')

    def get_or_create_protection_playlists(self, create_if_missing: bool = True) -> dict[str, str]:
        if self._playlists is not None:
            return self._playlists
        name = self.cfg.playlist_name
        out: dict[str, str] = {}
        for username, srv in self._user_servers().items():
            try:
                key = self._find_playlist(srv)
                if key is None and create_if_missing:
                    key = self._create_playlist(srv)
                    log.info(f'Created "{name}" playlist for user "{username}"')
            except PlexProtectionError:
                raise
            except Exception as e:
                raise PlexProtectionError(f'Protection playlist for user "{username}" failed: {e}') from e
            if key is None:
                log.debug(f'No "{name}" playlist for user "{username}" and creation is disabled')
                continue
            out[username] = key
        log.info(f'Protection playlists ready for {len(out)} users')
        self._playlists = out
        return out

    # Items
    @staticmethod
    def _item_guids(obj: Any) -> list[str]:
        # episodes and seasons protect their whole show
        if getattr(obj, "type", None) in ("episode", "season"):
            obj = obj.show()
        guids = guids_from_plex(getattr(obj, "guids", None) or [])
        if not guids:
            obj.reload()
            guids = guids_from_plex(getattr(obj, "guids", None) or [])
        if not guids:
            legacy = normalize_guid(getattr(obj, "guid", None))
            if legacy and not legacy.startswith("plex:"):
                guids = [legacy]
        return guids

    def get_protected_item_guids(self) -> set[str]:
        if self._guids is not None:
            return self._guids
        playlists = self.get_or_create_protection_playlists(create_if_missing=True)
        servers = self._user_servers()
        out: set[str] = set()
        for username, key in playlists.items():
            srv = servers[username]
            try:
                pl = srv.fetchItem(int(key))
                members = list(pl.items() or [])
            except Exception as e:
                raise PlexProtectionError(f'Could not read protection playlist for user "{username}": {e}') from e
            for obj in members:
                try:
                    guids = self._item_guids(obj)
                except Exception as e:
                    raise PlexProtectionError(
                        f'Could not resolve GUIDs for "{getattr(obj, "title", "?")}" ({username}): {e}'
                    ) from e
                if not guids:
                    log.warn(f'Protected item "{getattr(obj, "title", "?")}" has no external GUIDs; it cannot be matched')
                out.update(guids)
            log.debug(f'{len(members)} protected items for user "{username}"')
        log.info(f"Found {len(out)} unique protected GUIDs across all users")
        self._guids = out
        return out

    def clear_caches(self) -> None:
        self._playlists = None
        self._guids = None
        self._servers = {}
