# Plex protection playlists.
from ._protection import PlexProtection, PlexProtectionConfig, PlexProtectionError

__all__ = ["PlexProtection", "PlexProtectionConfig", "PlexProtectionError"]
