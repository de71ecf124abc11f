# Sonarr/Radarr clients and the combined inventory.
from ._common import ArrAuthError, ArrConfig, ArrError
from ._mod_RADARR import RadarrClient
from ._mod_SONARR import SonarrClient
from .manager import ArrInventory

__all__ = ["ArrInventory", "SonarrClient", "RadarrClient", "ArrConfig", "ArrError", "ArrAuthError"]
